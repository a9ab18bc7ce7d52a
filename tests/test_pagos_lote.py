from datetime import date
from decimal import Decimal

import pytest

from app.services.deuda_cuotas_service import calcular_deuda_cuotas
from app.services.errores import (
    ErrorValidacion, MontoNoMultiplo, SeleccionInvalida, SinMesesPendientes,
)
from app.services.pagos_lote_service import (
    asignar_pago_adelantado, asignar_pronto_pago, meses_sin_registro, validar_monto_adelantado,
)

from tests.fabricas import REFERENCIA, miembro, pago

FECHA = date(2025, 7, 10)


class TestProntoPago:
    def test_anio_completo_pendiente_da_mes_gratis(self):
        resultado = asignar_pronto_pago(miembro(), [], 50, FECHA)

        assert len(resultado.meses_pagados) == 11
        assert all(f.payment_type == "pronto_pago" for f in resultado.meses_pagados)
        assert all(f.amount == Decimal("50.00") for f in resultado.meses_pagados)
        assert resultado.mes_gratis.payment_type == "pronto_pago_benefit"
        assert resultado.mes_gratis.amount == Decimal("0.00")
        assert (resultado.mes_gratis.month, resultado.mes_gratis.year) == (6, 2026)
        assert {f.quick_pay_group_id for f in resultado.filas} == {resultado.group_id}
        assert resultado.total_cobrado == Decimal("550.00")

    def test_luego_del_pronto_pago_no_queda_deuda(self):
        resultado = asignar_pronto_pago(miembro(), [], 50, FECHA)
        filas = [pago(f.member_id, f.month, f.year, f.amount, tipo=f.payment_type) for f in resultado.filas]

        deuda = calcular_deuda_cuotas(miembro(), filas, 50, REFERENCIA)
        assert deuda.total_adeudado == Decimal("0.00")

    def test_con_pendientes_parciales_no_hay_mes_gratis(self):
        existentes = [pago(1, m, a, 50) for m, a in [(7, 2025), (8, 2025), (9, 2025), (10, 2025),
                                                     (11, 2025), (12, 2025), (1, 2026)]]
        resultado = asignar_pronto_pago(miembro(), existentes, 50, FECHA)

        assert len(resultado.meses_pagados) == 5
        assert resultado.mes_gratis is None
        assert [(f.month, f.year) for f in resultado.filas] == [
            (2, 2026), (3, 2026), (4, 2026), (5, 2026), (6, 2026)
        ]

    def test_fila_parcial_cuenta_como_registrada(self):
        resultado = asignar_pronto_pago(miembro(), [pago(1, 7, 2025, 10)], 50, FECHA)
        assert (7, 2025) not in [(f.month, f.year) for f in resultado.filas]
        assert resultado.mes_gratis is None

    def test_anio_completo_registrado(self):
        existentes = [pago(1, m, a, 50) for m, a in [(7, 2025), (8, 2025), (9, 2025), (10, 2025),
                                                     (11, 2025), (12, 2025), (1, 2026), (2, 2026),
                                                     (3, 2026), (4, 2026), (5, 2026), (6, 2026)]]
        with pytest.raises(SinMesesPendientes):
            asignar_pronto_pago(miembro(), existentes, 50, FECHA)

    @pytest.mark.parametrize("monto, fecha", [(0, FECHA), (-5, FECHA), (50, None)])
    def test_entrada_invalida(self, monto, fecha):
        with pytest.raises(ErrorValidacion):
            asignar_pronto_pago(miembro(), [], monto, fecha)

    def test_anio_fiscal_explicito(self):
        resultado = asignar_pronto_pago(miembro(), [], 50, FECHA, anio_fiscal=2026)
        assert resultado.filas[0].month == 7
        assert resultado.filas[0].year == 2026


class TestPagoAdelantado:
    def test_monto_no_multiplo_sugiere_totales(self):
        with pytest.raises(MontoNoMultiplo) as info:
            validar_monto_adelantado(125, 50)

        error = info.value
        assert error.residuo == Decimal("25.00")
        assert error.meses_cubiertos == 2
        assert error.totales_sugeridos == [Decimal("100.00"), Decimal("150.00")]
        assert error.a_dict()["codigo"] == "MONTO_NO_MULTIPLO"

    def test_precision_al_centavo(self):
        with pytest.raises(MontoNoMultiplo):
            validar_monto_adelantado(100.01, 50)
        assert validar_monto_adelantado("151.50", "50.50") == 3

    def test_monto_exacto(self):
        filas = asignar_pago_adelantado(
            150, 50, [(9, 2025), (10, 2025), (11, 2025)], FECHA,
            member_id=1, pagos_existentes=[],
        )
        assert len(filas) == 3
        assert all(f.amount == Decimal("50.00") for f in filas)
        assert all(f.payment_type == "adelantado" for f in filas)
        assert len({f.quick_pay_group_id for f in filas}) == 1

    def test_cantidad_de_meses_distinta(self):
        with pytest.raises(SeleccionInvalida):
            asignar_pago_adelantado(150, 50, [(9, 2025)], FECHA, member_id=1, pagos_existentes=[])

    def test_mes_ya_registrado(self):
        with pytest.raises(SeleccionInvalida):
            asignar_pago_adelantado(
                100, 50, [(9, 2025), (10, 2025)], FECHA,
                member_id=1, pagos_existentes=[pago(1, 9, 2025, 50)],
            )

    def test_mes_fuera_del_anio_logial(self):
        with pytest.raises(SeleccionInvalida):
            asignar_pago_adelantado(100, 50, [(9, 2025), (7, 2026)], FECHA, member_id=1, pagos_existentes=[])

    def test_meses_repetidos(self):
        with pytest.raises(SeleccionInvalida):
            asignar_pago_adelantado(100, 50, [(9, 2025), (9, 2025)], FECHA, member_id=1, pagos_existentes=[])

    def test_cuota_cero(self):
        with pytest.raises(ErrorValidacion):
            validar_monto_adelantado(100, 0)


def test_meses_sin_registro():
    libres = meses_sin_registro(1, [pago(1, 7, 2025, 50), pago(2, 8, 2025, 50)], 2025)
    assert len(libres) == 11
    assert libres[0] == (8, 2025)


@pytest.mark.parametrize("monto", ["abc", float("nan"), float("inf"), "-Infinity"])
def test_monto_no_numerico_es_error_de_validacion(monto):
    with pytest.raises(ErrorValidacion, match="Monto inválido"):
        validar_monto_adelantado(monto, 50)
    with pytest.raises(ErrorValidacion, match="Monto inválido"):
        asignar_pronto_pago(miembro(), [], monto, FECHA)
