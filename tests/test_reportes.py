from datetime import date, datetime
from decimal import Decimal

import pytest

from app.services.errores import ErrorValidacion
from app.services.reportes_service import Periodo, agregar

from tests.fabricas import abono, cuota_extra, derecho, gasto, instantanea, miembro, pago


@pytest.fixture
def inst():
    return instantanea(
        members=[miembro(1, "Ana"), miembro(2, "Beto"), miembro(3, "Carla", status="inactivo")],
        monthly_payments=[
            pago(1, 7, 2025, 50, paid_at=date(2025, 7, 3)),
            pago(1, 8, 2025, 0, tipo="pronto_pago_benefit", paid_at=date(2025, 7, 3)),
            pago(1, 9, 2025, 50, paid_at=date(2025, 8, 20)),
            pago(2, 7, 2025, 50, paid_at=None),
        ],
        expenses=[
            gasto(1, 30, date(2025, 7, 10), categoria="alquiler"),
            gasto(2, 12.5, date(2025, 7, 15), categoria="servicios"),
            gasto(3, 100, date(2025, 9, 1)),
        ],
        extraordinary_fees=[
            cuota_extra(1, "Templo", 100, created_at=datetime(2025, 6, 1)),
            cuota_extra(2, "Banquete", 40, created_at=datetime(2025, 3, 1)),
            cuota_extra(3, "Antigua", 10, created_at=datetime(2024, 3, 1)),
        ],
        extraordinary_payments=[abono(1, 1, 1, 60, fecha=date(2025, 7, 20))],
        degree_fees=[derecho(1, 80, date(2025, 7, 25))],
    )


def test_periodo_rangos():
    assert Periodo(2025, 12).rango() == (date(2025, 12, 1), date(2026, 1, 1))
    assert Periodo(2025).rango() == (date(2025, 1, 1), date(2026, 1, 1))
    assert Periodo(2025, 7).contiene(datetime(2025, 7, 31, 23, 59))
    assert not Periodo(2025, 7).contiene(None)
    assert Periodo(2025, 7).etiqueta == "Julio 2025"
    with pytest.raises(ErrorValidacion):
        Periodo(2025, 13)


def test_informe_mensual(inst):
    totales = agregar(Periodo(2025, 7), inst)

    assert totales.ingresos_cuotas == Decimal("50.00")
    assert totales.ingresos_extraordinarios == Decimal("60.00")
    assert totales.ingresos_derechos_grado == Decimal("80.00")
    assert totales.total_gastos == Decimal("42.50")
    assert totales.total_ingresos == Decimal("190.00")
    assert totales.balance == Decimal("147.50")
    assert totales.gastos_por_categoria == {"alquiler": Decimal("30.00"), "servicios": Decimal("12.50")}
    assert totales.desglose_mensual == []


def test_deudores_del_mes(inst):
    totales = agregar(Periodo(2025, 7), inst)

    # Beto pagó pero sin fecha: no entra en ningún período
    assert [(d.nombre, d.meses_pendientes) for d in totales.deudores] == [("Beto", 1)]
    assert totales.miembros_al_dia == 1
    ana = totales.pagos_por_miembro[0]
    assert (ana.nombre, ana.total_pagado, ana.cantidad_pagos) == ("Ana", Decimal("50.00"), 1)


def test_extraordinarias_sin_abonos_solo_en_su_anual(inst):
    mensual = agregar(Periodo(2025, 7), inst)
    assert [e.nombre for e in mensual.detalle_extraordinarias] == ["Templo"]
    assert mensual.detalle_extraordinarias[0].esperado == Decimal("200.00")

    anual = agregar(Periodo(2025), inst)
    assert [e.nombre for e in anual.detalle_extraordinarias] == ["Templo", "Banquete"]


def test_informe_anual_con_desglose(inst):
    totales = agregar(Periodo(2025), inst)

    assert totales.ingresos_cuotas == Decimal("100.00")
    assert totales.total_gastos == Decimal("142.50")
    assert [(d.nombre, d.meses_pendientes) for d in totales.deudores] == [("Beto", 12)]
    assert len(totales.desglose_mensual) == 12
    julio = totales.desglose_mensual[6]
    assert julio.mes == "Julio"
    assert julio.ingresos_cuotas == Decimal("50.00")
    assert julio.balance == Decimal("67.50")


def test_a_dict(inst):
    data = agregar(Periodo(2025, 7), inst).a_dict()
    assert data["period"] == "Julio 2025"
    assert data["total_income"] == 190.0
    assert data["pending_count"] == 1
    assert data["expenses_detail"][0]["date"] == "10/07/2025"
