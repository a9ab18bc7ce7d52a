from decimal import Decimal

from app.services.cuotas_extraordinarias_service import (
    calcular_extraordinarias_pendientes, resumen_recaudacion, saldo_miembro,
)

from tests.fabricas import abono, cuota_extra, miembro


def test_abono_parcial_deja_saldo():
    cuota = cuota_extra(1, "Templo", 100)
    pendientes = calcular_extraordinarias_pendientes(miembro(), [cuota], [abono(1, 1, 1, 40)])

    assert len(pendientes) == 1
    assert pendientes[0].pendiente == Decimal("60.00")
    assert pendientes[0].a_dict()["pending"] == 60.0


def test_varios_abonos_se_suman_hasta_saldar():
    cuota = cuota_extra(1, "Templo", 100)
    abonos = [abono(1, 1, 1, 40), abono(2, 1, 1, 60)]

    assert calcular_extraordinarias_pendientes(miembro(), [cuota], abonos) == []
    assert saldo_miembro(cuota, abonos, 1) == Decimal("0.00")


def test_sobrepago_no_da_saldo_negativo():
    cuota = cuota_extra(1, "Templo", 100)
    assert saldo_miembro(cuota, [abono(1, 1, 1, 150)], 1) == Decimal("0.00")


def test_abonos_de_otro_miembro_no_cuentan():
    cuota = cuota_extra(1, "Templo", 100)
    pendientes = calcular_extraordinarias_pendientes(miembro(), [cuota], [abono(1, 1, 2, 100)])
    assert pendientes[0].pendiente == Decimal("100.00")


def test_resumen_recaudacion():
    cuota = cuota_extra(1, "Templo", 100)
    abonos = [abono(1, 1, 1, 40), abono(2, 1, 2, 100), abono(3, 2, 1, 500)]
    recaudado, esperado = resumen_recaudacion(cuota, abonos, [miembro(1), miembro(2), miembro(3)])
    assert recaudado == Decimal("140.00")
    assert esperado == Decimal("300.00")
