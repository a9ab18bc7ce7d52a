import asyncio
from datetime import date
from decimal import Decimal

import pytest

from app.services.errores import (
    ErrorAlmacen, ErrorValidacion, RecursoNoEncontrado, SinMesesPendientes,
)

FECHA = date(2025, 7, 10)


async def nuevo_miembro(servicio, nombre="Ana", **datos):
    await servicio.cache.cargar()
    return await servicio.guardar_miembro({"full_name": nombre, "status": "activo", **datos})


@pytest.mark.asyncio
async def test_pronto_pago_persiste_y_actualiza_cache(servicio, repositorio):
    ana = await nuevo_miembro(servicio)

    resultado, pagos = await servicio.registrar_pronto_pago(ana.id, 50, FECHA)

    assert len(pagos) == 12
    assert all(p.id is not None for p in pagos)
    assert resultado.total_cobrado == Decimal("550.00")
    assert len(servicio.cache.instantanea.monthly_payments) == 12
    assert len(repositorio.cargar_todo()["monthly_payments"]) == 12

    deuda = await servicio.deuda_miembro(ana.id, FECHA)
    assert deuda.total_cuotas == Decimal("0.00")
    assert servicio.cache.instantanea.resumen.total_ingresos == Decimal("550.00")


@pytest.mark.asyncio
async def test_lotes_concurrentes_del_mismo_miembro_se_serializan(servicio):
    ana = await nuevo_miembro(servicio)

    resultados = await asyncio.gather(
        servicio.registrar_pronto_pago(ana.id, 50, FECHA),
        servicio.registrar_pronto_pago(ana.id, 50, FECHA),
        return_exceptions=True,
    )

    errores = [r for r in resultados if isinstance(r, Exception)]
    assert len(errores) == 1
    assert isinstance(errores[0], SinMesesPendientes)
    assert len(servicio.cache.instantanea.monthly_payments) == 12


@pytest.mark.asyncio
async def test_fallo_de_almacen_no_toca_el_cache(servicio, repositorio, monkeypatch):
    ana = await nuevo_miembro(servicio)
    antes = servicio.cache.instantanea

    def falla(filas):
        raise ErrorAlmacen("sin conexión")

    monkeypatch.setattr(repositorio, "insertar_pagos_mensuales", falla)

    with pytest.raises(ErrorAlmacen):
        await servicio.registrar_pronto_pago(ana.id, 50, FECHA)

    assert servicio.cache.instantanea is antes


@pytest.mark.asyncio
async def test_pago_adelantado(servicio):
    ana = await nuevo_miembro(servicio, treasury_amount=Decimal("40"))

    pagos = await servicio.registrar_pago_adelantado(ana.id, 80, [(1, 2026), (2, 2026)], FECHA)

    assert [(p.month, p.year) for p in pagos] == [(1, 2026), (2, 2026)]
    assert all(p.amount == Decimal("40.00") for p in pagos)
    deuda = await servicio.deuda_miembro(ana.id, FECHA)
    assert deuda.cuotas.meses_en_mora == 10


@pytest.mark.asyncio
async def test_pago_mensual_regular_y_edicion(servicio):
    ana = await nuevo_miembro(servicio)

    await servicio.registrar_pago_mensual(ana.id, 7, 2025, 30, paid_at=FECHA)
    pago = await servicio.registrar_pago_mensual(ana.id, 7, 2025, 50, paid_at=FECHA)

    filas = servicio.cache.instantanea.monthly_payments
    assert len(filas) == 1
    assert filas[0].id == pago.id
    assert filas[0].amount == Decimal("50.00")

    await servicio.eliminar_pago_mensual(pago.id)
    assert servicio.cache.instantanea.monthly_payments == ()


@pytest.mark.asyncio
async def test_validaciones(servicio):
    ana = await nuevo_miembro(servicio)

    with pytest.raises(ErrorValidacion):
        await servicio.registrar_pago_mensual(ana.id, 13, 2025, 50)
    with pytest.raises(ErrorValidacion):
        await servicio.registrar_pago_mensual(ana.id, 7, 2025, -1)
    with pytest.raises(RecursoNoEncontrado):
        await servicio.registrar_pago_mensual(999, 7, 2025, 50)
    with pytest.raises(ErrorValidacion):
        await servicio.guardar_miembro({"full_name": " "})
    with pytest.raises(RecursoNoEncontrado):
        await servicio.eliminar_gasto(999)


@pytest.mark.asyncio
async def test_abonos_extraordinarios(servicio):
    ana = await nuevo_miembro(servicio)
    cuota = await servicio.guardar_cuota_extraordinaria({"name": "Templo", "amount_per_member": Decimal("100")})

    await servicio.registrar_pago_extraordinario(cuota.id, ana.id, 40)
    deuda = await servicio.deuda_miembro(ana.id, FECHA)
    assert deuda.extraordinarias[0].pendiente == Decimal("60.00")

    await servicio.registrar_pago_extraordinario(cuota.id, ana.id, 60)
    deuda = await servicio.deuda_miembro(ana.id, FECHA)
    assert deuda.extraordinarias == []

    with pytest.raises(RecursoNoEncontrado):
        await servicio.registrar_pago_extraordinario(999, ana.id, 10)
    with pytest.raises(ErrorValidacion):
        await servicio.guardar_cuota_extraordinaria({"name": "Cero", "amount_per_member": 0})

    await servicio.eliminar_cuota_extraordinaria(cuota.id)
    assert servicio.cache.instantanea.extraordinary_payments == ()


@pytest.mark.asyncio
async def test_eliminar_miembro(servicio):
    ana = await nuevo_miembro(servicio)
    await servicio.registrar_pago_mensual(ana.id, 7, 2025, 50)

    await servicio.eliminar_miembro(ana.id)

    assert servicio.cache.instantanea.members == ()
    assert servicio.cache.instantanea.monthly_payments == ()
    with pytest.raises(RecursoNoEncontrado):
        await servicio.eliminar_miembro(ana.id)


@pytest.mark.asyncio
async def test_estado_del_pago_sigue_a_la_fecha(servicio, repositorio):
    ana = await nuevo_miembro(servicio)

    _, lote = await servicio.registrar_pronto_pago(ana.id, 50, FECHA)
    sin_fecha = await servicio.registrar_pago_mensual(ana.id, 7, 2026, 50)

    assert {p.status for p in lote} == {"paid"}
    assert sin_fecha.status == "pending"
    guardados = {p.id: p.status for p in repositorio.cargar_todo()["monthly_payments"]}
    assert guardados[sin_fecha.id] == "pending"
    assert guardados[lote[0].id] == "paid"

    pagado = await servicio.registrar_pago_mensual(ana.id, 7, 2026, 50, paid_at=FECHA)
    assert pagado.id == sin_fecha.id
    assert pagado.status == "paid"
