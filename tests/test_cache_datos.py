import asyncio
import time
from datetime import date
from decimal import Decimal

import pytest

from app.services.cache_datos import CacheDatos, Instantanea, calcular_resumen
from app.services.errores import ErrorAlmacen
from app.services.politicas_financieras import ConfiguracionLogia

from tests.fabricas import abono, cuota_extra, gasto, miembro, pago


def colecciones():
    return {
        "members": [miembro(1, "Ana"), miembro(2, "Beto"), miembro(3, "Carla", status="inactivo")],
        "monthly_payments": [
            pago(1, 7, 2025, 50, id=1),
            pago(1, 8, 2025, 0, tipo="pronto_pago_benefit", id=2),
            pago(2, 7, 2025, 30, id=3),
        ],
        "expenses": [gasto(1, 20, date(2025, 7, 5))],
        "extraordinary_fees": [cuota_extra(1, "Templo", 100)],
        "extraordinary_payments": [abono(1, 1, 1, 40), abono(2, 1, 2, 10)],
        "degree_fees": [],
        "configuracion": ConfiguracionLogia(id=1),
    }


class Cargador:
    def __init__(self, datos=None, demora=0.0, error=None):
        self.datos = datos or colecciones()
        self.demora = demora
        self.error = error
        self.llamadas = 0

    def __call__(self):
        self.llamadas += 1
        if self.demora:
            time.sleep(self.demora)
        if self.error:
            raise self.error
        return self.datos


def resumen_desde_cero(inst: Instantanea):
    return calcular_resumen(inst.members, inst.monthly_payments, inst.expenses, inst.extraordinary_payments)


@pytest.mark.asyncio
async def test_carga_calcula_resumen():
    cache = CacheDatos(Cargador())
    inst = await cache.cargar()

    assert inst.resumen.total_ingresos == Decimal("130.00")
    assert inst.resumen.total_extraordinarios == Decimal("50.00")
    assert inst.resumen.total_gastos == Decimal("20.00")
    assert inst.resumen.balance == Decimal("110.00")
    assert inst.resumen.miembros_activos == 2
    assert inst.resumen.pagos_registrados == 2


@pytest.mark.asyncio
async def test_cargas_concurrentes_se_unen():
    cargador = Cargador(demora=0.05)
    cache = CacheDatos(cargador)

    resultados = await asyncio.gather(cache.cargar(), cache.cargar(), cache.cargar())

    assert cargador.llamadas == 1
    assert resultados[0] is resultados[1] is resultados[2]


@pytest.mark.asyncio
async def test_segunda_carga_usa_la_instantanea():
    cargador = Cargador()
    cache = CacheDatos(cargador)
    await cache.cargar()
    await cache.cargar()
    assert cargador.llamadas == 1


@pytest.mark.asyncio
async def test_fallo_deja_instantanea_vacia_y_notifica():
    cache = CacheDatos(Cargador(error=ErrorAlmacen("sin conexión")))
    eventos = []
    cache.suscribir(lambda inst, error: eventos.append(error))

    with pytest.raises(ErrorAlmacen):
        await cache.cargar()

    assert cache.lista
    assert cache.instantanea.members == ()
    assert cache.instantanea.resumen.total_ingresos == Decimal("0.00")
    assert len(eventos) == 1
    assert isinstance(eventos[0], ErrorAlmacen)


@pytest.mark.asyncio
async def test_timeout_de_carga():
    cache = CacheDatos(Cargador(demora=0.3), timeout=0.05)
    with pytest.raises(ErrorAlmacen):
        await cache.cargar()
    assert cache.instantanea.members == ()


@pytest.mark.asyncio
async def test_recarga_sin_cambios_es_idempotente():
    cache = CacheDatos(Cargador())
    antes = (await cache.cargar()).resumen
    despues = (await cache.invalidar()).resumen
    assert antes == despues


@pytest.mark.asyncio
async def test_mutaciones_mantienen_el_resumen_consistente():
    cache = CacheDatos(Cargador())
    await cache.cargar()

    cache.upsert_pago_mensual(pago(2, 8, 2025, 50, id=4))
    cache.upsert_pago_mensual(pago(2, 7, 2025, 50, id=3))
    cache.upsert_pago_extraordinario(abono(3, 1, 2, 90))
    cache.eliminar_gasto(1)
    cache.upsert_pagos_mensuales([pago(1, 9, 2025, 50, id=5), pago(1, 10, 2025, 50, id=6)])

    inst = cache.instantanea
    assert inst.resumen == resumen_desde_cero(inst)
    assert inst.resumen.total_ingresos == Decimal("390.00")
    assert inst.resumen.total_gastos == Decimal("0.00")


@pytest.mark.asyncio
async def test_observadores_se_notifican_antes_de_retornar():
    cache = CacheDatos(Cargador())
    await cache.cargar()
    vistos = []
    cancelar = cache.suscribir(lambda inst, error: vistos.append(len(inst.expenses)))

    cache.upsert_gasto(gasto(2, 15, date(2025, 7, 9)))
    assert vistos == [2]

    cancelar()
    cache.eliminar_gasto(2)
    assert vistos == [2]


@pytest.mark.asyncio
async def test_eliminar_miembro_en_cascada():
    cache = CacheDatos(Cargador())
    await cache.cargar()

    cache.eliminar_miembro(1)

    inst = cache.instantanea
    assert inst.miembro(1) is None
    assert all(p.member_id != 1 for p in inst.monthly_payments)
    assert all(p.member_id != 1 for p in inst.extraordinary_payments)
    assert inst.resumen.total_ingresos == Decimal("40.00")


@pytest.mark.asyncio
async def test_eliminar_cuota_extraordinaria_en_cascada():
    cache = CacheDatos(Cargador())
    await cache.cargar()

    cache.eliminar_cuota_extraordinaria(1)

    assert cache.instantanea.extraordinary_fees == ()
    assert cache.instantanea.extraordinary_payments == ()


def test_mutacion_antes_de_cargar_no_hace_nada():
    cache = CacheDatos(Cargador())
    eventos = []
    cache.suscribir(lambda inst, error: eventos.append(error))

    cache.upsert_gasto(gasto(9, 10, date(2025, 7, 1)))

    assert not cache.lista
    assert eventos == []


def test_tesorero_mas_reciente_y_venerable_maestro():
    from datetime import datetime

    inst = Instantanea.construir(members=[
        miembro(1, "Ana", is_treasurer=True, created_at=datetime(2020, 1, 1)),
        miembro(2, "Beto", is_treasurer=True, created_at=datetime(2024, 1, 1)),
        miembro(3, "Carla", cargo_logial="venerable_maestro"),
    ])
    assert inst.tesorero.full_name == "Beto"
    assert inst.venerable_maestro.full_name == "Carla"


@pytest.mark.asyncio
async def test_mutacion_durante_recarga_no_se_pierde():
    cache = CacheDatos(Cargador(demora=0.1))
    await cache.cargar()

    tarea = asyncio.ensure_future(cache.invalidar())
    await asyncio.sleep(0.02)
    # confirmado en la base después de que la consulta ya leyó
    cache.upsert_pago_mensual(pago(2, 9, 2025, 50, id=99))
    cache.eliminar_gasto(1)
    inst = await tarea

    assert 99 in {p.id for p in inst.monthly_payments}
    assert inst.expenses == ()
    assert inst.resumen == resumen_desde_cero(inst)
    assert cache.instantanea is inst


@pytest.mark.asyncio
async def test_mutaciones_de_una_carga_fallida_no_se_reaplican_despues():
    cargador = Cargador(demora=0.1)
    cache = CacheDatos(cargador)
    await cache.cargar()

    cargador.error = ErrorAlmacen("sin conexión")
    tarea = asyncio.ensure_future(cache.invalidar())
    await asyncio.sleep(0.02)
    cache.upsert_pago_mensual(pago(2, 9, 2025, 50, id=99))
    with pytest.raises(ErrorAlmacen):
        await tarea

    cargador.error = None
    cargador.demora = 0.0
    inst = await cache.invalidar()
    assert 99 not in {p.id for p in inst.monthly_payments}
