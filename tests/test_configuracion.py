from decimal import Decimal

import pytest

from app.services.cache_datos import CacheDatos
from app.services.configuracion_service import ServicioConfiguracion, validar_cambios
from app.services.errores import ConfiguracionNoResuelta, ErrorAlmacen, ErrorValidacion
from app.services.politicas_financieras import (
    CONFIG_DEFECTO, ConfiguracionLogia, a_decimal, configuracion_desde_fila, cuota_efectiva,
)
from app.models import Settings

from tests.fabricas import miembro


def test_configuracion_desde_fila_usa_defaults():
    fila = Settings(id=3, institution_name="", monthly_fee_base=None)
    config = configuracion_desde_fila(fila)

    assert config.id == 3
    assert config.institution_name == CONFIG_DEFECTO.institution_name
    assert config.monthly_fee_base == CONFIG_DEFECTO.monthly_fee_base
    assert configuracion_desde_fila(None) is CONFIG_DEFECTO
    assert not CONFIG_DEFECTO.resuelta


def test_cuota_efectiva():
    assert cuota_efectiva(miembro(cuota=Decimal("30")), 50) == Decimal("30.00")
    assert cuota_efectiva(miembro(cuota=Decimal("0")), 50) == Decimal("50.00")
    assert cuota_efectiva(miembro(), "45.5") == Decimal("45.50")


def test_con_cambios_no_muta_el_original():
    original = ConfiguracionLogia(id=1)
    sombra = original.con_cambios(monthly_fee_base=60)
    assert sombra.monthly_fee_base == Decimal("60.00")
    assert original.monthly_fee_base == CONFIG_DEFECTO.monthly_fee_base


@pytest.mark.parametrize("cambios", [
    {"id": 5},
    {"monthly_fee_base": 0},
    {"monthly_fee_base": None},
    {"institution_name": "  "},
])
def test_validar_cambios_rechaza(cambios):
    with pytest.raises(ErrorValidacion):
        validar_cambios(cambios)


@pytest.mark.asyncio
async def test_actualizar_reemplaza_en_cache(servicio_configuracion, cache):
    nueva = await servicio_configuracion.actualizar({"institution_name": "Logia Luz", "monthly_fee_base": 60})

    assert nueva.institution_name == "Logia Luz"
    assert cache.instantanea.configuracion == nueva
    assert cache.instantanea.cuota_mensual == Decimal("60.00")


@pytest.mark.asyncio
async def test_reintenta_una_vez_sin_id(repositorio):
    cargas = []

    def cargador():
        cargas.append(1)
        datos = repositorio.cargar_todo()
        if len(cargas) == 1:
            datos["configuracion"] = CONFIG_DEFECTO
        return datos

    cache = CacheDatos(cargador)
    servicio = ServicioConfiguracion(repositorio, cache)

    nueva = await servicio.actualizar({"institution_name": "Logia Luz"})

    assert len(cargas) == 2
    assert nueva.resuelta
    assert cache.instantanea.configuracion.institution_name == "Logia Luz"


@pytest.mark.asyncio
async def test_sin_id_tras_reintento_notifica_error(repositorio):
    def cargador():
        datos = repositorio.cargar_todo()
        datos["configuracion"] = CONFIG_DEFECTO
        return datos

    cache = CacheDatos(cargador)
    errores = []
    cache.suscribir(lambda inst, error: errores.append(error))
    servicio = ServicioConfiguracion(repositorio, cache)

    with pytest.raises(ConfiguracionNoResuelta):
        await servicio.actualizar({"institution_name": "Logia Luz"})

    assert isinstance(errores[-1], ConfiguracionNoResuelta)
    assert cache.instantanea.configuracion is CONFIG_DEFECTO


@pytest.mark.asyncio
async def test_fallo_de_almacen_descarta_la_sombra(servicio_configuracion, repositorio, cache, monkeypatch):
    antes = (await cache.cargar()).configuracion

    def falla(*args):
        raise ErrorAlmacen("sin conexión")

    monkeypatch.setattr(repositorio, "actualizar_configuracion", falla)

    with pytest.raises(ErrorAlmacen):
        await servicio_configuracion.actualizar({"monthly_fee_base": 99})

    assert cache.instantanea.configuracion == antes


@pytest.mark.parametrize("valor, esperado", [
    (None, Decimal("0.00")),
    (10.005, Decimal("10.01")),
    ("45.5", Decimal("45.50")),
    (Decimal("3"), Decimal("3.00")),
])
def test_a_decimal(valor, esperado):
    assert a_decimal(valor) == esperado


@pytest.mark.parametrize("valor", ["abc", "", float("nan"), float("-inf"), [1]])
def test_a_decimal_rechaza_montos_invalidos(valor):
    with pytest.raises(ErrorValidacion):
        a_decimal(valor)
