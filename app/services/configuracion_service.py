"""
Servicio de Configuración de la Logia
app/services/configuracion_service.py

Actualización en dos fases:
    1. Se arma una configuración "sombra" con los cambios
    2. Se persiste; solo si la base confirma se reemplaza en el caché

Si falla, la sombra se descarta y los observadores del caché reciben el
error. Si la configuración aún no tiene id real (fila recién creada o
caché vacío) se fuerza una recarga y se reintenta UNA vez.
"""

import asyncio
import logging

from app.services.cache_datos import CacheDatos
from app.services.errores import ConfiguracionNoResuelta, ErrorTesoreria, ErrorValidacion
from app.services.politicas_financieras import CAMPOS_EDITABLES, ConfiguracionLogia, a_decimal
from app.services.repositorio import RepositorioTesoreria

logger = logging.getLogger(__name__)


def validar_cambios(cambios: dict) -> dict:
    desconocidos = set(cambios) - set(CAMPOS_EDITABLES)
    if desconocidos:
        raise ErrorValidacion(f"Campos no editables: {', '.join(sorted(desconocidos))}")

    limpios = dict(cambios)
    if "monthly_fee_base" in limpios:
        if limpios["monthly_fee_base"] is None or a_decimal(limpios["monthly_fee_base"]) <= 0:
            raise ErrorValidacion("La cuota mensual base debe ser mayor a 0")
        limpios["monthly_fee_base"] = a_decimal(limpios["monthly_fee_base"])
    if "institution_name" in limpios and not (limpios["institution_name"] or "").strip():
        raise ErrorValidacion("El nombre de la institución es obligatorio")
    return limpios


class ServicioConfiguracion:
    def __init__(self, repositorio: RepositorioTesoreria, cache: CacheDatos):
        self.repo = repositorio
        self.cache = cache

    async def obtener(self) -> ConfiguracionLogia:
        instantanea = await self.cache.cargar()
        return instantanea.configuracion

    async def actualizar(self, cambios: dict) -> ConfiguracionLogia:
        limpios = validar_cambios(cambios)
        try:
            return await self._intentar(limpios, reintentar=True)
        except ErrorTesoreria as exc:
            logger.warning(f"No se pudo actualizar la configuración: {exc.mensaje}")
            self.cache.notificar_error(exc)
            raise

    async def _intentar(self, cambios: dict, reintentar: bool) -> ConfiguracionLogia:
        actual = (await self.cache.cargar()).configuracion
        try:
            if not actual.resuelta:
                raise ConfiguracionNoResuelta(
                    "No se encontró configuración válida. Recargue la página."
                )
            sombra = actual.con_cambios(**cambios)
            guardada = await asyncio.to_thread(
                self.repo.actualizar_configuracion, sombra.id, cambios
            )
        except ConfiguracionNoResuelta:
            if not reintentar:
                raise
            logger.info("Configuración sin id; recargando antes de reintentar")
            await self.cache.invalidar()
            return await self._intentar(cambios, reintentar=False)

        self.cache.establecer_configuracion(guardada)
        logger.info(f"Configuración actualizada: {', '.join(sorted(cambios))}")
        return guardada
