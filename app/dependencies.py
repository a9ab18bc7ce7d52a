"""
Dependencies compartidas por los routers.

El caché y los servicios los crea app.main al arrancar y los guarda en
app.state; aquí solo se leen.
"""

from fastapi import Depends, Request

from app.services.cache_datos import CacheDatos, Instantanea
from app.services.configuracion_service import ServicioConfiguracion
from app.services.tesoreria_service import ServicioTesoreria


def obtener_cache(request: Request) -> CacheDatos:
    return request.app.state.cache


def obtener_servicio(request: Request) -> ServicioTesoreria:
    return request.app.state.tesoreria


def obtener_servicio_configuracion(request: Request) -> ServicioConfiguracion:
    return request.app.state.configuracion


async def obtener_instantanea(cache: CacheDatos = Depends(obtener_cache)) -> Instantanea:
    """Carga el caché la primera vez; luego es lectura en memoria."""
    return await cache.cargar()
