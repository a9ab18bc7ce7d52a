import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.database import Base, SessionLocal, engine
from app.services.cache_datos import CacheDatos
from app.services.configuracion_service import ServicioConfiguracion
from app.services.errores import (
    ConfiguracionNoResuelta, ErrorAlmacen, ErrorTesoreria, ErrorValidacion, MontoNoMultiplo,
    RecursoNoEncontrado, SeleccionInvalida, SinMesesPendientes,
)
from app.services.repositorio import RepositorioTesoreria
from app.services.tesoreria_service import ServicioTesoreria

# Importamos todos los routers
from app.routers import (
    comprobantes, configuracion, cuotas_extraordinarias, gastos, miembros, reportes, tesoreria,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Código de dominio → HTTP
ESTADOS_HTTP = {
    ErrorValidacion: 422,
    MontoNoMultiplo: 422,
    SeleccionInvalida: 422,
    SinMesesPendientes: 409,
    ConfiguracionNoResuelta: 409,
    RecursoNoEncontrado: 404,
    ErrorAlmacen: 503,
}


def estado_http(exc: ErrorTesoreria) -> int:
    for tipo, estado in ESTADOS_HTTP.items():
        if isinstance(exc, tipo):
            return estado
    return 400


def crear_app(session_factory=SessionLocal, bind=engine) -> FastAPI:
    """
    Arma la aplicación con su propio caché y servicios.
    Las pruebas pasan un session_factory/bind en memoria.
    """
    repositorio = RepositorioTesoreria(session_factory)
    cache = CacheDatos(repositorio.cargar_todo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=bind)
        try:
            await cache.cargar()
        except ErrorAlmacen as exc:
            # Se arranca con la instantánea vacía; POST /api/tesoreria/refrescar recarga
            logger.warning(f"Carga inicial del caché falló: {exc.mensaje}")
        yield

    app = FastAPI(title="Tesorería de la Logia", lifespan=lifespan)
    app.state.cache = cache
    app.state.repositorio = repositorio
    app.state.tesoreria = ServicioTesoreria(repositorio, cache)
    app.state.configuracion = ServicioConfiguracion(repositorio, cache)

    @app.exception_handler(ErrorTesoreria)
    async def _error_tesoreria_handler(request: Request, exc: ErrorTesoreria):
        estado = estado_http(exc)
        if estado >= 500:
            logger.warning(f"{request.method} {request.url.path}: {exc.mensaje}")
        return JSONResponse(exc.a_dict(), status_code=estado)

    app.include_router(miembros.router)
    app.include_router(tesoreria.router)
    app.include_router(cuotas_extraordinarias.router)
    app.include_router(gastos.router)
    app.include_router(reportes.router)
    app.include_router(configuracion.router)
    app.include_router(comprobantes.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "cache_listo": cache.lista}

    return app


app = crear_app()
