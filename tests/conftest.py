import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.main import crear_app
from app.services.cache_datos import CacheDatos
from app.services.configuracion_service import ServicioConfiguracion
from app.services.repositorio import RepositorioTesoreria
from app.services.tesoreria_service import ServicioTesoreria
from app.utils.security import crear_token


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def repositorio(session_factory):
    return RepositorioTesoreria(session_factory)


@pytest.fixture
def cache(repositorio):
    return CacheDatos(repositorio.cargar_todo)


@pytest.fixture
def servicio(repositorio, cache):
    return ServicioTesoreria(repositorio, cache)


@pytest.fixture
def servicio_configuracion(repositorio, cache):
    return ServicioConfiguracion(repositorio, cache)


@pytest.fixture
def client(session_factory, engine):
    app = crear_app(session_factory=session_factory, bind=engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth():
    return {"Authorization": f"Bearer {crear_token('tesorero')}"}


@pytest.fixture
def admin():
    return {"Authorization": f"Bearer {crear_token('admin', is_admin=True)}"}
