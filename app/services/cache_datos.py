"""
Caché de Lectura en Memoria
app/services/cache_datos.py

Una instantánea inmutable con TODAS las colecciones (miembros, pagos
mensuales, gastos, cuotas extraordinarias y sus pagos, derechos de grado,
configuración) más un resumen precalculado.

Dos formas de actualizarla:
  1. Carga completa (`cargar`): reemplaza la instantánea desde la base de
     datos. Cargas concurrentes se unen en UNA sola consulta en curso.
  2. Mutación puntual (`upsert_*` / `eliminar_*`): cambia una colección,
     recalcula el resumen completo y notifica a los observadores antes de
     retornar. Colección y resumen cambian juntos, en un solo paso.
     Las mutaciones que llegan mientras una carga está en vuelo se
     reaplican sobre la instantánea nueva.

Si la carga falla (timeout o error de base de datos) la instantánea queda
VACÍA pero bien formada y el error se propaga una vez, sin reintentos.

La instancia la crea la aplicación (app.main) y se inyecta a quien la use.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from app.config import CACHE_FETCH_TIMEOUT
from app.models import CargoLogial, EstadoMiembro, TipoPago
from app.services.errores import ErrorAlmacen
from app.services.politicas_financieras import CONFIG_DEFECTO, ConfiguracionLogia, a_decimal

logger = logging.getLogger(__name__)

CERO = Decimal("0.00")

Observador = Callable[["Instantanea", Optional[Exception]], None]
Cambio = Callable[["Instantanea"], Dict]


@dataclass(frozen=True)
class ResumenCache:
    total_ingresos: Decimal = CERO
    total_gastos: Decimal = CERO
    total_extraordinarios: Decimal = CERO
    balance: Decimal = CERO
    miembros_activos: int = 0
    pagos_registrados: int = 0

    def a_dict(self) -> dict:
        return {
            "total_income": float(self.total_ingresos),
            "total_expenses": float(self.total_gastos),
            "total_extraordinary_income": float(self.total_extraordinarios),
            "balance": float(self.balance),
            "member_count": self.miembros_activos,
            "paid_payments_count": self.pagos_registrados,
        }


def calcular_resumen(members, monthly_payments, expenses, extraordinary_payments) -> ResumenCache:
    """Siempre desde cero sobre las colecciones completas (nunca incremental)."""
    # Los meses gratis del pronto pago no tienen valor monetario
    pagados = [p for p in monthly_payments if p.payment_type != TipoPago.PRONTO_PAGO_BENEFICIO.value]

    ingresos_cuotas = sum((a_decimal(p.amount) for p in pagados), CERO)
    gastos = sum((a_decimal(e.amount) for e in expenses), CERO)
    extraordinarios = sum((a_decimal(p.amount_paid) for p in extraordinary_payments), CERO)

    return ResumenCache(
        total_ingresos=ingresos_cuotas + extraordinarios,
        total_gastos=gastos,
        total_extraordinarios=extraordinarios,
        balance=ingresos_cuotas + extraordinarios - gastos,
        miembros_activos=sum(1 for m in members if m.status == EstadoMiembro.ACTIVO.value),
        pagos_registrados=len(pagados),
    )


@dataclass(frozen=True)
class Instantanea:
    members: Tuple = ()
    monthly_payments: Tuple = ()
    expenses: Tuple = ()
    extraordinary_fees: Tuple = ()
    extraordinary_payments: Tuple = ()
    degree_fees: Tuple = ()
    configuracion: ConfiguracionLogia = CONFIG_DEFECTO
    resumen: ResumenCache = field(default_factory=ResumenCache)
    actualizado_en: float = 0.0

    @classmethod
    def construir(cls, **colecciones) -> "Instantanea":
        base = cls(**{k: (tuple(v) if k != "configuracion" else v) for k, v in colecciones.items()})
        return base._con_resumen()

    @classmethod
    def vacia(cls) -> "Instantanea":
        return cls(actualizado_en=time.time())

    def reemplazar(self, **cambios) -> "Instantanea":
        return replace(self, **cambios)._con_resumen()

    def _con_resumen(self) -> "Instantanea":
        return replace(
            self,
            resumen=calcular_resumen(
                self.members, self.monthly_payments, self.expenses, self.extraordinary_payments
            ),
            actualizado_en=time.time(),
        )

    # ── Vistas derivadas ──

    @property
    def miembros_activos(self) -> List:
        return [m for m in self.members if m.status == EstadoMiembro.ACTIVO.value]

    @property
    def tesorero(self):
        """Si hay varios marcados (error histórico), el creado más recientemente."""
        tesoreros = [m for m in self.members if m.is_treasurer]
        if not tesoreros:
            return None
        return max(
            tesoreros,
            key=lambda m: m.created_at.timestamp() if m.created_at else float("-inf"),
        )

    @property
    def venerable_maestro(self):
        return next(
            (m for m in self.members if m.cargo_logial == CargoLogial.VENERABLE_MAESTRO.value),
            None,
        )

    @property
    def cuota_mensual(self) -> Decimal:
        return self.configuracion.monthly_fee_base

    @property
    def nombre_institucion(self) -> str:
        return self.configuracion.institution_name

    def miembro(self, member_id):
        return next((m for m in self.members if m.id == member_id), None)


def _upsert(coleccion: Tuple, item, al_inicio: bool = False) -> Tuple:
    nueva = list(coleccion)
    for i, actual in enumerate(nueva):
        if actual.id == item.id:
            nueva[i] = item
            return tuple(nueva)
    if al_inicio:
        nueva.insert(0, item)
    else:
        nueva.append(item)
    return tuple(nueva)


def _sin(coleccion: Iterable, predicado) -> Tuple:
    return tuple(x for x in coleccion if not predicado(x))


class CacheDatos:
    def __init__(self, cargador: Callable[[], Dict], timeout: float = CACHE_FETCH_TIMEOUT):
        """
        Args:
            cargador: función síncrona que retorna un dict con las colecciones
                      (members, monthly_payments, ..., configuracion)
            timeout:  plazo global de la carga completa, en segundos
        """
        self._cargador = cargador
        self._timeout = timeout
        self._instantanea: Optional[Instantanea] = None
        self._en_curso: Optional[asyncio.Future] = None
        self._observadores: List[Observador] = []
        self._durante_carga: Optional[List[Cambio]] = None

    @property
    def lista(self) -> bool:
        return self._instantanea is not None

    @property
    def instantanea(self) -> Instantanea:
        return self._instantanea if self._instantanea is not None else Instantanea.vacia()

    def suscribir(self, observador: Observador) -> Callable[[], None]:
        """Registra un observador; retorna la función para darlo de baja."""
        self._observadores.append(observador)

        def cancelar():
            if observador in self._observadores:
                self._observadores.remove(observador)

        return cancelar

    def _notificar(self, error: Optional[Exception] = None) -> None:
        for observador in list(self._observadores):
            observador(self.instantanea, error)

    def notificar_error(self, error: Exception) -> None:
        """Avisa un fallo de escritura sin cambiar la instantánea."""
        self._notificar(error)

    # ══════════════════════════════════════
    # CARGA COMPLETA
    # ══════════════════════════════════════

    async def cargar(self, forzar: bool = False) -> Instantanea:
        if not forzar and self._instantanea is not None:
            return self._instantanea

        if self._en_curso is None:
            self._en_curso = asyncio.ensure_future(self._refrescar())
        # shield: si un llamador se cancela, la carga sigue para los demás
        return await asyncio.shield(self._en_curso)

    async def invalidar(self) -> Instantanea:
        return await self.cargar(forzar=True)

    async def _refrescar(self) -> Instantanea:
        inicio = time.monotonic()
        # Mutaciones confirmadas mientras la consulta está en vuelo
        self._durante_carga = []
        try:
            colecciones = await asyncio.wait_for(
                asyncio.to_thread(self._cargador), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            self._instantanea = Instantanea.vacia()
            logger.warning(f"Carga del caché superó {self._timeout}s; se usa instantánea vacía")
            self._notificar(exc)
            raise ErrorAlmacen("Tiempo de espera agotado al cargar los datos", exc) from exc
        except ErrorAlmacen as exc:
            self._instantanea = Instantanea.vacia()
            logger.warning(f"Error cargando caché: {exc.mensaje}; se usa instantánea vacía")
            self._notificar(exc)
            raise
        finally:
            self._en_curso = None
            pendientes, self._durante_carga = self._durante_carga, None

        instantanea = Instantanea.construir(**colecciones)
        # La consulta pudo leer antes del commit: se reaplican (upsert/borrado son idempotentes)
        for cambio in pendientes:
            instantanea = instantanea.reemplazar(**cambio(instantanea))
        if pendientes:
            logger.info(f"{len(pendientes)} mutación(es) reaplicadas sobre la carga nueva")

        self._instantanea = instantanea
        logger.info(
            f"Caché cargado en {time.monotonic() - inicio:.2f}s: "
            f"{len(self._instantanea.members)} miembros, "
            f"{len(self._instantanea.monthly_payments)} pagos mensuales"
        )
        self._notificar()
        return self._instantanea

    # ══════════════════════════════════════
    # MUTACIONES PUNTUALES
    # ══════════════════════════════════════

    def _mutar(self, cambio: Cambio) -> None:
        """`cambio` recibe la instantánea actual y retorna las colecciones nuevas."""
        if self._durante_carga is not None:
            self._durante_carga.append(cambio)
        if self._instantanea is None:
            # Aún no cargado: la próxima carga traerá el cambio desde la base
            return
        self._instantanea = self._instantanea.reemplazar(**cambio(self._instantanea))
        self._notificar()

    def upsert_pago_mensual(self, pago) -> None:
        self._mutar(lambda a: {"monthly_payments": _upsert(a.monthly_payments, pago)})

    def upsert_pagos_mensuales(self, pagos: Iterable) -> None:
        """Varias filas (un lote) en UNA sola mutación y notificación."""
        pagos = list(pagos)

        def cambio(actual):
            coleccion = actual.monthly_payments
            for pago in pagos:
                coleccion = _upsert(coleccion, pago)
            return {"monthly_payments": coleccion}

        self._mutar(cambio)

    def eliminar_pago_mensual(self, pago_id) -> None:
        self._mutar(lambda a: {"monthly_payments": _sin(a.monthly_payments, lambda p: p.id == pago_id)})

    def upsert_miembro(self, miembro) -> None:
        self._mutar(lambda a: {
            "members": tuple(sorted(_upsert(a.members, miembro), key=lambda m: m.full_name or "")),
        })

    def eliminar_miembro(self, member_id) -> None:
        """Cascada: también sus pagos mensuales y extraordinarios."""
        self._mutar(lambda a: {
            "members": _sin(a.members, lambda m: m.id == member_id),
            "monthly_payments": _sin(a.monthly_payments, lambda p: p.member_id == member_id),
            "extraordinary_payments": _sin(a.extraordinary_payments, lambda p: p.member_id == member_id),
        })

    def upsert_gasto(self, gasto) -> None:
        self._mutar(lambda a: {"expenses": _upsert(a.expenses, gasto, al_inicio=True)})

    def eliminar_gasto(self, gasto_id) -> None:
        self._mutar(lambda a: {"expenses": _sin(a.expenses, lambda e: e.id == gasto_id)})

    def upsert_derecho_grado(self, derecho) -> None:
        self._mutar(lambda a: {"degree_fees": _upsert(a.degree_fees, derecho, al_inicio=True)})

    def eliminar_derecho_grado(self, derecho_id) -> None:
        self._mutar(lambda a: {"degree_fees": _sin(a.degree_fees, lambda d: d.id == derecho_id)})

    def upsert_cuota_extraordinaria(self, cuota) -> None:
        self._mutar(lambda a: {"extraordinary_fees": _upsert(a.extraordinary_fees, cuota, al_inicio=True)})

    def eliminar_cuota_extraordinaria(self, cuota_id) -> None:
        """Cascada: también los abonos de esa cuota."""
        self._mutar(lambda a: {
            "extraordinary_fees": _sin(a.extraordinary_fees, lambda c: c.id == cuota_id),
            "extraordinary_payments": _sin(
                a.extraordinary_payments, lambda p: p.extraordinary_fee_id == cuota_id
            ),
        })

    def upsert_pago_extraordinario(self, pago) -> None:
        self._mutar(lambda a: {
            "extraordinary_payments": _upsert(a.extraordinary_payments, pago, al_inicio=True),
        })

    def eliminar_pago_extraordinario(self, pago_id) -> None:
        self._mutar(lambda a: {
            "extraordinary_payments": _sin(a.extraordinary_payments, lambda p: p.id == pago_id),
        })

    def establecer_configuracion(self, configuracion: ConfiguracionLogia) -> None:
        self._mutar(lambda a: {"configuracion": configuracion})
