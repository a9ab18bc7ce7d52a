"""
Servicio de Tesorería (orquestador de escrituras)
app/services/tesoreria_service.py

Flujo de TODA escritura:
    1. Validar contra la instantánea del caché
    2. Persistir en la base (repositorio, en un hilo aparte)
    3. Solo si la base confirmó: parchar el caché

Si el paso 2 falla se propaga ErrorAlmacen y el caché queda intacto.

Los lotes (pronto pago / pago adelantado) de un mismo miembro se
serializan con un asyncio.Lock por miembro: el segundo lote calcula sus
pendientes sobre el caché ya actualizado por el primero.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from app.models import TipoPago
from app.services.cache_datos import CacheDatos
from app.services.deuda_cuotas_service import (
    DeudaMiembro, calcular_deuda_total, cuentas_por_cobrar,
)
from app.services.errores import ErrorValidacion, RecursoNoEncontrado
from app.services.pagos_lote_service import (
    ResultadoProntoPago, asignar_pago_adelantado, asignar_pronto_pago, estado_pago,
)
from app.services.politicas_financieras import a_decimal, cuota_efectiva
from app.services.repositorio import RepositorioTesoreria

logger = logging.getLogger(__name__)


class ServicioTesoreria:
    def __init__(self, repositorio: RepositorioTesoreria, cache: CacheDatos):
        self.repo = repositorio
        self.cache = cache
        self._locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _miembro(self, member_id):
        instantanea = await self.cache.cargar()
        miembro = instantanea.miembro(member_id)
        if miembro is None:
            raise RecursoNoEncontrado("Miembro no encontrado")
        return miembro

    # ══════════════════════════════════════
    # CONSULTAS
    # ══════════════════════════════════════

    async def deuda_miembro(self, member_id, fecha_referencia: Optional[date] = None) -> DeudaMiembro:
        miembro = await self._miembro(member_id)
        return calcular_deuda_total(miembro, self.cache.instantanea, fecha_referencia)

    async def cuentas_por_cobrar(self, fecha_referencia: Optional[date] = None) -> List[DeudaMiembro]:
        instantanea = await self.cache.cargar()
        return cuentas_por_cobrar(instantanea, fecha_referencia)

    # ══════════════════════════════════════
    # PAGOS MENSUALES
    # ══════════════════════════════════════

    async def registrar_pago_mensual(
        self,
        member_id,
        month: int,
        year: int,
        amount,
        paid_at: Optional[date] = None,
        receipt_url: Optional[str] = None,
    ):
        """Alta o edición del pago de UN mes (tipo regular)."""
        if not 1 <= int(month) <= 12:
            raise ErrorValidacion("El mes debe estar entre 1 y 12")
        monto = a_decimal(amount)
        if monto < 0:
            raise ErrorValidacion("El monto no puede ser negativo")
        await self._miembro(member_id)

        datos = {
            "amount": monto,
            "paid_at": paid_at,
            "status": estado_pago(paid_at),
            "payment_type": TipoPago.REGULAR.value,
            "receipt_url": receipt_url,
        }
        async with self._locks[member_id]:
            pago = await asyncio.to_thread(
                self.repo.guardar_pago_mensual, member_id, int(month), int(year), datos
            )
            self.cache.upsert_pago_mensual(pago)

        logger.info(f"Pago mensual {month}/{year} registrado para miembro {member_id}: ${monto}")
        return pago

    async def eliminar_pago_mensual(self, pago_id) -> None:
        if not await asyncio.to_thread(self.repo.eliminar_pago_mensual, pago_id):
            raise RecursoNoEncontrado("Pago no encontrado")
        self.cache.eliminar_pago_mensual(pago_id)

    async def registrar_pronto_pago(
        self,
        member_id,
        monto_por_mes,
        fecha_pago: date,
        anio_fiscal: Optional[int] = None,
        receipt_url: Optional[str] = None,
    ) -> Tuple[ResultadoProntoPago, list]:
        miembro = await self._miembro(member_id)

        async with self._locks[member_id]:
            resultado = asignar_pronto_pago(
                miembro,
                self.cache.instantanea.monthly_payments,
                monto_por_mes,
                fecha_pago,
                anio_fiscal=anio_fiscal,
                receipt_url=receipt_url,
            )
            pagos = await asyncio.to_thread(self.repo.insertar_pagos_mensuales, resultado.filas)
            self.cache.upsert_pagos_mensuales(pagos)

        logger.info(f"Pronto pago {resultado.group_id}: {resultado.descripcion(miembro.full_name)}")
        return resultado, pagos

    async def registrar_pago_adelantado(
        self,
        member_id,
        monto_total,
        meses_seleccionados: Sequence[Tuple[int, int]],
        fecha_pago: date,
        anio_fiscal: Optional[int] = None,
        receipt_url: Optional[str] = None,
    ) -> list:
        miembro = await self._miembro(member_id)

        async with self._locks[member_id]:
            instantanea = self.cache.instantanea
            filas = asignar_pago_adelantado(
                monto_total,
                cuota_efectiva(miembro, instantanea.cuota_mensual),
                meses_seleccionados,
                fecha_pago,
                member_id=member_id,
                pagos_existentes=instantanea.monthly_payments,
                anio_fiscal=anio_fiscal,
                receipt_url=receipt_url,
            )
            pagos = await asyncio.to_thread(self.repo.insertar_pagos_mensuales, filas)
            self.cache.upsert_pagos_mensuales(pagos)

        logger.info(
            f"Pago adelantado de ${a_decimal(monto_total)} para {miembro.full_name}: "
            f"{len(pagos)} meses"
        )
        return pagos

    # ══════════════════════════════════════
    # MIEMBROS
    # ══════════════════════════════════════

    async def guardar_miembro(self, datos: dict, member_id=None):
        if member_id is None and not (datos.get("full_name") or "").strip():
            raise ErrorValidacion("El nombre es obligatorio")
        miembro = await asyncio.to_thread(self.repo.guardar_miembro, datos, member_id)
        if miembro is None:
            raise RecursoNoEncontrado("Miembro no encontrado")
        self.cache.upsert_miembro(miembro)
        return miembro

    async def eliminar_miembro(self, member_id) -> None:
        if not await asyncio.to_thread(self.repo.eliminar_miembro, member_id):
            raise RecursoNoEncontrado("Miembro no encontrado")
        self.cache.eliminar_miembro(member_id)
        self._locks.pop(member_id, None)
        logger.info(f"Miembro {member_id} eliminado junto con sus pagos")

    # ══════════════════════════════════════
    # GASTOS Y DERECHOS DE GRADO
    # ══════════════════════════════════════

    async def guardar_gasto(self, datos: dict, gasto_id=None):
        gasto = await asyncio.to_thread(self.repo.guardar_gasto, datos, gasto_id)
        if gasto is None:
            raise RecursoNoEncontrado("Gasto no encontrado")
        self.cache.upsert_gasto(gasto)
        return gasto

    async def eliminar_gasto(self, gasto_id) -> None:
        if not await asyncio.to_thread(self.repo.eliminar_gasto, gasto_id):
            raise RecursoNoEncontrado("Gasto no encontrado")
        self.cache.eliminar_gasto(gasto_id)

    async def guardar_derecho_grado(self, datos: dict, derecho_id=None):
        derecho = await asyncio.to_thread(self.repo.guardar_derecho_grado, datos, derecho_id)
        if derecho is None:
            raise RecursoNoEncontrado("Derecho de grado no encontrado")
        self.cache.upsert_derecho_grado(derecho)
        return derecho

    async def eliminar_derecho_grado(self, derecho_id) -> None:
        if not await asyncio.to_thread(self.repo.eliminar_derecho_grado, derecho_id):
            raise RecursoNoEncontrado("Derecho de grado no encontrado")
        self.cache.eliminar_derecho_grado(derecho_id)

    # ══════════════════════════════════════
    # CUOTAS EXTRAORDINARIAS
    # ══════════════════════════════════════

    async def guardar_cuota_extraordinaria(self, datos: dict, cuota_id=None):
        if "amount_per_member" in datos and a_decimal(datos["amount_per_member"]) <= 0:
            raise ErrorValidacion("El monto por miembro debe ser mayor a 0")
        cuota = await asyncio.to_thread(self.repo.guardar_cuota_extraordinaria, datos, cuota_id)
        if cuota is None:
            raise RecursoNoEncontrado("Cuota extraordinaria no encontrada")
        self.cache.upsert_cuota_extraordinaria(cuota)
        return cuota

    async def eliminar_cuota_extraordinaria(self, cuota_id) -> None:
        if not await asyncio.to_thread(self.repo.eliminar_cuota_extraordinaria, cuota_id):
            raise RecursoNoEncontrado("Cuota extraordinaria no encontrada")
        self.cache.eliminar_cuota_extraordinaria(cuota_id)

    async def registrar_pago_extraordinario(
        self,
        cuota_id,
        member_id,
        amount_paid,
        payment_date: Optional[date] = None,
        receipt_url: Optional[str] = None,
    ):
        monto = a_decimal(amount_paid)
        if monto <= 0:
            raise ErrorValidacion("El monto del abono debe ser mayor a 0")
        await self._miembro(member_id)
        if not any(c.id == cuota_id for c in self.cache.instantanea.extraordinary_fees):
            raise RecursoNoEncontrado("Cuota extraordinaria no encontrada")

        pago = await asyncio.to_thread(self.repo.registrar_pago_extraordinario, {
            "extraordinary_fee_id": cuota_id,
            "member_id": member_id,
            "amount_paid": monto,
            "payment_date": payment_date,
            "receipt_url": receipt_url,
        })
        self.cache.upsert_pago_extraordinario(pago)
        logger.info(f"Abono de ${monto} a cuota extraordinaria {cuota_id} (miembro {member_id})")
        return pago

    async def eliminar_pago_extraordinario(self, pago_id) -> None:
        if not await asyncio.to_thread(self.repo.eliminar_pago_extraordinario, pago_id):
            raise RecursoNoEncontrado("Abono no encontrado")
        self.cache.eliminar_pago_extraordinario(pago_id)
