"""
Servicio: Cálculo de Deuda de Cuotas Mensuales (Inferida)
app/services/deuda_cuotas_service.py

PRINCIPIO: No se registran filas de deuda para cuotas; se INFIEREN a partir
de los pagos del año logial en curso (Julio → Junio).

    Deuda Cuotas = Σ (cuota efectiva − monto pagado) de cada mes no saldado

Cada mes se clasifica UNA sola vez en un EstadoMes. Ningún código posterior
vuelve a comparar `payment_type` como texto.

Esto se combina con las cuotas extraordinarias pendientes para obtener la
deuda total del miembro (cuentas por cobrar).
"""

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from app.models import TipoPago
from app.services.calendario_fiscal import info_anio_fiscal, meses_fiscales, nombre_mes
from app.services.cuotas_extraordinarias_service import (
    ExtraordinariaPendiente, calcular_extraordinarias_pendientes,
)
from app.services.politicas_financieras import a_decimal, cuota_efectiva

CERO = Decimal("0.00")


class EstadoMes(str, enum.Enum):
    SIN_PAGO = "sin_pago"       # No hay fila, o fila con monto 0
    PARCIAL = "parcial"         # 0 < monto < cuota
    PAGADO = "pagado"           # monto >= cuota
    BENEFICIO = "beneficio"     # Mes gratis del pronto pago


@dataclass(frozen=True)
class SituacionMes:
    mes: int
    anio: int
    estado: EstadoMes
    monto_pagado: Decimal = CERO

    @property
    def saldado(self) -> bool:
        return self.estado in (EstadoMes.PAGADO, EstadoMes.BENEFICIO)


@dataclass(frozen=True)
class MesPendiente:
    mes: int
    anio: int
    nombre_mes: str
    monto_total: Decimal
    monto_pagado: Decimal = CERO

    @property
    def pendiente(self) -> Decimal:
        return self.monto_total - self.monto_pagado

    def a_dict(self) -> dict:
        return {
            "month": self.mes,
            "year": self.anio,
            "month_name": self.nombre_mes,
            "full_amount": float(self.monto_total),
            "amount_paid": float(self.monto_pagado),
            "pending": float(self.pendiente),
        }


@dataclass(frozen=True)
class ResultadoDeuda:
    meses_pendientes: List[MesPendiente]
    total_adeudado: Decimal
    cuota_efectiva: Decimal
    etiqueta_anio_fiscal: str
    situacion: List[SituacionMes] = field(default_factory=list)

    @property
    def meses_en_mora(self) -> int:
        return len(self.meses_pendientes)

    def a_dict(self) -> dict:
        return {
            "pending_months": [m.a_dict() for m in self.meses_pendientes],
            "total_owed": float(self.total_adeudado),
            "effective_fee": float(self.cuota_efectiva),
            "months_overdue": self.meses_en_mora,
            "fiscal_year": self.etiqueta_anio_fiscal,
        }


def clasificar_pago(pago, cuota: Decimal, mes: int, anio: int) -> SituacionMes:
    """Traduce la fila (o su ausencia) a un EstadoMes."""
    if pago is None:
        return SituacionMes(mes, anio, EstadoMes.SIN_PAGO)

    if pago.payment_type == TipoPago.PRONTO_PAGO_BENEFICIO.value:
        return SituacionMes(mes, anio, EstadoMes.BENEFICIO)

    monto = a_decimal(pago.amount)
    if monto <= 0:
        return SituacionMes(mes, anio, EstadoMes.SIN_PAGO)
    if monto < cuota:
        return SituacionMes(mes, anio, EstadoMes.PARCIAL, monto)
    return SituacionMes(mes, anio, EstadoMes.PAGADO, monto)


def indexar_pagos(pagos: Iterable, member_id) -> Dict[Tuple[int, int], object]:
    """(mes, año) → fila de pago del miembro."""
    return {
        (p.month, p.year): p
        for p in pagos
        if p.member_id == member_id
    }


def calcular_deuda_cuotas(
    miembro,
    pagos_mensuales: Iterable,
    cuota_base,
    fecha_referencia: Optional[date] = None,
) -> ResultadoDeuda:
    """
    Calcula los meses adeudados del año logial que contiene `fecha_referencia`.

    Función pura: mismas entradas, mismo resultado. Con cuota efectiva <= 0
    no se genera deuda (nunca montos negativos).
    """
    info = info_anio_fiscal(fecha_referencia)
    cuota = cuota_efectiva(miembro, cuota_base)
    por_mes = indexar_pagos(pagos_mensuales, miembro.id)

    situacion = []
    pendientes = []
    for mes, anio in meses_fiscales(info.anio_fiscal):
        estado_mes = clasificar_pago(por_mes.get((mes, anio)), cuota, mes, anio)
        situacion.append(estado_mes)

        if estado_mes.saldado or cuota <= 0:
            continue
        pendientes.append(MesPendiente(
            mes=mes,
            anio=anio,
            nombre_mes=nombre_mes(mes),
            monto_total=cuota,
            monto_pagado=estado_mes.monto_pagado,
        ))

    total = sum((p.pendiente for p in pendientes), CERO)

    return ResultadoDeuda(
        meses_pendientes=pendientes,
        total_adeudado=total,
        cuota_efectiva=cuota,
        etiqueta_anio_fiscal=info.etiqueta,
        situacion=situacion,
    )


# ══════════════════════════════════════════════════════════
# DEUDA TOTAL (cuotas + extraordinarias)
# ══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DeudaMiembro:
    miembro: object
    cuotas: ResultadoDeuda
    extraordinarias: List[ExtraordinariaPendiente]

    @property
    def total_cuotas(self) -> Decimal:
        return self.cuotas.total_adeudado

    @property
    def total_extraordinarias(self) -> Decimal:
        return sum((e.pendiente for e in self.extraordinarias), CERO)

    @property
    def total_general(self) -> Decimal:
        return self.total_cuotas + self.total_extraordinarias

    def a_dict(self) -> dict:
        return {
            "member_id": self.miembro.id,
            "member_name": self.miembro.full_name,
            "cuotas": self.cuotas.a_dict(),
            "extraordinarias": [e.a_dict() for e in self.extraordinarias],
            "resumen": {
                "deuda_cuotas": float(self.total_cuotas),
                "deuda_extraordinarias": float(self.total_extraordinarias),
                "deuda_total": float(self.total_general),
                "cuotas_pendientes": self.cuotas.meses_en_mora,
            },
        }


def calcular_deuda_total(miembro, instantanea, fecha_referencia: Optional[date] = None) -> DeudaMiembro:
    """Deuda total = cuotas inferidas + cuotas extraordinarias con saldo."""
    cuotas = calcular_deuda_cuotas(
        miembro,
        instantanea.monthly_payments,
        instantanea.configuracion.monthly_fee_base,
        fecha_referencia,
    )
    extraordinarias = calcular_extraordinarias_pendientes(
        miembro,
        instantanea.extraordinary_fees,
        instantanea.extraordinary_payments,
    )
    return DeudaMiembro(miembro=miembro, cuotas=cuotas, extraordinarias=extraordinarias)


def cuentas_por_cobrar(instantanea, fecha_referencia: Optional[date] = None) -> List[DeudaMiembro]:
    """Miembros activos con deuda > 0, de mayor a menor deuda total."""
    deudas = [
        calcular_deuda_total(m, instantanea, fecha_referencia)
        for m in instantanea.miembros_activos
    ]
    deudas = [d for d in deudas if d.total_general > 0]
    return sorted(deudas, key=lambda d: d.total_general, reverse=True)


# ══════════════════════════════════════════════════════════
# FORMATO
# ══════════════════════════════════════════════════════════

def formatear_meses_pendientes(pendientes: List[MesPendiente], max_mostrar: int = 6) -> str:
    """'Jul 2025, Ago 2025 (+3 más)'"""
    if not pendientes:
        return 'Ninguno'

    texto = ', '.join(f"{p.nombre_mes[:3]} {p.anio}" for p in pendientes[:max_mostrar])
    if len(pendientes) > max_mostrar:
        return f"{texto} (+{len(pendientes) - max_mostrar} más)"
    return texto
