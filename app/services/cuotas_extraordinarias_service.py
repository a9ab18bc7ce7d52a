"""
Servicio: Saldos de Cuotas Extraordinarias
app/services/cuotas_extraordinarias_service.py

Una cuota extraordinaria cobra `amount_per_member` a cada miembro.
Se admiten varios abonos por (cuota, miembro):

    Pendiente = amount_per_member − Σ amount_paid
"""

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from app.services.politicas_financieras import a_decimal

CERO = Decimal("0.00")


@dataclass(frozen=True)
class ExtraordinariaPendiente:
    fee_id: int
    nombre: str
    monto_total: Decimal
    monto_pagado: Decimal

    @property
    def pendiente(self) -> Decimal:
        return self.monto_total - self.monto_pagado

    def a_dict(self) -> dict:
        return {
            "fee_id": self.fee_id,
            "fee_name": self.nombre,
            "full_amount": float(self.monto_total),
            "amount_paid": float(self.monto_pagado),
            "pending": float(self.pendiente),
        }


def abonado_por_cuota(pagos: Iterable, member_id) -> Dict[int, Decimal]:
    """fee_id → suma de abonos del miembro."""
    totales: Dict[int, Decimal] = defaultdict(lambda: CERO)
    for p in pagos:
        if p.member_id == member_id:
            totales[p.extraordinary_fee_id] += a_decimal(p.amount_paid)
    return totales


def calcular_extraordinarias_pendientes(miembro, cuotas: Iterable, pagos: Iterable) -> List[ExtraordinariaPendiente]:
    abonos = abonado_por_cuota(pagos, miembro.id)

    pendientes = []
    for cuota in cuotas:
        item = ExtraordinariaPendiente(
            fee_id=cuota.id,
            nombre=cuota.name,
            monto_total=a_decimal(cuota.amount_per_member),
            monto_pagado=abonos.get(cuota.id, CERO),
        )
        if item.pendiente > 0:
            pendientes.append(item)
    return pendientes


def saldo_miembro(cuota, pagos: Iterable, member_id) -> Decimal:
    """Saldo de UN miembro en UNA cuota (0 si ya la completó)."""
    abonado = abonado_por_cuota(pagos, member_id).get(cuota.id, CERO)
    return max(CERO, a_decimal(cuota.amount_per_member) - abonado)


def resumen_recaudacion(cuota, pagos: Iterable, miembros_activos: List) -> Tuple[Decimal, Decimal]:
    """(recaudado, esperado) de una cuota sobre los miembros activos."""
    recaudado = sum(
        (a_decimal(p.amount_paid) for p in pagos if p.extraordinary_fee_id == cuota.id),
        CERO,
    )
    esperado = a_decimal(cuota.amount_per_member) * len(miembros_activos)
    return recaudado, esperado
