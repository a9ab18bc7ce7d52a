"""
Servicio: Agregador de Informes
app/services/reportes_service.py

Pliega la instantánea del caché en totales de un período (mes o año
calendario) para los informes PDF / Excel. Los períodos se filtran por
FECHA de pago (paid_at, payment_date, expense_date, fee_date), no por el
mes que cubre la cuota.

Función pura: misma instantánea + mismo período → mismos totales.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from app.models import TipoPago
from app.services.calendario_fiscal import formatear_fecha, nombre_mes
from app.services.errores import ErrorValidacion
from app.services.politicas_financieras import a_decimal

CERO = Decimal("0.00")


@dataclass(frozen=True)
class Periodo:
    anio: int
    mes: Optional[int] = None    # None = informe anual

    def __post_init__(self):
        if self.mes is not None and not 1 <= self.mes <= 12:
            raise ErrorValidacion("El mes debe estar entre 1 y 12")

    @property
    def es_anual(self) -> bool:
        return self.mes is None

    def rango(self) -> Tuple[date, date]:
        """[inicio, fin) del período."""
        if self.es_anual:
            inicio = date(self.anio, 1, 1)
            return inicio, inicio + relativedelta(years=1)
        inicio = date(self.anio, self.mes, 1)
        return inicio, inicio + relativedelta(months=1)

    def contiene(self, fecha) -> bool:
        if fecha is None:
            return False
        if hasattr(fecha, "date"):
            fecha = fecha.date()
        inicio, fin = self.rango()
        return inicio <= fecha < fin

    @property
    def etiqueta(self) -> str:
        return str(self.anio) if self.es_anual else f"{nombre_mes(self.mes)} {self.anio}"


@dataclass(frozen=True)
class PagoPorMiembro:
    member_id: int
    nombre: str
    total_pagado: Decimal
    cantidad_pagos: int


@dataclass(frozen=True)
class Deudor:
    member_id: int
    nombre: str
    meses_pendientes: int


@dataclass(frozen=True)
class DetalleExtraordinaria:
    nombre: str
    recaudado: Decimal
    esperado: Decimal


@dataclass(frozen=True)
class DetalleGasto:
    descripcion: str
    categoria: str
    monto: Decimal
    fecha: date


@dataclass(frozen=True)
class DesgloseMensual:
    mes: str
    ingresos_cuotas: Decimal
    ingresos_extraordinarios: Decimal
    gastos: Decimal

    @property
    def balance(self) -> Decimal:
        return self.ingresos_cuotas + self.ingresos_extraordinarios - self.gastos


@dataclass(frozen=True)
class TotalesInforme:
    periodo: Periodo
    ingresos_cuotas: Decimal
    ingresos_extraordinarios: Decimal
    ingresos_derechos_grado: Decimal
    total_gastos: Decimal
    gastos_por_categoria: Dict[str, Decimal]
    pagos_por_miembro: List[PagoPorMiembro]
    deudores: List[Deudor]
    detalle_extraordinarias: List[DetalleExtraordinaria]
    detalle_gastos: List[DetalleGasto]
    desglose_mensual: List[DesgloseMensual] = field(default_factory=list)

    @property
    def total_ingresos(self) -> Decimal:
        return self.ingresos_cuotas + self.ingresos_extraordinarios + self.ingresos_derechos_grado

    @property
    def balance(self) -> Decimal:
        return self.total_ingresos - self.total_gastos

    @property
    def miembros_al_dia(self) -> int:
        return sum(1 for p in self.pagos_por_miembro if p.cantidad_pagos > 0)

    def a_dict(self) -> dict:
        return {
            "period": self.periodo.etiqueta,
            "total_monthly_income": float(self.ingresos_cuotas),
            "total_extraordinary_income": float(self.ingresos_extraordinarios),
            "total_degree_fee_income": float(self.ingresos_derechos_grado),
            "total_income": float(self.total_ingresos),
            "total_expenses": float(self.total_gastos),
            "balance": float(self.balance),
            "payments_count": self.miembros_al_dia,
            "pending_count": len(self.deudores),
            "expenses_by_category": {k: float(v) for k, v in self.gastos_por_categoria.items()},
            "member_payments": [
                {"member_name": p.nombre, "total_paid": float(p.total_pagado), "payment_count": p.cantidad_pagos}
                for p in self.pagos_por_miembro
            ],
            "debtors": [{"member_name": d.nombre, "pending_months": d.meses_pendientes} for d in self.deudores],
            "extraordinary_details": [
                {"name": e.nombre, "collected": float(e.recaudado), "expected": float(e.esperado)}
                for e in self.detalle_extraordinarias
            ],
            "expenses_detail": [
                {"description": g.descripcion, "category": g.categoria,
                 "amount": float(g.monto), "date": formatear_fecha(g.fecha)}
                for g in self.detalle_gastos
            ],
            "monthly_breakdown": [
                {"month": d.mes, "monthly_income": float(d.ingresos_cuotas),
                 "extraordinary_income": float(d.ingresos_extraordinarios),
                 "expenses": float(d.gastos), "balance": float(d.balance)}
                for d in self.desglose_mensual
            ],
        }


def _suma(valores: Iterable) -> Decimal:
    return sum((a_decimal(v) for v in valores), CERO)


def _pagos_cuotas(pagos: Iterable, periodo: Periodo) -> list:
    return [
        p for p in pagos
        if p.payment_type != TipoPago.PRONTO_PAGO_BENEFICIO.value and periodo.contiene(p.paid_at)
    ]


def _desglose(anio: int, pagos, extraordinarios, gastos) -> List[DesgloseMensual]:
    filas = []
    for mes in range(1, 13):
        p_mes = Periodo(anio, mes)
        filas.append(DesgloseMensual(
            mes=nombre_mes(mes),
            ingresos_cuotas=_suma(p.amount for p in pagos if p_mes.contiene(p.paid_at)),
            ingresos_extraordinarios=_suma(
                p.amount_paid for p in extraordinarios if p_mes.contiene(p.payment_date)
            ),
            gastos=_suma(g.amount for g in gastos if p_mes.contiene(g.expense_date)),
        ))
    return filas


def agregar(periodo: Periodo, instantanea) -> TotalesInforme:
    activos = instantanea.miembros_activos

    pagos = _pagos_cuotas(instantanea.monthly_payments, periodo)
    extraordinarios = [p for p in instantanea.extraordinary_payments if periodo.contiene(p.payment_date)]
    gastos = [g for g in instantanea.expenses if periodo.contiene(g.expense_date)]
    derechos = [d for d in instantanea.degree_fees if periodo.contiene(d.fee_date)]

    por_categoria: Dict[str, Decimal] = defaultdict(lambda: CERO)
    for g in gastos:
        por_categoria[g.category or "otros"] += a_decimal(g.amount)

    por_miembro = defaultdict(list)
    for p in pagos:
        por_miembro[p.member_id].append(p)

    pagos_por_miembro = [
        PagoPorMiembro(
            member_id=m.id,
            nombre=m.full_name,
            total_pagado=_suma(p.amount for p in por_miembro.get(m.id, [])),
            cantidad_pagos=len(por_miembro.get(m.id, [])),
        )
        for m in activos
    ]

    meses_periodo = 12 if periodo.es_anual else 1
    deudores = [
        Deudor(member_id=m.id, nombre=m.full_name, meses_pendientes=meses_periodo)
        for m in activos
        if m.id not in por_miembro
    ]

    detalle_extra = []
    for cuota in instantanea.extraordinary_fees:
        recaudado = _suma(p.amount_paid for p in extraordinarios if p.extraordinary_fee_id == cuota.id)
        if recaudado == 0:
            # Sin abonos en el período: solo se lista en el informe anual de su creación
            creada = cuota.created_at
            if not periodo.es_anual or creada is None or creada.year != periodo.anio:
                continue
        detalle_extra.append(DetalleExtraordinaria(
            nombre=cuota.name,
            recaudado=recaudado,
            esperado=a_decimal(cuota.amount_per_member) * len(activos),
        ))

    return TotalesInforme(
        periodo=periodo,
        ingresos_cuotas=_suma(p.amount for p in pagos),
        ingresos_extraordinarios=_suma(p.amount_paid for p in extraordinarios),
        ingresos_derechos_grado=_suma(d.amount for d in derechos),
        total_gastos=_suma(g.amount for g in gastos),
        gastos_por_categoria=dict(por_categoria),
        pagos_por_miembro=pagos_por_miembro,
        deudores=deudores,
        detalle_extraordinarias=detalle_extra,
        detalle_gastos=[
            DetalleGasto(g.description, g.category or "otros", a_decimal(g.amount), g.expense_date)
            for g in gastos
        ],
        desglose_mensual=(
            _desglose(periodo.anio, pagos, extraordinarios, gastos) if periodo.es_anual else []
        ),
    )
