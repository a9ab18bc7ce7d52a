"""
Servicio: Pagos en Lote (Pronto Pago y Pago Adelantado)
app/services/pagos_lote_service.py

Calcula las filas de monthly_payments que deben insertarse. NO persiste
nada: el llamador inserta las filas en una sola transacción y luego
actualiza el caché.

Reglas:
  PRONTO PAGO
    - Pendientes = meses del año logial SIN fila registrada (orden logial)
    - Se cobran los primeros 11 pendientes a `monto_por_mes`
    - Solo si los 12 meses están pendientes, el 12º es GRATIS
      (fila con monto 0, tipo pronto_pago_benefit)
  PAGO ADELANTADO
    - El total debe ser múltiplo EXACTO de la cuota (al centavo)
    - El operador elige exactamente total / cuota meses libres del año logial

Todo o nada: ante cualquier error no se devuelve ninguna fila.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_DOWN
from typing import Iterable, List, Optional, Sequence, Tuple

from app.models import EstadoPago, TipoPago
from app.services.calendario_fiscal import anio_fiscal_de, meses_fiscales, nombre_mes
from app.services.errores import (
    ErrorValidacion, MontoNoMultiplo, SeleccionInvalida, SinMesesPendientes,
)
from app.services.politicas_financieras import (
    CENTAVOS, MESES_PAGADOS_PRONTO_PAGO, MESES_PARA_BENEFICIO, a_decimal,
)


def estado_pago(paid_at: Optional[date]) -> str:
    return EstadoPago.PAGADO.value if paid_at else EstadoPago.PENDIENTE.value


@dataclass(frozen=True)
class FilaPago:
    member_id: int
    month: int
    year: int
    amount: Decimal
    paid_at: date
    payment_type: str
    quick_pay_group_id: str
    receipt_url: Optional[str] = None

    @property
    def status(self) -> str:
        return estado_pago(self.paid_at)

    def a_dict(self) -> dict:
        return {
            "member_id": self.member_id,
            "month": self.month,
            "year": self.year,
            "amount": self.amount,
            "paid_at": self.paid_at,
            "status": self.status,
            "payment_type": self.payment_type,
            "quick_pay_group_id": self.quick_pay_group_id,
            "receipt_url": self.receipt_url,
        }


@dataclass(frozen=True)
class ResultadoProntoPago:
    group_id: str
    meses_pagados: List[FilaPago] = field(default_factory=list)
    mes_gratis: Optional[FilaPago] = None

    @property
    def filas(self) -> List[FilaPago]:
        return self.meses_pagados + ([self.mes_gratis] if self.mes_gratis else [])

    @property
    def total_cobrado(self) -> Decimal:
        return sum((f.amount for f in self.meses_pagados), Decimal("0.00"))

    def descripcion(self, nombre_miembro: str) -> str:
        if self.mes_gratis:
            gratis = f"{nombre_mes(self.mes_gratis.month)} {self.mes_gratis.year}"
            return (
                f"Se pagaron {len(self.meses_pagados)} meses + {gratis} gratuito "
                f"para {nombre_miembro}"
            )
        return f"Se pagaron {len(self.meses_pagados)} meses para {nombre_miembro}"


def meses_sin_registro(member_id, pagos_existentes: Iterable, anio_fiscal: int) -> List[Tuple[int, int]]:
    """Meses del año logial sin ninguna fila para el miembro (orden logial)."""
    registrados = {(p.month, p.year) for p in pagos_existentes if p.member_id == member_id}
    return [mm for mm in meses_fiscales(anio_fiscal) if mm not in registrados]


def _validar_fecha(fecha_pago) -> None:
    if not isinstance(fecha_pago, date):
        raise ErrorValidacion("Debe seleccionar una fecha de pago")


def _nuevo_grupo() -> str:
    return str(uuid.uuid4())


# ══════════════════════════════════════════════════════════
# PRONTO PAGO
# ══════════════════════════════════════════════════════════

def asignar_pronto_pago(
    miembro,
    pagos_existentes: Iterable,
    monto_por_mes,
    fecha_pago: date,
    anio_fiscal: Optional[int] = None,
    receipt_url: Optional[str] = None,
) -> ResultadoProntoPago:
    """
    Args:
        miembro:          Member (solo se usa `id`)
        pagos_existentes: filas monthly_payments (se filtran por miembro)
        monto_por_mes:    precio de cada uno de los meses pagados
        fecha_pago:       fecha común a todas las filas
        anio_fiscal:      año logial objetivo; por defecto el de `fecha_pago`
    """
    _validar_fecha(fecha_pago)
    monto = a_decimal(monto_por_mes)
    if monto <= 0:
        raise ErrorValidacion("El monto debe ser mayor a 0")

    if anio_fiscal is None:
        anio_fiscal = anio_fiscal_de(fecha_pago)

    pendientes = meses_sin_registro(miembro.id, pagos_existentes, anio_fiscal)
    if not pendientes:
        raise SinMesesPendientes(
            "Este miembro ya tiene todos los pagos del año logial actual registrados"
        )

    grupo = _nuevo_grupo()

    def fila(mes, anio, valor, tipo):
        return FilaPago(
            member_id=miembro.id, month=mes, year=anio, amount=valor,
            paid_at=fecha_pago, payment_type=tipo.value,
            quick_pay_group_id=grupo, receipt_url=receipt_url,
        )

    pagados = [
        fila(mes, anio, monto, TipoPago.PRONTO_PAGO)
        for mes, anio in pendientes[:MESES_PAGADOS_PRONTO_PAGO]
    ]

    gratis = None
    if len(pendientes) >= MESES_PARA_BENEFICIO:
        mes, anio = pendientes[MESES_PAGADOS_PRONTO_PAGO]
        gratis = fila(mes, anio, Decimal("0.00"), TipoPago.PRONTO_PAGO_BENEFICIO)

    return ResultadoProntoPago(group_id=grupo, meses_pagados=pagados, mes_gratis=gratis)


# ══════════════════════════════════════════════════════════
# PAGO ADELANTADO
# ══════════════════════════════════════════════════════════

def validar_monto_adelantado(monto_total, cuota_mensual) -> int:
    """
    Retorna cuántos meses cubre el monto.
    Lanza MontoNoMultiplo si sobra algo (al centavo).
    """
    total = a_decimal(monto_total)
    cuota = a_decimal(cuota_mensual)
    if cuota <= 0:
        raise ErrorValidacion("La cuota mensual del miembro debe ser mayor a 0")
    if total <= 0:
        raise ErrorValidacion("El monto total debe ser mayor a 0")

    residuo = (total % cuota).quantize(CENTAVOS)
    meses_cubiertos = int((total / cuota).to_integral_value(rounding=ROUND_DOWN))
    if residuo != 0:
        raise MontoNoMultiplo(residuo, meses_cubiertos, cuota)
    return meses_cubiertos


def asignar_pago_adelantado(
    monto_total,
    cuota_mensual,
    meses_seleccionados: Sequence[Tuple[int, int]],
    fecha_pago: date,
    *,
    member_id,
    pagos_existentes: Iterable,
    anio_fiscal: Optional[int] = None,
    receipt_url: Optional[str] = None,
) -> List[FilaPago]:
    _validar_fecha(fecha_pago)
    meses_cubiertos = validar_monto_adelantado(monto_total, cuota_mensual)
    cuota = a_decimal(cuota_mensual)

    if anio_fiscal is None:
        anio_fiscal = anio_fiscal_de(fecha_pago)

    seleccion = [(int(m), int(a)) for m, a in meses_seleccionados]
    if len(seleccion) != meses_cubiertos:
        raise SeleccionInvalida(
            f"El monto cubre {meses_cubiertos} meses pero se seleccionaron {len(seleccion)}"
        )
    if len(set(seleccion)) != len(seleccion):
        raise SeleccionInvalida("Hay meses repetidos en la selección")

    disponibles = set(meses_sin_registro(member_id, pagos_existentes, anio_fiscal))
    for mes, anio in seleccion:
        if (mes, anio) not in disponibles:
            raise SeleccionInvalida(
                f"{nombre_mes(mes) if 1 <= mes <= 12 else mes} {anio} no está disponible "
                f"(ya registrado o fuera del año logial {anio_fiscal}-{anio_fiscal + 1})"
            )

    grupo = _nuevo_grupo()
    return [
        FilaPago(
            member_id=member_id, month=mes, year=anio, amount=cuota,
            paid_at=fecha_pago, payment_type=TipoPago.ADELANTADO.value,
            quick_pay_group_id=grupo, receipt_url=receipt_url,
        )
        for mes, anio in seleccion
    ]
