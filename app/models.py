"""
Modelos SQLAlchemy — Tesorería de la Logia
app/models.py

Una tabla por entidad. La deuda de cuotas NO se guarda: se infiere a partir
de monthly_payments (ver services/deuda_cuotas_service.py).
"""

from sqlalchemy import (
    Column, Integer, String, ForeignKey, Boolean, DateTime, Text, Date, Numeric,
    UniqueConstraint, Index, CheckConstraint,
)
from sqlalchemy.sql import func
import enum

from app.database import Base


# --- ENUMS (Para restringir valores y evitar errores) ---
class EstadoMiembro(str, enum.Enum):
    ACTIVO = "activo"
    INACTIVO = "inactivo"


class Grado(str, enum.Enum):
    APRENDIZ = "aprendiz"
    COMPANERO = "companero"
    MAESTRO = "maestro"


class CargoLogial(str, enum.Enum):
    VENERABLE_MAESTRO = "venerable_maestro"
    TESORERO = "tesorero"
    SECRETARIO = "secretario"


class TipoPago(str, enum.Enum):
    REGULAR = "regular"
    ADELANTADO = "adelantado"                   # Pago por adelantado (múltiplo exacto)
    PRONTO_PAGO = "pronto_pago"                 # Mes pagado dentro de un pronto pago
    PRONTO_PAGO_BENEFICIO = "pronto_pago_benefit"  # Mes gratuito del pronto pago (monto 0)


class EstadoPago(str, enum.Enum):
    PAGADO = "paid"
    PENDIENTE = "pending"                       # Fila registrada sin fecha de pago


class CategoriaGasto(str, enum.Enum):
    ALIMENTACION = "alimentacion"
    ALQUILER = "alquiler"
    SERVICIOS = "servicios"
    ARTICULOS = "articulos"
    MEMBRESIA = "membresia"
    FILANTROPIA = "filantropia"
    EVENTOS = "eventos"
    OTROS = "otros"


class CategoriaDerechoGrado(str, enum.Enum):
    INICIACION = "iniciacion"
    AUMENTO_SALARIO = "aumento_salario"         # Paso a Compañero
    EXALTACION = "exaltacion"                   # Paso a Maestro
    AFILIACION_PLANCHA = "afiliacion_plancha"   # Afiliación / Plancha de quite


# --- MIEMBROS ---
class Member(Base):
    __tablename__ = "members"
    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(200), nullable=False)
    degree = Column(String(20), default="aprendiz")     # aprendiz, companero, maestro
    status = Column(String(20), default="activo")       # activo, inactivo

    # Cuota individual; NULL = usa monthly_fee_base de settings
    treasury_amount = Column(Numeric(10, 2), nullable=True)

    is_treasurer = Column(Boolean, default=False)
    cargo_logial = Column(String(40), nullable=True)    # venerable_maestro, tesorero, ...

    email = Column(String(200))
    phone = Column(String(30))
    cedula = Column(String(20))
    address = Column(Text)
    join_date = Column(Date, nullable=True)
    birth_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


# --- TESORERÍA: CUOTAS MENSUALES ---
class MonthlyPayment(Base):
    """
    Un registro por miembro + mes + año.
    La EXISTENCIA de la fila significa que el mes fue atendido
    (pagado, pagado parcialmente o bonificado por pronto pago).
    """
    __tablename__ = "monthly_payments"
    __table_args__ = (
        UniqueConstraint('member_id', 'month', 'year', name='uq_pago_miembro_mes_anio'),
        CheckConstraint('month >= 1 AND month <= 12', name='ck_pago_mes_valido'),
        CheckConstraint('amount >= 0', name='ck_pago_monto_no_negativo'),
        Index('ix_monthly_payments_group', 'quick_pay_group_id'),
    )

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    amount = Column(Numeric(10, 2), nullable=False, default=0)
    paid_at = Column(Date, nullable=True)
    status = Column(String(20), nullable=True)          # paid / pending, según paid_at
    payment_type = Column(String(30), default="regular")
    receipt_url = Column(String(500), nullable=True)
    quick_pay_group_id = Column(String(36), nullable=True)  # Correlaciona un lote (pronto pago / adelantado)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


# --- GASTOS ---
class Expense(Base):
    __tablename__ = "expenses"
    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(300), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    category = Column(String(40), default="otros")
    expense_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    receipt_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# --- DERECHOS DE GRADO ---
class DegreeFee(Base):
    __tablename__ = "degree_fees"
    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(300), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    category = Column(String(40), default="iniciacion")
    fee_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    receipt_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# --- CUOTAS EXTRAORDINARIAS ---
class ExtraordinaryFee(Base):
    __tablename__ = "extraordinary_fees"
    __table_args__ = (
        CheckConstraint('amount_per_member > 0', name='ck_extra_monto_positivo'),
    )
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    amount_per_member = Column(Numeric(10, 2), nullable=False)
    due_date = Column(Date, nullable=True)
    is_mandatory = Column(Boolean, default=True)
    category = Column(String(40), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ExtraordinaryPayment(Base):
    """
    Abono de un miembro a una cuota extraordinaria.
    Se permiten varios abonos por (cuota, miembro); el saldo es la suma.
    """
    __tablename__ = "extraordinary_payments"
    __table_args__ = (
        Index('ix_extra_pagos_cuota_miembro', 'extraordinary_fee_id', 'member_id'),
    )
    id = Column(Integer, primary_key=True, index=True)
    extraordinary_fee_id = Column(
        Integer, ForeignKey("extraordinary_fees.id", ondelete="CASCADE"), nullable=False
    )
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    amount_paid = Column(Numeric(10, 2), nullable=False)
    payment_date = Column(Date, nullable=True)
    receipt_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# --- CONFIGURACIÓN (fila única) ---
class Settings(Base):
    __tablename__ = "settings"
    id = Column(Integer, primary_key=True, index=True)
    institution_name = Column(String(200))
    monthly_fee_base = Column(Numeric(10, 2))
    monthly_report_template = Column(Text)
    annual_report_template = Column(Text)
    logo_url = Column(String(500))
    treasurer_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    treasurer_signature_url = Column(String(500))
    vm_signature_url = Column(String(500))
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
