"""
Políticas Financieras — Tesorería de la Logia
app/services/politicas_financieras.py

Formaliza la configuración de la logia en una estructura tipada:
  1. Valores por defecto (cuota base, nombre, plantillas de informe)
  2. ConfiguracionLogia: se construye UNA vez a partir de la fila settings
  3. Reglas de pronto pago (11 meses pagados + 1 gratis)
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from app.config import DEFAULT_INSTITUTION_NAME, DEFAULT_MONTHLY_FEE
from app.services.errores import ErrorValidacion

CENTAVOS = Decimal("0.01")

# ── Pronto pago ──
MESES_PAGADOS_PRONTO_PAGO = 11       # Meses cobrados a precio completo
MESES_PARA_BENEFICIO = 12            # Solo con el año completo pendiente hay mes gratis

PLANTILLA_INFORME_MENSUAL = (
    "Este informe presenta el resumen financiero correspondiente al período indicado, "
    "con datos reales registrados en el sistema de tesorería."
)
PLANTILLA_INFORME_ANUAL = (
    "Este informe presenta el resumen financiero anual consolidado del período fiscal, "
    "incluyendo el detalle de ingresos, egresos y balance general."
)

CAMPOS_EDITABLES = (
    "institution_name", "monthly_fee_base", "monthly_report_template",
    "annual_report_template", "logo_url", "treasurer_id",
    "treasurer_signature_url", "vm_signature_url",
)


def a_decimal(valor) -> Decimal:
    """Convierte float/str/Decimal/None a Decimal con 2 decimales."""
    if valor is None:
        return Decimal("0.00")
    try:
        decimal = Decimal(str(valor))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ErrorValidacion("Monto inválido") from exc
    # NaN e infinito no son montos
    if not decimal.is_finite():
        raise ErrorValidacion("Monto inválido")
    return decimal.quantize(CENTAVOS, ROUND_HALF_UP)


@dataclass(frozen=True)
class ConfiguracionLogia:
    """
    Configuración de la logia con defaults documentados.

    `id` es None mientras no exista una fila real en la base de datos;
    en ese estado la configuración no se puede actualizar.
    """
    id: Optional[int] = None
    institution_name: str = DEFAULT_INSTITUTION_NAME
    monthly_fee_base: Decimal = field(default_factory=lambda: a_decimal(DEFAULT_MONTHLY_FEE))
    monthly_report_template: str = PLANTILLA_INFORME_MENSUAL
    annual_report_template: str = PLANTILLA_INFORME_ANUAL
    logo_url: Optional[str] = None
    treasurer_id: Optional[int] = None
    treasurer_signature_url: Optional[str] = None
    vm_signature_url: Optional[str] = None

    @property
    def resuelta(self) -> bool:
        return self.id is not None

    def con_cambios(self, **cambios) -> "ConfiguracionLogia":
        if "monthly_fee_base" in cambios:
            cambios["monthly_fee_base"] = a_decimal(cambios["monthly_fee_base"])
        return replace(self, **cambios)

    def a_dict(self) -> dict:
        return {
            "id": self.id,
            "institution_name": self.institution_name,
            "monthly_fee_base": float(self.monthly_fee_base),
            "monthly_report_template": self.monthly_report_template,
            "annual_report_template": self.annual_report_template,
            "logo_url": self.logo_url,
            "treasurer_id": self.treasurer_id,
            "treasurer_signature_url": self.treasurer_signature_url,
            "vm_signature_url": self.vm_signature_url,
        }


CONFIG_DEFECTO = ConfiguracionLogia()


def configuracion_desde_fila(fila) -> ConfiguracionLogia:
    """Mapea la fila settings; los campos vacíos caen al valor por defecto."""
    if fila is None:
        return CONFIG_DEFECTO
    return ConfiguracionLogia(
        id=fila.id,
        institution_name=fila.institution_name or CONFIG_DEFECTO.institution_name,
        monthly_fee_base=(
            a_decimal(fila.monthly_fee_base)
            if fila.monthly_fee_base is not None
            else CONFIG_DEFECTO.monthly_fee_base
        ),
        monthly_report_template=fila.monthly_report_template or CONFIG_DEFECTO.monthly_report_template,
        annual_report_template=fila.annual_report_template or CONFIG_DEFECTO.annual_report_template,
        logo_url=fila.logo_url or None,
        treasurer_id=fila.treasurer_id or None,
        treasurer_signature_url=fila.treasurer_signature_url or None,
        vm_signature_url=fila.vm_signature_url or None,
    )


def cuota_efectiva(miembro, cuota_base) -> Decimal:
    """Cuota individual del miembro si es > 0; si no, la cuota base."""
    individual = getattr(miembro, "treasury_amount", None)
    if individual is not None and a_decimal(individual) > 0:
        return a_decimal(individual)
    return a_decimal(cuota_base)
