"""
Calendario del Año Logial (fiscal)
app/services/calendario_fiscal.py

El año logial va de JULIO del año Y a JUNIO del año Y+1.

    fecha 2025-09-10 → año logial 2025 (Jul 2025 – Jun 2026)
    fecha 2026-03-01 → año logial 2025 (Jul 2025 – Jun 2026)
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

MES_INICIO = 7
MES_FIN = 6

MESES_NOMBRE = [
    'Enero', 'Febrero', 'Marzo', 'Abril', 'Mayo', 'Junio',
    'Julio', 'Agosto', 'Septiembre', 'Octubre', 'Noviembre', 'Diciembre'
]

MESES_ORDEN_FISCAL = MESES_NOMBRE[6:] + MESES_NOMBRE[:6]


@dataclass(frozen=True)
class InfoAnioFiscal:
    anio_fiscal: int
    anio_calendario_actual: int
    anio_calendario_siguiente: int
    mes_inicio: int = MES_INICIO
    mes_fin: int = MES_FIN

    @property
    def etiqueta(self) -> str:
        return f"{self.anio_fiscal}-{self.anio_fiscal + 1}"


def anio_fiscal_de(fecha: date) -> int:
    return fecha.year if fecha.month >= MES_INICIO else fecha.year - 1


def info_anio_fiscal(fecha_referencia: Optional[date] = None) -> InfoAnioFiscal:
    fecha_referencia = fecha_referencia or date.today()
    anio = anio_fiscal_de(fecha_referencia)
    return InfoAnioFiscal(
        anio_fiscal=anio,
        anio_calendario_actual=anio,
        anio_calendario_siguiente=anio + 1,
    )


def meses_fiscales(anio_fiscal: int) -> List[Tuple[int, int]]:
    """Los 12 pares (mes, año) en orden logial: Jul..Dic de F, Ene..Jun de F+1."""
    return (
        [(m, anio_fiscal) for m in range(7, 13)]
        + [(m, anio_fiscal + 1) for m in range(1, 7)]
    )


def pertenece_al_anio_fiscal(mes: int, anio: int, anio_fiscal: int) -> bool:
    return (mes, anio) in meses_fiscales(anio_fiscal)


def nombre_mes(mes: int) -> str:
    return MESES_NOMBRE[mes - 1]


def es_cumpleanos(fecha_nacimiento: Optional[date], hoy: Optional[date] = None) -> bool:
    if not fecha_nacimiento:
        return False
    hoy = hoy or date.today()
    return (fecha_nacimiento.month, fecha_nacimiento.day) == (hoy.month, hoy.day)


def formatear_fecha(fecha: Optional[date]) -> str:
    """dd/mm/aaaa, o '-' si no hay fecha."""
    if not fecha:
        return '-'
    return fecha.strftime('%d/%m/%Y')


def fecha_larga(fecha: date) -> str:
    """Ej: '17 de octubre de 2026'."""
    return f"{fecha.day} de {nombre_mes(fecha.month).lower()} de {fecha.year}"
