"""
Mensajes de WhatsApp (solo formato)
app/services/mensajes_whatsapp.py

Arma el texto y el enlace https://wa.me/<telefono>?text=<mensaje>.
El envío lo hace el operador abriendo el enlace; aquí no hay red.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional
from urllib.parse import quote

from app.config import WHATSAPP_COUNTRY_CODE
from app.services.calendario_fiscal import es_cumpleanos
from app.services.deuda_cuotas_service import MesPendiente

MAX_MESES_EN_MENSAJE = 6


def formatear_telefono(telefono: Optional[str], codigo_pais: str = WHATSAPP_COUNTRY_CODE) -> str:
    """
    '099 123 4567' → '593991234567'
    Quita todo lo que no sea dígito, el 0 inicial, y antepone el código de país.
    """
    if not telefono:
        return ''
    limpio = re.sub(r'\D', '', telefono)
    if not limpio:
        return ''
    if limpio.startswith('0'):
        return codigo_pais + limpio[1:]
    if not limpio.startswith(codigo_pais):
        return codigo_pais + limpio
    return limpio


def enlace_whatsapp(telefono: Optional[str], mensaje: str) -> Optional[str]:
    numero = formatear_telefono(telefono)
    if not numero:
        return None
    return f"https://wa.me/{numero}?text={quote(mensaje, safe='')}"


def primer_nombre(nombre_completo: str) -> str:
    return (nombre_completo or '').split(' ')[0]


def mensaje_cumpleanos(nombre: str, nombre_institucion: str) -> str:
    return (
        f"Estimado H∴ {nombre},\n\n"
        "Reciba un fraternal saludo en este día especial.\n"
        f"La {nombre_institucion} le desea un feliz cumpleaños, lleno de salud, sabiduría y prosperidad.\n\n"
        "Con estima y fraternidad."
    )


def mensaje_recordatorio_deuda(
    nombre_miembro: str,
    nombre_institucion: str,
    meses_pendientes: List[MesPendiente],
    total_adeudado: Decimal,
) -> str:
    meses = ', '.join(
        f"{m.nombre_mes} {m.anio}" for m in meses_pendientes[:MAX_MESES_EN_MENSAJE]
    )
    if len(meses_pendientes) > MAX_MESES_EN_MENSAJE:
        meses += f" y {len(meses_pendientes) - MAX_MESES_EN_MENSAJE} mes(es) más"

    return (
        f"Estimado H∴ {primer_nombre(nombre_miembro)},\n\n"
        f"Reciba un fraternal saludo de parte de {nombre_institucion}.\n\n"
        "Por medio de la presente, le comunicamos que según nuestros registros, "
        "usted tiene pendiente el pago de las siguientes cuotas mensuales:\n\n"
        f"📅 Meses pendientes: {meses}\n"
        f"💰 Total acumulado: ${Decimal(total_adeudado):.2f}\n\n"
        "Le solicitamos de la manera más atenta regularizar su situación a la brevedad posible.\n\n"
        "Quedamos a su disposición para cualquier consulta.\n\n"
        "Fraternalmente,\n"
        f"Tesorería de {nombre_institucion}"
    )


def mensaje_recibo(nombre_miembro: str, concepto: str, monto_pagado, saldo=None) -> str:
    mensaje = (
        f"Estimado H∴ {primer_nombre(nombre_miembro)},\n\n"
        f"Se ha registrado su pago correspondiente a: {concepto}\n"
        f"💰 Monto pagado: ${Decimal(monto_pagado):.2f}\n"
    )
    if saldo and saldo > 0:
        mensaje += f"⚠️ Saldo pendiente: ${Decimal(saldo):.2f}\n"
    return mensaje + "\nFraternalmente,\nTesorería"


def cumpleaneros_de_hoy(miembros: Iterable, hoy: Optional[date] = None) -> list:
    return [m for m in miembros if es_cumpleanos(m.birth_date, hoy)]


def enlace_cumpleanos(miembro, nombre_institucion: str) -> Optional[str]:
    mensaje = mensaje_cumpleanos(primer_nombre(miembro.full_name), nombre_institucion)
    return enlace_whatsapp(miembro.phone, mensaje)


def enlace_recordatorio(deuda, nombre_institucion: str) -> Optional[str]:
    """`deuda` es un DeudaMiembro; solo considera las cuotas mensuales."""
    mensaje = mensaje_recordatorio_deuda(
        deuda.miembro.full_name,
        nombre_institucion,
        deuda.cuotas.meses_pendientes,
        deuda.cuotas.total_adeudado,
    )
    return enlace_whatsapp(deuda.miembro.phone, mensaje)
