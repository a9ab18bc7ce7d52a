from datetime import date
from decimal import Decimal
from urllib.parse import unquote

import pytest

from app.services.deuda_cuotas_service import calcular_deuda_cuotas
from app.services.mensajes_whatsapp import (
    cumpleaneros_de_hoy, enlace_cumpleanos, enlace_whatsapp, formatear_telefono, mensaje_cumpleanos,
    mensaje_recibo, mensaje_recordatorio_deuda,
)

from tests.fabricas import REFERENCIA, miembro


@pytest.mark.parametrize("telefono, esperado", [
    ("099 123 4567", "593991234567"),
    ("+593 99 123 4567", "593991234567"),
    ("991234567", "593991234567"),
    ("", ""),
    (None, ""),
    ("sin número", ""),
])
def test_formatear_telefono(telefono, esperado):
    assert formatear_telefono(telefono) == esperado


def test_enlace_whatsapp_codifica_el_mensaje():
    url = enlace_whatsapp("0991234567", "Hola H∴ & saludos")
    assert url.startswith("https://wa.me/593991234567?text=")
    assert " " not in url
    assert unquote(url.split("text=")[1]) == "Hola H∴ & saludos"
    assert enlace_whatsapp(None, "Hola") is None


def test_recordatorio_muestra_seis_meses():
    pendientes = calcular_deuda_cuotas(miembro(), [], 50, REFERENCIA).meses_pendientes
    texto = mensaje_recordatorio_deuda("Juan Pérez", "Logia Luz", pendientes, Decimal("600"))

    assert texto.startswith("Estimado H∴ Juan,")
    assert "Julio 2025, Agosto 2025" in texto
    assert "Diciembre 2025 y 6 mes(es) más" in texto
    assert "Enero 2026" not in texto
    assert "$600.00" in texto
    assert "Tesorería de Logia Luz" in texto


def test_mensaje_recibo_con_saldo():
    texto = mensaje_recibo("Ana Ruiz", "Templo", Decimal("40"), Decimal("60"))
    assert "Monto pagado: $40.00" in texto
    assert "Saldo pendiente: $60.00" in texto
    assert "Saldo pendiente" not in mensaje_recibo("Ana Ruiz", "Templo", Decimal("100"), Decimal("0"))


def test_cumpleaneros_de_hoy():
    miembros = [
        miembro(1, "Ana", birth_date=date(1980, 10, 17)),
        miembro(2, "Beto", birth_date=date(1975, 3, 2)),
        miembro(3, "Carla"),
    ]
    assert [m.full_name for m in cumpleaneros_de_hoy(miembros, hoy=date(2026, 10, 17))] == ["Ana"]


def test_cumpleanos_nombra_a_la_institucion():
    texto = mensaje_cumpleanos("Ana", "Logia Luz del Sur")
    assert "Estimado H∴ Ana" in texto
    assert "La Logia Luz del Sur le desea" in texto

    url = enlace_cumpleanos(miembro(nombre="Ana Ruiz", phone="0991234567"), "Logia Luz del Sur")
    assert url.startswith("https://wa.me/593991234567?text=")
    assert "Logia Luz del Sur" in unquote(url)
    assert "Ruiz" not in unquote(url)
