"""
Servicio: Generador PDF de Tesorería
app/services/pdf_reportes.py

Documentos oficiales:
- Informe mensual de tesorería
- Informe anual (con resumen mensual comparativo)
- Carta de cobro (cuotas mensuales y extraordinarias pendientes)
- Recibo de pago (A5)

Todos terminan con el bloque de firmas Tesorero / Venerable Maestro.
Solo consumen estructuras ya calculadas (TotalesInforme, DeudaMiembro);
aquí no se calcula ningún saldo.

Requiere: pip install reportlab
"""

import io
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from reportlab.lib.colors import HexColor, black, white
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_RIGHT
from reportlab.lib.pagesizes import A4, A5
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.config import CIUDAD_CARTAS
from app.models import TipoPago
from app.services.calendario_fiscal import fecha_larga, formatear_fecha, nombre_mes
from app.services.deuda_cuotas_service import DeudaMiembro
from app.services.politicas_financieras import a_decimal
from app.services.reportes_service import TotalesInforme

# ── Colores ──
GRIS_OSCURO = HexColor("#424242")
AZUL_MEDIO = HexColor("#334155")
GRIS_CLARO = HexColor("#f1f5f9")
GRIS_BORDE = HexColor("#cbd5e1")
VERDE = HexColor("#16a34a")
ROJO = HexColor("#dc2626")

ETIQUETAS_GRADO = {"aprendiz": "Apr.", "companero": "Comp.", "maestro": "M."}


def _f(val):
    """Formatea número a 2 decimales con signo $."""
    return f"${float(val or 0):,.2f}"


@dataclass(frozen=True)
class Firmas:
    tesorero_nombre: str = "Tesorero"
    tesorero_grado: str = ""
    vm_nombre: Optional[str] = None
    vm_grado: str = ""


def firmas_desde(instantanea) -> Firmas:
    tesorero = instantanea.tesorero
    vm = instantanea.venerable_maestro
    return Firmas(
        tesorero_nombre=tesorero.full_name if tesorero else "Tesorero",
        tesorero_grado=ETIQUETAS_GRADO.get(tesorero.degree, "") if tesorero else "",
        vm_nombre=vm.full_name if vm else None,
        vm_grado=ETIQUETAS_GRADO.get(vm.degree, "") if vm else "",
    )


@dataclass(frozen=True)
class DatosRecibo:
    numero: str
    nombre_miembro: str
    concepto: str
    monto_total: Decimal
    monto_pagado: Decimal
    fecha_pago: date
    grado_miembro: Optional[str] = None
    saldo_pendiente: Optional[Decimal] = None
    detalles: List[str] = field(default_factory=list)


def numero_recibo(fecha: date, correlativo: int) -> str:
    """Ej: R261017-0042"""
    return f"R{fecha.strftime('%y%m%d')}-{correlativo:04d}"


def recibo_cuotas(miembro, pagos: list) -> DatosRecibo:
    """Recibo de uno o varios meses (un lote comparte fecha)."""
    pagos = sorted(pagos, key=lambda p: (p.year, p.month))
    fecha = pagos[0].paid_at or date.today()
    detalles = []
    for p in pagos:
        linea = f"{nombre_mes(p.month)} {p.year}: {_f(p.amount)}"
        if p.payment_type == TipoPago.PRONTO_PAGO_BENEFICIO.value:
            linea = f"{nombre_mes(p.month)} {p.year}: gratuito (pronto pago)"
        detalles.append(linea)
    total = sum((a_decimal(p.amount) for p in pagos), Decimal("0.00"))
    concepto = "Cuota mensual" if len(pagos) == 1 else f"Cuotas mensuales ({len(pagos)} meses)"
    return DatosRecibo(
        numero=numero_recibo(fecha, pagos[0].id or 0),
        nombre_miembro=miembro.full_name,
        grado_miembro=ETIQUETAS_GRADO.get(miembro.degree),
        concepto=concepto,
        monto_total=total,
        monto_pagado=total,
        fecha_pago=fecha,
        detalles=detalles,
    )


def recibo_extraordinaria(miembro, cuota, pago, saldo: Decimal) -> DatosRecibo:
    fecha = pago.payment_date or date.today()
    return DatosRecibo(
        numero=numero_recibo(fecha, pago.id or 0),
        nombre_miembro=miembro.full_name,
        grado_miembro=ETIQUETAS_GRADO.get(miembro.degree),
        concepto=f"Cuota extraordinaria: {cuota.name}",
        monto_total=a_decimal(cuota.amount_per_member),
        monto_pagado=a_decimal(pago.amount_paid),
        fecha_pago=fecha,
        saldo_pendiente=saldo,
    )


# ══════════════════════════════════════
# ESTILOS Y PIEZAS COMUNES
# ══════════════════════════════════════

def _estilos():
    styles = getSampleStyleSheet()
    return {
        "institucion": ParagraphStyle(
            "Institucion", parent=styles["Title"], fontSize=15, textColor=black,
            fontName="Helvetica-Bold", spaceAfter=2,
        ),
        "titulo": ParagraphStyle(
            "TituloDoc", parent=styles["Heading2"], fontSize=13, alignment=TA_CENTER,
            textColor=GRIS_OSCURO, fontName="Helvetica-Bold", spaceAfter=2,
        ),
        "seccion": ParagraphStyle(
            "Seccion", parent=styles["Heading3"], fontSize=11, textColor=black,
            fontName="Helvetica-Bold", spaceBefore=8, spaceAfter=4,
        ),
        "normal": ParagraphStyle(
            "Normal2", parent=styles["Normal"], fontSize=10, leading=14, alignment=TA_JUSTIFY,
        ),
        "small": ParagraphStyle(
            "Small", parent=styles["Normal"], fontSize=8, textColor=AZUL_MEDIO, leading=11,
        ),
        "center": ParagraphStyle(
            "Center", parent=styles["Normal"], fontSize=10, alignment=TA_CENTER,
        ),
        "right": ParagraphStyle(
            "Right", parent=styles["Normal"], fontSize=10, alignment=TA_RIGHT,
        ),
    }


def _tabla(filas: list, anchos: list, pie: bool = False, derecha: tuple = ()) -> Table:
    """Tabla con encabezado gris y filas alternadas; `pie` resalta la última fila."""
    tabla = Table(filas, colWidths=anchos, repeatRows=1)
    estilo = [
        ("BACKGROUND", (0, 0), (-1, 0), GRIS_OSCURO),
        ("TEXTCOLOR", (0, 0), (-1, 0), white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    for col in derecha:
        estilo.append(("ALIGNMENT", (col, 0), (col, -1), "RIGHT"))
    for row in range(1, len(filas)):
        if row % 2 == 0:
            estilo.append(("BACKGROUND", (0, row), (-1, row), GRIS_CLARO))
    if pie:
        estilo += [
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ("BACKGROUND", (0, -1), (-1, -1), GRIS_CLARO),
            ("LINEABOVE", (0, -1), (-1, -1), 1, GRIS_OSCURO),
        ]
    tabla.setStyle(TableStyle(estilo))
    return tabla


def _bloque_firmas(firmas: Firmas, s) -> list:
    tesorero = f"{firmas.tesorero_grado} {firmas.tesorero_nombre}".strip().upper()
    vm = f"{firmas.vm_grado} {firmas.vm_nombre}".strip().upper() if firmas.vm_nombre else ""

    firma_data = [
        ["", ""],
        ["_" * 35, "_" * 35 if vm else ""],
        [tesorero, vm],
        ["TESORERO", "VENERABLE MAESTRO" if vm else ""],
    ]
    t_firma = Table(firma_data, colWidths=[230, 230])
    t_firma.setStyle(TableStyle([
        ("ALIGNMENT", (0, 0), (-1, -1), "CENTER"),
        ("FONTNAME", (0, 2), (-1, 2), "Helvetica-Bold"),
        ("FONTSIZE", (0, 1), (-1, -1), 9),
        ("FONTSIZE", (0, 3), (-1, 3), 8),
        ("TEXTCOLOR", (0, 3), (-1, 3), AZUL_MEDIO),
        ("TOPPADDING", (0, 1), (-1, 1), 30),
        ("BOTTOMPADDING", (0, 1), (-1, 1), 4),
    ]))
    return [Spacer(1, 10), Paragraph("Con estima y fraternidad,", s["normal"]), t_firma]


class _PiePagina:
    """'Generado el ... - Página N' en cada hoja."""

    def __init__(self, generado: str):
        self.generado = generado

    def __call__(self, canvas_obj, doc):
        canvas_obj.saveState()
        w, _ = doc.pagesize
        canvas_obj.setFillColor(AZUL_MEDIO)
        canvas_obj.setFont("Helvetica", 7)
        canvas_obj.drawCentredString(w / 2, 8 * mm, f"Generado el {self.generado} - Página {doc.page}")
        canvas_obj.restoreState()


def _construir(story: list, pagesize=A4, margen=20 * mm) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=pagesize,
        topMargin=margen, bottomMargin=18 * mm, leftMargin=margen, rightMargin=margen,
    )
    pie = _PiePagina(fecha_larga(datetime.now().date()))
    doc.build(story, onFirstPage=pie, onLaterPages=pie)
    buffer.seek(0)
    return buffer.getvalue()


def _encabezado(institucion: str, titulo: str, subtitulo: str, plantilla: str, s) -> list:
    return [
        Paragraph(institucion, s["institucion"]),
        Paragraph(titulo, s["titulo"]),
        Paragraph(subtitulo, s["center"]),
        Spacer(1, 10),
        Paragraph(plantilla, s["normal"]),
        Spacer(1, 6),
    ]


def _seccion_extraordinarias(totales: TotalesInforme, s) -> list:
    story = [Paragraph("CUOTAS EXTRAORDINARIAS", s["seccion"])]
    if not totales.detalle_extraordinarias:
        story.append(Paragraph("No se registraron cuotas extraordinarias en el período.", s["small"]))
        return story
    filas = [["Nombre de la cuota", "Valor establecido", "Valor recaudado"]]
    for e in totales.detalle_extraordinarias:
        filas.append([Paragraph(e.nombre, s["small"]), _f(e.esperado), _f(e.recaudado)])
    filas.append(["TOTAL RECAUDADO", "", _f(totales.ingresos_extraordinarios)])
    story.append(_tabla(filas, [230, 110, 110], pie=True, derecha=(1, 2)))
    return story


# ══════════════════════════════════════
# INFORME MENSUAL
# ══════════════════════════════════════

def generar_pdf_informe_mensual(totales: TotalesInforme, configuracion, firmas: Firmas) -> bytes:
    s = _estilos()
    story = _encabezado(
        configuracion.institution_name,
        "INFORME MENSUAL DE TESORERÍA",
        totales.periodo.etiqueta,
        configuracion.monthly_report_template,
        s,
    )

    story.append(Paragraph("TESORERÍA - CUOTAS MENSUALES", s["seccion"]))
    story.append(_tabla([
        ["Concepto", "Valor"],
        ["Total recaudado por cuotas mensuales", _f(totales.ingresos_cuotas)],
        ["Miembros que pagaron", str(totales.miembros_al_dia)],
        ["Miembros que no pagaron", str(len(totales.deudores))],
    ], [330, 120], derecha=(1,)))

    story += _seccion_extraordinarias(totales, s)

    story.append(Paragraph("GASTOS", s["seccion"]))
    if totales.detalle_gastos:
        filas = [["Descripción", "Categoría", "Fecha", "Monto"]]
        for g in totales.detalle_gastos:
            filas.append([Paragraph(g.descripcion, s["small"]), g.categoria, formatear_fecha(g.fecha), _f(g.monto)])
        filas.append(["TOTAL DE GASTOS", "", "", _f(totales.total_gastos)])
        story.append(_tabla(filas, [200, 90, 70, 90], pie=True, derecha=(3,)))
    else:
        story.append(Paragraph("No se registraron gastos en el período.", s["small"]))

    story.append(Paragraph("RESUMEN FINANCIERO DEL PERÍODO", s["seccion"]))
    story.append(_resumen_financiero(totales, "Balance del período"))

    story += _bloque_firmas(firmas, s)
    return _construir(story)


def _resumen_financiero(totales: TotalesInforme, etiqueta_balance: str) -> Table:
    filas = [
        ["Concepto", "Monto"],
        ["Total ingresos cuotas mensuales", _f(totales.ingresos_cuotas)],
        ["Total ingresos cuotas extraordinarias", _f(totales.ingresos_extraordinarios)],
        ["Total ingresos derechos de grado", _f(totales.ingresos_derechos_grado)],
        ["Total ingresos", _f(totales.total_ingresos)],
        ["Total egresos", _f(totales.total_gastos)],
        [etiqueta_balance, _f(totales.balance)],
    ]
    tabla = _tabla(filas, [330, 120], pie=True, derecha=(1,))
    tabla.setStyle(TableStyle([
        ("TEXTCOLOR", (1, -1), (1, -1), VERDE if totales.balance >= 0 else ROJO),
    ]))
    return tabla


# ══════════════════════════════════════
# INFORME ANUAL
# ══════════════════════════════════════

def generar_pdf_informe_anual(totales: TotalesInforme, configuracion, firmas: Firmas) -> bytes:
    s = _estilos()
    story = _encabezado(
        configuracion.institution_name,
        "INFORME ANUAL DE TESORERÍA",
        f"Año {totales.periodo.anio}",
        configuracion.annual_report_template,
        s,
    )

    story.append(Paragraph("RESUMEN FINANCIERO ANUAL", s["seccion"]))
    story.append(_resumen_financiero(totales, "Balance anual"))

    story += _seccion_extraordinarias(totales, s)

    if totales.desglose_mensual:
        story.append(Paragraph("RESUMEN MENSUAL COMPARATIVO", s["seccion"]))
        filas = [["Mes", "Cuotas Mensuales", "Extraordinarios", "Egresos", "Balance"]]
        for d in totales.desglose_mensual:
            filas.append([d.mes, _f(d.ingresos_cuotas), _f(d.ingresos_extraordinarios), _f(d.gastos), _f(d.balance)])
        story.append(_tabla(filas, [90, 95, 95, 85, 85], derecha=(1, 2, 3, 4)))

    if totales.gastos_por_categoria:
        story.append(Paragraph("EGRESOS ANUALES POR CATEGORÍA", s["seccion"]))
        filas = [["Categoría", "Monto Total"]]
        for categoria, monto in sorted(totales.gastos_por_categoria.items(), key=lambda x: x[1], reverse=True):
            filas.append([categoria.capitalize(), _f(monto)])
        story.append(_tabla(filas, [330, 120], derecha=(1,)))

    story += _bloque_firmas(firmas, s)
    return _construir(story)


# ══════════════════════════════════════
# CARTA DE COBRO
# ══════════════════════════════════════

def generar_pdf_carta_cobro(
    deuda: DeudaMiembro,
    configuracion,
    firmas: Firmas,
    fecha: Optional[date] = None,
) -> bytes:
    s = _estilos()
    fecha = fecha or date.today()
    institucion = configuracion.institution_name

    story = [
        Paragraph(f"{CIUDAD_CARTAS}, {fecha_larga(fecha)}", s["right"]),
        Spacer(1, 12),
        Paragraph(f"<b>H∴ {deuda.miembro.full_name}</b>", s["normal"]),
        Paragraph("Presente.-", s["normal"]),
        Spacer(1, 10),
        Paragraph(
            f"Reciba un cordial y fraternal saludo en nombre de todos los miembros de la {institucion}.",
            s["normal"],
        ),
        Spacer(1, 4),
        Paragraph(
            "Nos dirigimos a usted con el propósito de recordarle su compromiso con nuestra "
            "institución en relación con el pago de las cuotas establecidas. A la fecha, se han "
            "identificado las siguientes cuotas pendientes:",
            s["normal"],
        ),
        Spacer(1, 6),
    ]

    if deuda.cuotas.meses_pendientes:
        story.append(Paragraph("Cuotas mensuales pendientes:", s["seccion"]))
        filas = [["Mes", "Año", "Monto pendiente"]]
        for m in deuda.cuotas.meses_pendientes:
            filas.append([m.nombre_mes, str(m.anio), _f(m.pendiente)])
        story.append(_tabla(filas, [180, 100, 150], derecha=(2,)))

    if deuda.extraordinarias:
        story.append(Paragraph("Cuotas extraordinarias pendientes:", s["seccion"]))
        filas = [["Cuota", "Monto pendiente"]]
        for e in deuda.extraordinarias:
            filas.append([Paragraph(e.nombre, s["small"]), _f(e.pendiente)])
        story.append(_tabla(filas, [280, 150], derecha=(1,)))

    story += [
        Spacer(1, 6),
        Paragraph(f"<b>TOTAL ADEUDADO: {_f(deuda.total_general)}</b>", s["normal"]),
        Spacer(1, 8),
        Paragraph(
            "Es comprensible que puedan surgir situaciones imprevistas; sin embargo, las "
            "aportaciones de todos los hermanos son esenciales para el sostenimiento de nuestras "
            "actividades.",
            s["normal"],
        ),
        Spacer(1, 4),
        Paragraph(
            "Si considera que el saldo es incorrecto, comuníquese con el Tesorero para revisar su "
            "caso. Le solicitamos regularizar su situación a la brevedad posible o establecer un "
            "plan de pagos.",
            s["normal"],
        ),
        Spacer(1, 4),
        Paragraph(
            "Reiteramos nuestro compromiso fraternal y confiamos en su disposición para resolver "
            "esta situación oportunamente.",
            s["normal"],
        ),
    ]
    story += _bloque_firmas(firmas, s)
    return _construir(story, margen=25 * mm)


# ══════════════════════════════════════
# RECIBO DE PAGO (A5)
# ══════════════════════════════════════

def generar_pdf_recibo(datos: DatosRecibo, institucion: str) -> bytes:
    s = _estilos()
    story = [
        Paragraph(institucion, s["institucion"]),
        Paragraph("RECIBO DE PAGO", s["titulo"]),
        Paragraph(f"No. {datos.numero} &nbsp;|&nbsp; Fecha: {fecha_larga(datos.fecha_pago)}", s["small"]),
        Spacer(1, 8),
    ]

    info = [["Recibido de:", datos.nombre_miembro]]
    if datos.grado_miembro:
        info.append(["Grado:", datos.grado_miembro])
    info.append(["Concepto:", Paragraph(datos.concepto, s["normal"])])
    t_info = Table(info, colWidths=[80, 270])
    t_info.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("TEXTCOLOR", (0, 0), (0, -1), AZUL_MEDIO),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    story.append(t_info)

    for detalle in datos.detalles:
        story.append(Paragraph(f"• {detalle}", s["small"]))
    story.append(Spacer(1, 8))

    montos = [
        ["Valor total:", _f(datos.monto_total)],
        ["Monto pagado:", _f(datos.monto_pagado)],
    ]
    if datos.saldo_pendiente and datos.saldo_pendiente > 0:
        montos.append(["Saldo pendiente:", _f(datos.saldo_pendiente)])
    t_montos = Table(montos, colWidths=[200, 150])
    t_montos.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("ALIGNMENT", (1, 0), (1, -1), "RIGHT"),
        ("BACKGROUND", (0, 0), (-1, -1), GRIS_CLARO),
        ("BOX", (0, 0), (-1, -1), 0.5, GRIS_BORDE),
    ]))
    story.append(t_montos)

    story += [
        Spacer(1, 30),
        Paragraph("_" * 30, s["center"]),
        Paragraph("Tesorero", s["center"]),
        Spacer(1, 8),
        Paragraph("Este recibo es un comprobante de pago válido.", s["small"]),
    ]
    return _construir(story, pagesize=A5, margen=12 * mm)
