"""
Router de Reportes — Tesorería
Informe mensual y anual (JSON, PDF y Excel) y carta de cobro por miembro.
Todos los cálculos salen de la instantánea del caché.
"""

from datetime import date
from io import BytesIO
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from app.dependencies import obtener_instantanea
from app.middleware.autorizacion import Usuario, obtener_usuario_actual
from app.services.cache_datos import Instantanea
from app.services.deuda_cuotas_service import calcular_deuda_total
from app.services.pdf_reportes import (
    firmas_desde, generar_pdf_carta_cobro, generar_pdf_informe_anual, generar_pdf_informe_mensual,
)
from app.services.reportes_service import Periodo, TotalesInforme, agregar

router = APIRouter(prefix="/api/reportes", tags=["reportes"])

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _periodo(anio: int, mes: Optional[int]) -> Periodo:
    return Periodo(anio, mes)


def _descarga(contenido: bytes, media_type: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        BytesIO(contenido),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _nombre_archivo(totales: TotalesInforme, ext: str) -> str:
    if totales.periodo.es_anual:
        return f"Informe_Anual_{totales.periodo.anio}.{ext}"
    return f"Informe_Mensual_{totales.periodo.etiqueta.replace(' ', '_')}.{ext}"


# ══════════════════════════════════════════════════════════
# INFORMES
# ══════════════════════════════════════════════════════════

@router.get("/informe")
async def informe(
    anio: int,
    mes: Optional[int] = Query(None, ge=1, le=12),
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    return agregar(_periodo(anio, mes), instantanea).a_dict()


@router.get("/informe/pdf")
async def informe_pdf(
    anio: int,
    mes: Optional[int] = Query(None, ge=1, le=12),
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    totales = agregar(_periodo(anio, mes), instantanea)
    firmas = firmas_desde(instantanea)
    if totales.periodo.es_anual:
        pdf = generar_pdf_informe_anual(totales, instantanea.configuracion, firmas)
    else:
        pdf = generar_pdf_informe_mensual(totales, instantanea.configuracion, firmas)
    return _descarga(pdf, "application/pdf", _nombre_archivo(totales, "pdf"))


@router.get("/informe/excel")
async def informe_excel(
    anio: int,
    mes: Optional[int] = Query(None, ge=1, le=12),
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    totales = agregar(_periodo(anio, mes), instantanea)
    contenido = generar_excel_informe(totales, instantanea.nombre_institucion)
    return _descarga(contenido, XLSX, _nombre_archivo(totales, "xlsx"))


# ══════════════════════════════════════════════════════════
# CARTA DE COBRO
# ══════════════════════════════════════════════════════════

@router.get("/carta-cobro/{member_id}")
async def carta_cobro(
    member_id: int,
    fecha: Optional[date] = None,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    miembro = instantanea.miembro(member_id)
    if not miembro:
        raise HTTPException(status_code=404, detail="Miembro no encontrado")

    deuda = calcular_deuda_total(miembro, instantanea, fecha)
    if deuda.total_general <= 0:
        raise HTTPException(status_code=409, detail="El miembro no tiene deudas pendientes")

    pdf = generar_pdf_carta_cobro(deuda, instantanea.configuracion, firmas_desde(instantanea), fecha)
    nombre = "".join(c if c.isalnum() else "_" for c in miembro.full_name)[:20]
    return _descarga(pdf, "application/pdf", f"Carta_Cobro_{nombre}.pdf")


# ══════════════════════════════════════════════════════════
# EXCEL
# ══════════════════════════════════════════════════════════

def generar_excel_informe(totales: TotalesInforme, institucion: str) -> bytes:
    from openpyxl import Workbook
    from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

    wb = Workbook()
    ws = wb.active
    ws.title = "Resumen"

    header_fill = PatternFill("solid", fgColor="424242")
    header_font = Font(bold=True, color="FFFFFF", size=10, name="Arial")
    thin = Border(left=Side("thin"), right=Side("thin"), top=Side("thin"), bottom=Side("thin"))
    moneda = '#,##0.00'

    def encabezado(hoja, fila, columnas):
        for c, titulo in enumerate(columnas, 1):
            cell = hoja.cell(row=fila, column=c, value=titulo)
            cell.font = header_font
            cell.fill = header_fill
            cell.border = thin
            cell.alignment = Alignment(horizontal="center")

    def filas(hoja, inicio, datos, columnas_moneda=()):
        for r, valores in enumerate(datos, inicio):
            for c, valor in enumerate(valores, 1):
                cell = hoja.cell(row=r, column=c, value=valor)
                cell.border = thin
                cell.font = Font(name="Arial", size=10)
                if c in columnas_moneda:
                    cell.number_format = moneda
        return inicio + len(datos)

    # ── Resumen ──
    ws.merge_cells("A1:B1")
    ws["A1"] = institucion
    ws["A1"].font = Font(bold=True, size=13, name="Arial")
    ws["A1"].alignment = Alignment(horizontal="center")
    ws.merge_cells("A2:B2")
    tipo = "INFORME ANUAL" if totales.periodo.es_anual else "INFORME MENSUAL"
    ws["A2"] = f"{tipo} DE TESORERÍA — {totales.periodo.etiqueta}"
    ws["A2"].font = Font(size=11, name="Arial")
    ws["A2"].alignment = Alignment(horizontal="center")

    encabezado(ws, 4, ["Concepto", "Monto"])
    fin = filas(ws, 5, [
        ["Cuotas mensuales", float(totales.ingresos_cuotas)],
        ["Cuotas extraordinarias", float(totales.ingresos_extraordinarios)],
        ["Derechos de grado", float(totales.ingresos_derechos_grado)],
        ["Total ingresos", float(totales.total_ingresos)],
        ["Total egresos", float(totales.total_gastos)],
        ["Balance", float(totales.balance)],
    ], columnas_moneda=(2,))
    for c in (1, 2):
        ws.cell(row=fin - 1, column=c).font = Font(bold=True, name="Arial", size=10)
    ws.column_dimensions["A"].width = 34
    ws.column_dimensions["B"].width = 16

    # ── Pagos por miembro ──
    ws_m = wb.create_sheet("Miembros")
    encabezado(ws_m, 1, ["Miembro", "Total pagado", "N° pagos"])
    filas(ws_m, 2, [
        [p.nombre, float(p.total_pagado), p.cantidad_pagos] for p in totales.pagos_por_miembro
    ], columnas_moneda=(2,))
    ws_m.column_dimensions["A"].width = 36
    ws_m.column_dimensions["B"].width = 16

    # ── Gastos ──
    ws_g = wb.create_sheet("Gastos")
    encabezado(ws_g, 1, ["Fecha", "Descripción", "Categoría", "Monto"])
    fin = filas(ws_g, 2, [
        [g.fecha, g.descripcion, g.categoria, float(g.monto)] for g in totales.detalle_gastos
    ], columnas_moneda=(4,))
    ws_g.cell(row=fin, column=3, value="TOTAL").font = Font(bold=True, name="Arial")
    total_cell = ws_g.cell(row=fin, column=4, value=float(totales.total_gastos))
    total_cell.font = Font(bold=True, name="Arial")
    total_cell.number_format = moneda
    total_cell.border = Border(top=Side(style="double"))
    for col, w in zip("ABCD", (12, 40, 16, 14)):
        ws_g.column_dimensions[col].width = w

    # ── Desglose mensual (solo anual) ──
    if totales.desglose_mensual:
        ws_d = wb.create_sheet("Mensual")
        encabezado(ws_d, 1, ["Mes", "Cuotas", "Extraordinarios", "Egresos", "Balance"])
        filas(ws_d, 2, [
            [d.mes, float(d.ingresos_cuotas), float(d.ingresos_extraordinarios), float(d.gastos), float(d.balance)]
            for d in totales.desglose_mensual
        ], columnas_moneda=(2, 3, 4, 5))
        for col in "ABCDE":
            ws_d.column_dimensions[col].width = 16

    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf.getvalue()
