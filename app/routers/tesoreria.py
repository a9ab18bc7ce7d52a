"""
Router de Tesorería
Cuotas mensuales: deuda inferida, pago individual, pronto pago,
pago adelantado, cuentas por cobrar y recordatorios por WhatsApp.
"""

from datetime import date
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from io import BytesIO
from pydantic import BaseModel

from app.dependencies import obtener_cache, obtener_instantanea, obtener_servicio
from app.middleware.autorizacion import Usuario, obtener_usuario_actual, requiere_admin
from app.routers.serializadores import pago_mensual_dict
from app.services.cache_datos import CacheDatos, Instantanea
from app.services.calendario_fiscal import anio_fiscal_de, info_anio_fiscal, meses_fiscales, nombre_mes
from app.services.deuda_cuotas_service import calcular_deuda_total, formatear_meses_pendientes
from app.services.mensajes_whatsapp import enlace_recordatorio
from app.services.pagos_lote_service import meses_sin_registro, validar_monto_adelantado
from app.services.pdf_reportes import generar_pdf_recibo, recibo_cuotas
from app.services.politicas_financieras import cuota_efectiva
from app.services.tesoreria_service import ServicioTesoreria


router = APIRouter(prefix="/api/tesoreria", tags=["tesoreria"])


class PagoMensualRequest(BaseModel):
    member_id: int
    month: int
    year: int
    amount: float
    paid_at: Optional[date] = None
    receipt_url: Optional[str] = None


class ProntoPagoRequest(BaseModel):
    member_id: int
    amount_per_month: float
    payment_date: date
    fiscal_year: Optional[int] = None
    receipt_url: Optional[str] = None


class PagoAdelantadoRequest(BaseModel):
    member_id: int
    total_amount: float
    selected_months: List[Tuple[int, int]]
    payment_date: date
    fiscal_year: Optional[int] = None
    receipt_url: Optional[str] = None


class ValidarAdelantadoRequest(BaseModel):
    member_id: int
    total_amount: float
    payment_date: Optional[date] = None
    fiscal_year: Optional[int] = None


def _miembro_o_404(instantanea: Instantanea, member_id: int):
    miembro = instantanea.miembro(member_id)
    if not miembro:
        raise HTTPException(status_code=404, detail="Miembro no encontrado")
    return miembro


# ══════════════════════════════════════════════════════════
# CONSULTAS
# ══════════════════════════════════════════════════════════

@router.get("/anio-fiscal")
async def anio_fiscal(fecha: Optional[date] = None, usuario: Usuario = Depends(obtener_usuario_actual)):
    info = info_anio_fiscal(fecha)
    return {
        "fiscal_year": info.anio_fiscal,
        "current_calendar_year": info.anio_calendario_actual,
        "next_calendar_year": info.anio_calendario_siguiente,
        "start_month": info.mes_inicio,
        "end_month": info.mes_fin,
        "label": info.etiqueta,
        "months": [{"month": m, "year": a, "month_name": nombre_mes(m)} for m, a in meses_fiscales(info.anio_fiscal)],
    }


@router.get("/resumen")
async def resumen(
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    return instantanea.resumen.a_dict()


@router.post("/refrescar")
async def refrescar(
    cache: CacheDatos = Depends(obtener_cache),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    instantanea = await cache.invalidar()
    return instantanea.resumen.a_dict()


@router.get("/pagos")
async def listar_pagos(
    member_id: Optional[int] = None,
    fiscal_year: Optional[int] = None,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    """Grilla del año logial: filas existentes del período."""
    anio = fiscal_year if fiscal_year is not None else anio_fiscal_de(date.today())
    meses = set(meses_fiscales(anio))
    pagos = [
        p for p in instantanea.monthly_payments
        if (p.month, p.year) in meses and (member_id is None or p.member_id == member_id)
    ]
    return {"fiscal_year": anio, "pagos": [pago_mensual_dict(p) for p in pagos]}


@router.get("/deuda/{member_id}")
async def deuda_miembro(
    member_id: int,
    fecha: Optional[date] = None,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    miembro = _miembro_o_404(instantanea, member_id)
    deuda = calcular_deuda_total(miembro, instantanea, fecha)
    data = deuda.a_dict()
    data["meses_texto"] = formatear_meses_pendientes(deuda.cuotas.meses_pendientes)
    return data


@router.get("/cuentas-por-cobrar")
async def cuentas_por_cobrar(
    fecha: Optional[date] = None,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    deudas = await servicio.cuentas_por_cobrar(fecha)
    return {
        "deudores": [d.a_dict() for d in deudas],
        "total_general": float(sum(d.total_general for d in deudas)),
        "total_deudores": len(deudas),
    }


@router.get("/recordatorio/{member_id}")
async def recordatorio_whatsapp(
    member_id: int,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    miembro = _miembro_o_404(instantanea, member_id)
    deuda = calcular_deuda_total(miembro, instantanea)
    if not deuda.cuotas.meses_pendientes:
        return {"whatsapp_url": None, "mensaje": "El miembro no tiene cuotas pendientes"}
    url = enlace_recordatorio(deuda, instantanea.nombre_institucion)
    if not url:
        return {"whatsapp_url": None, "mensaje": "El miembro no tiene teléfono registrado"}
    return {"whatsapp_url": url}


# ══════════════════════════════════════════════════════════
# REGISTRO DE PAGOS
# ══════════════════════════════════════════════════════════

@router.post("/pagos", status_code=201)
async def registrar_pago(
    req: PagoMensualRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    pago = await servicio.registrar_pago_mensual(
        req.member_id, req.month, req.year, req.amount, req.paid_at, req.receipt_url
    )
    return pago_mensual_dict(pago)


@router.delete("/pagos/{pago_id}")
async def eliminar_pago(
    pago_id: int,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(requiere_admin),
):
    await servicio.eliminar_pago_mensual(pago_id)
    return {"success": True}


@router.post("/pronto-pago", status_code=201)
async def pronto_pago(
    req: ProntoPagoRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    resultado, pagos = await servicio.registrar_pronto_pago(
        req.member_id, req.amount_per_month, req.payment_date, req.fiscal_year, req.receipt_url
    )
    miembro = servicio.cache.instantanea.miembro(req.member_id)
    return {
        "success": True,
        "mensaje": resultado.descripcion(miembro.full_name),
        "group_id": resultado.group_id,
        "total_cobrado": float(resultado.total_cobrado),
        "mes_gratis": (
            {"month": resultado.mes_gratis.month, "year": resultado.mes_gratis.year}
            if resultado.mes_gratis else None
        ),
        "pagos": [pago_mensual_dict(p) for p in pagos],
    }


@router.post("/pago-adelantado/validar")
async def validar_pago_adelantado(
    req: ValidarAdelantadoRequest,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    """Cuántos meses cubre el monto y cuáles están libres para elegir."""
    miembro = _miembro_o_404(instantanea, req.member_id)
    cuota = cuota_efectiva(miembro, instantanea.cuota_mensual)
    meses = validar_monto_adelantado(req.total_amount, cuota)
    # Mismo año objetivo que al registrar: explícito o el de la fecha de pago
    if req.fiscal_year is not None:
        anio = req.fiscal_year
    else:
        anio = anio_fiscal_de(req.payment_date or date.today())
    return {
        "months_covered": meses,
        "fiscal_year": anio,
        "monthly_fee": float(cuota),
        "available_months": [
            {"month": m, "year": a, "month_name": nombre_mes(m)}
            for m, a in meses_sin_registro(miembro.id, instantanea.monthly_payments, anio)
        ],
    }


@router.post("/pago-adelantado", status_code=201)
async def pago_adelantado(
    req: PagoAdelantadoRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    pagos = await servicio.registrar_pago_adelantado(
        req.member_id, req.total_amount, req.selected_months, req.payment_date,
        req.fiscal_year, req.receipt_url,
    )
    return {
        "success": True,
        "mensaje": f"Se registraron {len(pagos)} meses por adelantado",
        "group_id": pagos[0].quick_pay_group_id if pagos else None,
        "pagos": [pago_mensual_dict(p) for p in pagos],
    }


@router.get("/recibo/{pago_id}")
async def recibo_pago(
    pago_id: int,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    """Recibo PDF del pago; si pertenece a un lote, incluye todo el lote."""
    pago = next((p for p in instantanea.monthly_payments if p.id == pago_id), None)
    if not pago:
        raise HTTPException(status_code=404, detail="Pago no encontrado")
    if pago.quick_pay_group_id:
        pagos = [p for p in instantanea.monthly_payments if p.quick_pay_group_id == pago.quick_pay_group_id]
    else:
        pagos = [pago]

    miembro = _miembro_o_404(instantanea, pago.member_id)
    datos = recibo_cuotas(miembro, pagos)
    pdf = generar_pdf_recibo(datos, instantanea.nombre_institucion)
    return StreamingResponse(
        BytesIO(pdf),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=Recibo_{datos.numero}.pdf"},
    )
