"""
Router de Cuotas Extraordinarias
Cuotas únicas por miembro y sus abonos (se admiten varios abonos por
miembro; el saldo es la suma).
"""

from datetime import date
from io import BytesIO
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from app.dependencies import obtener_instantanea, obtener_servicio
from app.middleware.autorizacion import Usuario, obtener_usuario_actual, requiere_admin
from app.routers.serializadores import cuota_extraordinaria_dict, pago_extraordinario_dict
from app.services.cache_datos import Instantanea
from app.services.cuotas_extraordinarias_service import resumen_recaudacion, saldo_miembro
from app.services.mensajes_whatsapp import enlace_whatsapp, mensaje_recibo
from app.services.pdf_reportes import generar_pdf_recibo, recibo_extraordinaria
from app.services.tesoreria_service import ServicioTesoreria

router = APIRouter(prefix="/api/cuotas-extraordinarias", tags=["cuotas-extraordinarias"])


class CuotaExtraordinariaRequest(BaseModel):
    name: str
    description: Optional[str] = None
    amount_per_member: float
    due_date: Optional[date] = None
    is_mandatory: bool = True
    category: Optional[str] = None


class AbonoRequest(BaseModel):
    member_id: int
    amount_paid: float
    payment_date: Optional[date] = None
    receipt_url: Optional[str] = None


def _cuota_o_404(instantanea: Instantanea, cuota_id: int):
    cuota = next((c for c in instantanea.extraordinary_fees if c.id == cuota_id), None)
    if not cuota:
        raise HTTPException(status_code=404, detail="Cuota extraordinaria no encontrada")
    return cuota


@router.get("")
async def listar_cuotas(
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    activos = instantanea.miembros_activos
    cuotas = []
    for c in instantanea.extraordinary_fees:
        recaudado, esperado = resumen_recaudacion(c, instantanea.extraordinary_payments, activos)
        cuotas.append({
            **cuota_extraordinaria_dict(c),
            "collected": float(recaudado),
            "expected": float(esperado),
        })
    return {"cuotas": cuotas}


@router.get("/{cuota_id}")
async def detalle_cuota(
    cuota_id: int,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    """Saldo de cada miembro activo en la cuota."""
    cuota = _cuota_o_404(instantanea, cuota_id)
    pagos = instantanea.extraordinary_payments
    return {
        **cuota_extraordinaria_dict(cuota),
        "miembros": [
            {
                "member_id": m.id,
                "member_name": m.full_name,
                "pending": float(saldo_miembro(cuota, pagos, m.id)),
            }
            for m in instantanea.miembros_activos
        ],
        "abonos": [pago_extraordinario_dict(p) for p in pagos if p.extraordinary_fee_id == cuota.id],
    }


@router.post("", status_code=201)
async def crear_cuota(
    req: CuotaExtraordinariaRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    cuota = await servicio.guardar_cuota_extraordinaria(req.model_dump())
    return cuota_extraordinaria_dict(cuota)


@router.put("/{cuota_id}")
async def actualizar_cuota(
    cuota_id: int,
    req: CuotaExtraordinariaRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    cuota = await servicio.guardar_cuota_extraordinaria(req.model_dump(), cuota_id)
    return cuota_extraordinaria_dict(cuota)


@router.delete("/{cuota_id}")
async def eliminar_cuota(
    cuota_id: int,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(requiere_admin),
):
    await servicio.eliminar_cuota_extraordinaria(cuota_id)
    return {"success": True, "mensaje": "Cuota eliminada junto con sus abonos"}


# ══════════════════════════════════════
# ABONOS
# ══════════════════════════════════════

@router.post("/{cuota_id}/pagos", status_code=201)
async def registrar_abono(
    cuota_id: int,
    req: AbonoRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    pago = await servicio.registrar_pago_extraordinario(
        cuota_id, req.member_id, req.amount_paid, req.payment_date, req.receipt_url
    )
    instantanea = servicio.cache.instantanea
    cuota = _cuota_o_404(instantanea, cuota_id)
    miembro = instantanea.miembro(req.member_id)
    saldo = saldo_miembro(cuota, instantanea.extraordinary_payments, req.member_id)
    mensaje = mensaje_recibo(miembro.full_name, cuota.name, pago.amount_paid, saldo)
    return {
        **pago_extraordinario_dict(pago),
        "pending": float(saldo),
        "whatsapp_url": enlace_whatsapp(miembro.phone, mensaje),
    }


@router.get("/pagos/{pago_id}/recibo")
async def recibo_abono(
    pago_id: int,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    pago = next((p for p in instantanea.extraordinary_payments if p.id == pago_id), None)
    if not pago:
        raise HTTPException(status_code=404, detail="Abono no encontrado")
    cuota = _cuota_o_404(instantanea, pago.extraordinary_fee_id)
    miembro = instantanea.miembro(pago.member_id)
    if not miembro:
        raise HTTPException(status_code=404, detail="Miembro no encontrado")

    saldo = saldo_miembro(cuota, instantanea.extraordinary_payments, miembro.id)
    datos = recibo_extraordinaria(miembro, cuota, pago, saldo)
    pdf = generar_pdf_recibo(datos, instantanea.nombre_institucion)
    return StreamingResponse(
        BytesIO(pdf),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=Recibo_{datos.numero}.pdf"},
    )


@router.delete("/pagos/{pago_id}")
async def eliminar_abono(
    pago_id: int,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(requiere_admin),
):
    await servicio.eliminar_pago_extraordinario(pago_id)
    return {"success": True}
