"""
Router de Comprobantes
Sube la imagen/PDF de un comprobante a GCS y devuelve la URL para
guardarla en el pago, gasto o abono. También sube las firmas del
Tesorero y del Venerable Maestro que van al pie de los informes.
"""

import asyncio

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from app.dependencies import obtener_servicio_configuracion
from app.middleware.autorizacion import Usuario, obtener_usuario_actual, requiere_admin
from app.services.configuracion_service import ServicioConfiguracion
from app.utils.gcs import TAMANO_MAXIMO, TIPOS_PERMITIDOS, upload_comprobante, upload_firma

router = APIRouter(prefix="/api/comprobantes", tags=["comprobantes"])

TIPOS_COMPROBANTE = ("cuotas", "extraordinarias", "gastos", "derechos_grado")
CAMPO_FIRMA = {
    "tesorero": "treasurer_signature_url",
    "venerable_maestro": "vm_signature_url",
}


async def _leer(file: UploadFile) -> bytes:
    if file.content_type not in TIPOS_PERMITIDOS:
        raise HTTPException(status_code=400, detail="Tipo de archivo no permitido")
    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="Archivo vacío")
    if len(contents) > TAMANO_MAXIMO:
        raise HTTPException(status_code=400, detail="Archivo muy grande (max 5MB)")
    return contents


@router.post("", status_code=201)
async def subir_comprobante(
    file: UploadFile = File(...),
    tipo: str = Form(...),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    if tipo not in TIPOS_COMPROBANTE:
        raise HTTPException(status_code=400, detail=f"Tipo inválido: {tipo}")
    contents = await _leer(file)

    url = await asyncio.to_thread(upload_comprobante, contents, file.content_type, tipo)
    if not url:
        raise HTTPException(status_code=503, detail="Almacenamiento de comprobantes no disponible")
    return {"success": True, "url": url}


@router.post("/firma", status_code=201)
async def subir_firma(
    file: UploadFile = File(...),
    rol: str = Form(...),
    servicio: ServicioConfiguracion = Depends(obtener_servicio_configuracion),
    usuario: Usuario = Depends(requiere_admin),
):
    campo = CAMPO_FIRMA.get(rol)
    if not campo:
        raise HTTPException(status_code=400, detail=f"Rol inválido: {rol}")
    contents = await _leer(file)

    url = await asyncio.to_thread(upload_firma, contents, file.content_type, rol)
    if not url:
        raise HTTPException(status_code=503, detail="Almacenamiento de comprobantes no disponible")

    configuracion = await servicio.actualizar({campo: url})
    return {"success": True, "url": url, "configuracion": configuracion.a_dict()}
