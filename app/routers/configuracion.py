"""
Router de Configuración de la Logia
Lectura libre para usuarios autenticados; cambios solo administradores.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.dependencies import obtener_servicio_configuracion
from app.middleware.autorizacion import Usuario, obtener_usuario_actual, requiere_admin
from app.services.configuracion_service import ServicioConfiguracion

router = APIRouter(prefix="/api/configuracion", tags=["configuracion"])


class ConfiguracionRequest(BaseModel):
    institution_name: Optional[str] = None
    monthly_fee_base: Optional[float] = None
    monthly_report_template: Optional[str] = None
    annual_report_template: Optional[str] = None
    logo_url: Optional[str] = None
    treasurer_id: Optional[int] = None
    treasurer_signature_url: Optional[str] = None
    vm_signature_url: Optional[str] = None


@router.get("")
async def obtener_configuracion(
    servicio: ServicioConfiguracion = Depends(obtener_servicio_configuracion),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    return (await servicio.obtener()).a_dict()


@router.put("")
async def actualizar_configuracion(
    req: ConfiguracionRequest,
    servicio: ServicioConfiguracion = Depends(obtener_servicio_configuracion),
    usuario: Usuario = Depends(requiere_admin),
):
    # Solo los campos enviados; un campo ausente no se pisa con None
    cambios = req.model_dump(exclude_unset=True)
    configuracion = await servicio.actualizar(cambios)
    return {"success": True, "configuracion": configuracion.a_dict()}
