"""
Router de Miembros
CRUD de miembros + cumpleañeros del día con enlace de WhatsApp.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.dependencies import obtener_instantanea, obtener_servicio
from app.middleware.autorizacion import Usuario, obtener_usuario_actual, requiere_admin
from app.models import CargoLogial, EstadoMiembro, Grado
from app.routers.serializadores import miembro_dict
from app.services.cache_datos import Instantanea
from app.services.mensajes_whatsapp import cumpleaneros_de_hoy, enlace_cumpleanos
from app.services.tesoreria_service import ServicioTesoreria

router = APIRouter(prefix="/api/miembros", tags=["miembros"])


class MiembroRequest(BaseModel):
    full_name: Optional[str] = None
    degree: Optional[Grado] = None
    status: Optional[EstadoMiembro] = None
    treasury_amount: Optional[float] = None
    is_treasurer: Optional[bool] = None
    cargo_logial: Optional[CargoLogial] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    cedula: Optional[str] = None
    address: Optional[str] = None
    join_date: Optional[date] = None
    birth_date: Optional[date] = None


def _datos(req: MiembroRequest) -> dict:
    datos = req.model_dump(exclude_unset=True)
    for campo in ("degree", "status", "cargo_logial"):
        if datos.get(campo) is not None:
            datos[campo] = datos[campo].value
    return datos


@router.get("")
async def listar_miembros(
    status: Optional[EstadoMiembro] = None,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    miembros = instantanea.members
    if status:
        miembros = [m for m in miembros if m.status == status.value]
    return {"miembros": [miembro_dict(m) for m in miembros], "total": len(miembros)}


@router.get("/cumpleanos")
async def cumpleanos_hoy(
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    return {
        "cumpleaneros": [
            {**miembro_dict(m), "whatsapp_url": enlace_cumpleanos(m, instantanea.nombre_institucion)}
            for m in cumpleaneros_de_hoy(instantanea.miembros_activos)
        ]
    }


@router.get("/dignatarios")
async def dignatarios(
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    tesorero = instantanea.tesorero
    vm = instantanea.venerable_maestro
    return {
        "tesorero": miembro_dict(tesorero) if tesorero else None,
        "venerable_maestro": miembro_dict(vm) if vm else None,
    }


@router.get("/{member_id}")
async def obtener_miembro(
    member_id: int,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    miembro = instantanea.miembro(member_id)
    if not miembro:
        raise HTTPException(status_code=404, detail="Miembro no encontrado")
    return miembro_dict(miembro)


@router.post("", status_code=201)
async def crear_miembro(
    req: MiembroRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    miembro = await servicio.guardar_miembro(_datos(req))
    return miembro_dict(miembro)


@router.put("/{member_id}")
async def actualizar_miembro(
    member_id: int,
    req: MiembroRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    miembro = await servicio.guardar_miembro(_datos(req), member_id)
    return miembro_dict(miembro)


@router.delete("/{member_id}")
async def eliminar_miembro(
    member_id: int,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(requiere_admin),
):
    await servicio.eliminar_miembro(member_id)
    return {"success": True, "mensaje": "Miembro eliminado"}
