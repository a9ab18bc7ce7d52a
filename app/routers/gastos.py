"""
Router de Gastos y Derechos de Grado
Registros planos: solo alimentan los totales de los informes.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.dependencies import obtener_instantanea, obtener_servicio
from app.middleware.autorizacion import Usuario, obtener_usuario_actual, requiere_admin
from app.models import CategoriaDerechoGrado, CategoriaGasto
from app.routers.serializadores import derecho_grado_dict, gasto_dict
from app.services.cache_datos import Instantanea
from app.services.errores import ErrorValidacion
from app.services.tesoreria_service import ServicioTesoreria

router = APIRouter(prefix="/api", tags=["gastos"])


class GastoRequest(BaseModel):
    description: str
    amount: float
    category: CategoriaGasto = CategoriaGasto.OTROS
    expense_date: date
    notes: Optional[str] = None
    receipt_url: Optional[str] = None


class DerechoGradoRequest(BaseModel):
    description: str
    amount: float
    category: CategoriaDerechoGrado = CategoriaDerechoGrado.INICIACION
    fee_date: date
    notes: Optional[str] = None
    receipt_url: Optional[str] = None


def _validar(req) -> dict:
    if not req.description.strip():
        raise ErrorValidacion("La descripción es obligatoria")
    if req.amount <= 0:
        raise ErrorValidacion("El monto debe ser mayor a 0")
    datos = req.model_dump()
    datos["category"] = req.category.value
    return datos


# ══════════════════════════════════════
# GASTOS
# ══════════════════════════════════════

@router.get("/gastos")
async def listar_gastos(
    category: Optional[CategoriaGasto] = None,
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    gastos = instantanea.expenses
    if category:
        gastos = [g for g in gastos if g.category == category.value]
    return {"gastos": [gasto_dict(g) for g in gastos]}


@router.post("/gastos", status_code=201)
async def crear_gasto(
    req: GastoRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    return gasto_dict(await servicio.guardar_gasto(_validar(req)))


@router.put("/gastos/{gasto_id}")
async def actualizar_gasto(
    gasto_id: int,
    req: GastoRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    return gasto_dict(await servicio.guardar_gasto(_validar(req), gasto_id))


@router.delete("/gastos/{gasto_id}")
async def eliminar_gasto(
    gasto_id: int,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(requiere_admin),
):
    await servicio.eliminar_gasto(gasto_id)
    return {"success": True}


# ══════════════════════════════════════
# DERECHOS DE GRADO
# ══════════════════════════════════════

@router.get("/derechos-grado")
async def listar_derechos_grado(
    instantanea: Instantanea = Depends(obtener_instantanea),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    return {"derechos_grado": [derecho_grado_dict(d) for d in instantanea.degree_fees]}


@router.post("/derechos-grado", status_code=201)
async def crear_derecho_grado(
    req: DerechoGradoRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    return derecho_grado_dict(await servicio.guardar_derecho_grado(_validar(req)))


@router.put("/derechos-grado/{derecho_id}")
async def actualizar_derecho_grado(
    derecho_id: int,
    req: DerechoGradoRequest,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(obtener_usuario_actual),
):
    return derecho_grado_dict(await servicio.guardar_derecho_grado(_validar(req), derecho_id))


@router.delete("/derechos-grado/{derecho_id}")
async def eliminar_derecho_grado(
    derecho_id: int,
    servicio: ServicioTesoreria = Depends(obtener_servicio),
    usuario: Usuario = Depends(requiere_admin),
):
    await servicio.eliminar_derecho_grado(derecho_id)
    return {"success": True}
