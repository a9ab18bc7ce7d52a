"""
Middleware de Autorización
app/middleware/autorizacion.py

Dependencies de FastAPI para identificar al operador. La autenticación es
externa: se confía en el claim `is_admin` del JWT tal como llega.

Uso:
    @router.delete("/{id}")
    async def eliminar(id: int, usuario: Usuario = Depends(requiere_admin)):
        ...
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from app.utils.security import decodificar_token


@dataclass(frozen=True)
class Usuario:
    user_id: str
    is_admin: bool = False


async def obtener_usuario_actual(request: Request) -> Usuario:
    """Extrae el usuario autenticado del header Authorization: Bearer <jwt>."""
    auth_header = request.headers.get("Authorization", "")
    payload = None
    if auth_header.startswith("Bearer "):
        payload = decodificar_token(auth_header.replace("Bearer ", "", 1))

    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=401,
            detail={"error": "No autenticado", "codigo": "AUTH_REQUIRED"}
        )

    usuario = Usuario(user_id=str(payload["sub"]), is_admin=bool(payload.get("is_admin", False)))
    request.state.usuario = usuario
    return usuario


async def requiere_admin(usuario: Usuario = Depends(obtener_usuario_actual)) -> Usuario:
    """Operaciones destructivas: eliminar registros y cambiar la configuración."""
    if not usuario.is_admin:
        raise HTTPException(
            status_code=403,
            detail={"error": "Requiere rol: admin", "codigo": "FORBIDDEN"}
        )
    return usuario
