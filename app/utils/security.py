"""
Tokens JWT (python-jose)

La emisión del token la hace el proveedor de autenticación externo; aquí
solo se decodifica. `crear_token` existe para scripts y pruebas locales.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from app.config import ALGORITHM, SECRET_KEY


def decodificar_token(token: str) -> Optional[dict]:
    """Payload del token, o None si es inválido o expiró."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def crear_token(user_id: str, is_admin: bool = False, minutos: int = 60) -> str:
    payload = {
        "sub": str(user_id),
        "is_admin": is_admin,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutos),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)
