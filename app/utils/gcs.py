"""
Google Cloud Storage — Comprobantes y firmas de tesorería
=========================================================

Estructura de carpetas:
  comprobantes/{tipo}/{aaaa}/{mm}/{uuid}.{ext}   → público (URL guardada en la fila)
  firmas/{rol}.{ext}                              → público, se sobrescribe

Variables de entorno:
  GCS_BUCKET_NAME          = logia-tesoreria
  GCS_CREDENTIALS_JSON     = {"type":"service_account",...}

Sin credenciales las funciones retornan None: la escritura del pago sigue
adelante sin URL de comprobante.
"""

import json
import logging
import uuid
from datetime import date
from typing import Optional

from app.config import GCS_BUCKET_NAME, GCS_CREDENTIALS_JSON

logger = logging.getLogger(__name__)

_client = None
_credentials = None

TIPOS_PERMITIDOS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}
TAMANO_MAXIMO = 5 * 1024 * 1024


def _get_credentials():
    """Parsea credenciales una sola vez"""
    global _credentials
    if _credentials is not None:
        return _credentials

    if not GCS_CREDENTIALS_JSON:
        return None

    try:
        from google.oauth2 import service_account
        creds_info = json.loads(GCS_CREDENTIALS_JSON)
        _credentials = service_account.Credentials.from_service_account_info(creds_info)
        return _credentials
    except (ValueError, KeyError) as e:
        logger.warning(f"GCS: Error parseando credenciales: {e}")
        return None


def _get_client():
    """Inicializa cliente GCS (lazy, singleton)"""
    global _client
    if _client is not None:
        return _client

    credentials = _get_credentials()
    if not credentials:
        return None

    from google.cloud import storage
    _client = storage.Client(credentials=credentials, project=credentials.project_id)
    return _client


def ruta_comprobante(tipo: str, content_type: str, fecha: Optional[date] = None) -> str:
    """tipo: 'cuotas', 'extraordinarias', 'gastos', 'derechos_grado'"""
    fecha = fecha or date.today()
    ext = TIPOS_PERMITIDOS.get(content_type, "bin")
    return f"comprobantes/{tipo}/{fecha.year}/{fecha.month:02d}/{uuid.uuid4().hex}.{ext}"


def _subir(file_bytes: bytes, content_type: str, blob_path: str) -> Optional[str]:
    client = _get_client()
    if not client:
        logger.warning("GCS no configurado — archivo no guardado")
        return None

    from google.api_core.exceptions import GoogleAPIError

    try:
        bucket = client.bucket(GCS_BUCKET_NAME)
        blob = bucket.blob(blob_path)
        blob.upload_from_string(file_bytes, content_type=content_type)
        blob.cache_control = "public, max-age=3600"
        blob.patch()
        return blob.public_url
    except GoogleAPIError as e:
        logger.warning(f"GCS: Error subiendo {blob_path}: {e}")
        return None


def upload_comprobante(file_bytes: bytes, content_type: str, tipo: str) -> Optional[str]:
    """
    Sube la imagen/PDF de un comprobante.
    Retorna la URL pública, o None si GCS no está configurado o falla.
    """
    return _subir(file_bytes, content_type, ruta_comprobante(tipo, content_type))


def upload_firma(file_bytes: bytes, content_type: str, rol: str) -> Optional[str]:
    """rol: 'tesorero' o 'venerable_maestro'. Siempre sobrescribe la anterior."""
    ext = TIPOS_PERMITIDOS.get(content_type, "png")
    return _subir(file_bytes, content_type, f"firmas/{rol}.{ext}")
