"""
Configuración por entorno
app/config.py

Variables leídas una sola vez al importar. Los valores por defecto sirven
para desarrollo local con SQLite.
"""

import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tesoreria.db")

SECRET_KEY = os.getenv("SECRET_KEY", "cambiar-en-produccion")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

# Plazo global para la carga completa del caché (segundos)
CACHE_FETCH_TIMEOUT = float(os.getenv("CACHE_FETCH_TIMEOUT", "15"))

DEFAULT_MONTHLY_FEE = float(os.getenv("DEFAULT_MONTHLY_FEE", "50"))
DEFAULT_INSTITUTION_NAME = os.getenv("DEFAULT_INSTITUTION_NAME", "Logia")

# Ecuador por defecto
WHATSAPP_COUNTRY_CODE = os.getenv("WHATSAPP_COUNTRY_CODE", "593")
CIUDAD_CARTAS = os.getenv("CIUDAD_CARTAS", "Quito")

GCS_BUCKET_NAME = os.getenv("GCS_BUCKET_NAME", "logia-tesoreria")
GCS_CREDENTIALS_JSON = os.getenv("GCS_CREDENTIALS_JSON")
