import os
from typing import List

APP_NAME = "Storefront API"
API_PREFIX = "/api/v1"

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "storefront")

# JWT Config
SECRET_KEY = os.getenv("JWT_SECRET", "dev-secret-change")
ALGORITHM = "HS256"
TOKEN_LIFETIME_DAYS = 30

# Session cookie
COOKIE_NAME = "token"
COOKIE_MAX_AGE = 60 * 60 * 24  # 1 day
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
COOKIE_SECURE = ENVIRONMENT == "production"

# Uploads
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join("public", "uploads"))
UPLOAD_URL_PREFIX = "/uploads"
MAX_UPLOAD_BYTES = 1024 * 1024

PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]
