"""Environment driven configuration for the SalonBook API."""
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SECRET_KEY = "salonbook-dev-secret"
DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",  # admin
    "http://localhost:3001",  # owner
    "http://localhost:3002",  # customer
)
SEVEN_DAYS = 7 * 24 * 60 * 60


def _database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if url:
        # Hosting providers hand out plain mysql:// URLs.
        if url.startswith("mysql://"):
            url = url.replace("mysql://", "mysql+pymysql://", 1)
        return url

    host = os.environ.get("DB_HOST", "localhost")
    port = os.environ.get("DB_PORT", "3306")
    name = os.environ.get("DB_NAME", "salon_db")
    user = os.environ.get("DB_USER", "root")
    password = os.environ.get("DB_PASSWORD", "")
    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{name}"


def _engine_options(url: str) -> dict[str, object]:
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 10, "pool_pre_ping": True, "pool_recycle": 280}


def _cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS")
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Config:
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SECRET_KEY = os.environ.get("SECRET_KEY", DEFAULT_SECRET_KEY)
    TOKEN_MAX_AGE = int(os.environ.get("TOKEN_MAX_AGE", SEVEN_DAYS))

    CORS_ORIGINS = _cors_origins()
    PORT = int(os.environ.get("PORT", 5000))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    STRIPE_CURRENCY = os.environ.get("STRIPE_CURRENCY", "usd")

    TESTING = False


class TestConfig(Config):
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS: dict[str, object] = {}
    SECRET_KEY = "test-secret"
    STRIPE_SECRET_KEY = None
    STRIPE_WEBHOOK_SECRET = None
    TESTING = True
