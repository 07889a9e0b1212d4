"""Application configuration read from the environment."""
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///travelhub.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    MAX_CONTENT_LENGTH = 60 * 1024 * 1024  # 10 images of 5MB plus form fields

    # Signed bearer tokens stay valid for 30 days.
    TOKEN_MAX_AGE_SECONDS = int(os.environ.get("TOKEN_MAX_AGE_SECONDS", 30 * 24 * 3600))
    PASSWORD_RESET_TTL_MINUTES = 60

    MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 587))
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", "1")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", os.environ.get("MAIL_USERNAME"))
    MAIL_SEND_ATTEMPTS = int(os.environ.get("MAIL_SEND_ATTEMPTS", 2))

    COMPANY_EMAIL = os.environ.get("COMPANY_EMAIL", "info@travelcompany.com")
    COMPANY_NAME = os.environ.get("COMPANY_NAME", "Travel Company")
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")

    # S3 compatible object storage (AWS S3 or Cloudflare R2).
    STORAGE_BUCKET = os.environ.get("STORAGE_BUCKET")
    STORAGE_ENDPOINT_URL = os.environ.get("STORAGE_ENDPOINT_URL")
    STORAGE_PUBLIC_URL = os.environ.get("STORAGE_PUBLIC_URL")
    STORAGE_ACCESS_KEY_ID = os.environ.get("STORAGE_ACCESS_KEY_ID")
    STORAGE_SECRET_ACCESS_KEY = os.environ.get("STORAGE_SECRET_ACCESS_KEY")
    STORAGE_REGION = os.environ.get("STORAGE_REGION", "auto")

    BOOKING_STRICT_TRANSITIONS = _env_flag("BOOKING_STRICT_TRANSITIONS")
    BOOKING_DEDUPE_WINDOW_SECONDS = int(os.environ.get("BOOKING_DEDUPE_WINDOW_SECONDS", 0))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = "noreply@travelcompany.test"
    MAIL_SEND_ATTEMPTS = 1
    STORAGE_BUCKET = "test-bucket"
    STORAGE_PUBLIC_URL = "https://cdn.travelcompany.test"
    BOOKING_STRICT_TRANSITIONS = False
    BOOKING_DEDUPE_WINDOW_SECONDS = 0
