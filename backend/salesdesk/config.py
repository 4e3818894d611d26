# backend/salesdesk/config.py
from __future__ import annotations
import os


def _csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key. Signs bearer tokens.
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/salesdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///salesdesk.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens are valid for 7 days
    TOKEN_MAX_AGE_SECONDS = int(os.environ.get("TOKEN_MAX_AGE_SECONDS", str(7 * 24 * 60 * 60)))

    # Uploaded proofs of payment and rendered invoices live under here.
    # None means "<instance_path>/uploads", resolved in create_app().
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER")
    PROOF_MAX_BYTES = int(os.environ.get("PROOF_MAX_BYTES", str(5 * 1024 * 1024)))

    # Hard request-body ceiling; the 5 MB proof limit is enforced in storage_service
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    CORS_ORIGINS = _csv_env(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_DIR = os.environ.get("LOG_DIR")
