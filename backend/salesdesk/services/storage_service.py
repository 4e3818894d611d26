# Overview: File storage under UPLOAD_FOLDER for proofs of payment and rendered invoices.

"""
All stored paths are relative to UPLOAD_FOLDER and are resolved back through
resolve_path(), which refuses anything that escapes the upload root.
"""

from __future__ import annotations

import logging
import os
import secrets
import time

from flask import current_app
from werkzeug.datastructures import FileStorage

from ..errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

PROOF_DIR = "proof-of-payment"
INVOICE_DIR = "invoices"

ALLOWED_PROOF_EXTENSIONS = {"jpg", "jpeg", "png", "pdf"}
ALLOWED_PROOF_MIMETYPES = {"image/jpeg", "image/jpg", "image/pjpeg", "image/png", "application/pdf"}


def upload_root() -> str:
    return os.path.realpath(current_app.config["UPLOAD_FOLDER"])


def resolve_path(relative_path: str) -> str:
    """Absolute path for a stored relative path; NotFoundError if it leaves the upload root."""
    root = upload_root()
    candidate = os.path.realpath(os.path.join(root, relative_path))
    if os.path.commonpath([root, candidate]) != root:
        raise NotFoundError("File not found")
    return candidate


def _ensure_dir(subdir: str) -> str:
    path = os.path.join(upload_root(), subdir)
    os.makedirs(path, exist_ok=True)
    return path


def _extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def save_proof(file: FileStorage) -> str:
    """
    Validate and store a proof-of-payment upload.

    JPEG, PNG and PDF only (extension and declared MIME type must both
    match), at most PROOF_MAX_BYTES. Returns the stored relative path.
    """
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")

    ext = _extension(file.filename)
    mimetype = (file.mimetype or "").lower()
    if ext not in ALLOWED_PROOF_EXTENSIONS or mimetype not in ALLOWED_PROOF_MIMETYPES:
        raise ValidationError("Only JPEG, PNG and PDF files are allowed")

    max_bytes = int(current_app.config.get("PROOF_MAX_BYTES", 5 * 1024 * 1024))
    data = file.stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError(f"File too large; maximum size is {max_bytes // (1024 * 1024)} MB")
    if not data:
        raise ValidationError("Uploaded file is empty")

    filename = f"proof-{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}.{ext}"
    directory = _ensure_dir(PROOF_DIR)
    with open(os.path.join(directory, filename), "wb") as fh:
        fh.write(data)

    relative = f"{PROOF_DIR}/{filename}"
    logger.info("Stored proof of payment %s (%d bytes)", relative, len(data))
    return relative


def invoice_pdf_relative_path(invoice_number: str) -> str:
    return f"{INVOICE_DIR}/invoice-{invoice_number}.pdf"


def prepare_invoice_path(invoice_number: str) -> tuple[str, str]:
    """(relative, absolute) target for an invoice PDF; creates the directory."""
    _ensure_dir(INVOICE_DIR)
    relative = invoice_pdf_relative_path(invoice_number)
    return relative, resolve_path(relative)


def file_exists(relative_path: str | None) -> bool:
    if not relative_path:
        return False
    try:
        return os.path.isfile(resolve_path(relative_path))
    except NotFoundError:
        return False


def remove_file(relative_path: str | None) -> None:
    """Delete a stored file. Missing files are ignored; other OS errors are logged."""
    if not relative_path:
        return
    try:
        os.remove(resolve_path(relative_path))
        logger.info("Removed stored file %s", relative_path)
    except FileNotFoundError:
        pass
    except NotFoundError:
        logger.warning("Refusing to remove path outside upload folder: %s", relative_path)
    except OSError:
        logger.exception("Failed to remove stored file %s", relative_path)
