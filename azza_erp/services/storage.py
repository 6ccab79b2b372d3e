# azza_erp/services/storage.py
from __future__ import annotations

import hashlib
import os
import re
from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from azza_erp.utils.text import normalize_text


# =========================================================
# Types
# =========================================================
@dataclass(frozen=True)
class StoredFile:
    storage_key: str
    sha256: str
    url: str


# =========================================================
# Storage helpers
# =========================================================
def _storage_dir() -> str:
    """
    Local storage by default. Swapping to S3/MinIO only needs a new
    store_blob/load_blob pair; callers keep using URLs.
    Priority:
      1) Flask config: STORAGE_DIR
      2) instance_path/uploads
    """
    base = current_app.config.get("STORAGE_DIR") or os.path.join(current_app.instance_path, "uploads")
    os.makedirs(base, exist_ok=True)
    return base


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _safe_filename(s: str) -> str:
    s = normalize_text(s).strip()
    s = re.sub(r"[^A-Za-z0-9._-]+", "_", s)
    return s[:120] or "file"


def storage_key_for(bucket: str, owner_id: int | str, filename: str) -> str:
    """
    Example:
      documents/<machine_id>/20260221T010203_invoice.pdf
    """
    ts = datetime.utcnow().strftime("%Y%m%dT%H%M%S%f")
    return f"{bucket}/{owner_id}/{ts}_{_safe_filename(filename)}"


def url_for_key(storage_key: str) -> str:
    base = (current_app.config.get("STORAGE_BASE_URL") or "").rstrip("/")
    return f"{base}/{storage_key}"


def key_for_url(url: str) -> str | None:
    base = (current_app.config.get("STORAGE_BASE_URL") or "").rstrip("/")
    prefix = f"{base}/"
    if not url or not url.startswith(prefix):
        return None
    return url[len(prefix):]


def _abs_path(storage_key: str) -> str:
    base = os.path.realpath(_storage_dir())
    abs_path = os.path.realpath(os.path.join(base, storage_key))
    if not abs_path.startswith(base + os.sep):
        raise ValueError(f"storage key escapes storage dir: {storage_key!r}")
    return abs_path


# =========================================================
# Blob store/load
# =========================================================
def store_blob(bucket: str, owner_id: int | str, filename: str, data: bytes) -> StoredFile:
    """
    Writes the blob and returns where it can be fetched from.
    No DB writes; the caller records the URL.
    """
    key = storage_key_for(bucket, owner_id, filename)
    abs_path = _abs_path(key)
    os.makedirs(os.path.dirname(abs_path), exist_ok=True)

    with open(abs_path, "wb") as f:
        f.write(data)

    return StoredFile(storage_key=key, sha256=sha256_hex(data), url=url_for_key(key))


def load_blob(storage_key: str) -> bytes:
    with open(_abs_path(storage_key), "rb") as f:
        return f.read()


def delete_blob(storage_key: str) -> bool:
    abs_path = _abs_path(storage_key)
    if not os.path.exists(abs_path):
        return False
    os.remove(abs_path)
    return True
