"""
Process-wide configuration, read from environment variables once at startup.
The signing key is never rotated while the process lives; tests build their
own Settings instead of touching the environment.
"""
from __future__ import annotations

import base64
import binascii
import logging
import os
import secrets
import threading
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("tenancy.config")

DEFAULT_TOKEN_LIFETIME_SEC = 3600
DEFAULT_STORE_DB = "tenancy"
DEFAULT_STORE_TIMEOUT_MS = 5000
DEFAULT_COPY_BATCH_SIZE = 500


@dataclass(frozen=True)
class Settings:
    jwt_secret: bytes
    token_lifetime_sec: int = DEFAULT_TOKEN_LIFETIME_SEC
    store_url: str = ""
    store_db: str = DEFAULT_STORE_DB
    store_timeout_ms: int = DEFAULT_STORE_TIMEOUT_MS
    copy_batch_size: int = DEFAULT_COPY_BATCH_SIZE
    audit_dir: str = ""


def _decode_secret(raw: str) -> bytes:
    raw = raw.strip()
    if raw.startswith("base64:"):
        try:
            return base64.b64decode(raw[7:].strip(), validate=True)
        except (binascii.Error, ValueError):
            return raw.encode("utf-8")
    return raw.encode("utf-8")


def _int_env(name: str, default: int, minimum: Optional[int] = None) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("ignoring non-integer %s=%r, using %s", name, raw, default)
        return default
    if minimum is not None and value < minimum:
        logger.warning("ignoring %s=%s below %s, using %s", name, value, minimum, default)
        return default
    return value


def load_settings() -> Settings:
    """Build Settings from TENANCY_* environment variables."""
    raw = os.environ.get("TENANCY_JWT_SECRET") or ""
    if raw.strip():
        secret = _decode_secret(raw)
    else:
        logger.warning(
            "TENANCY_JWT_SECRET is not set; using a random key. "
            "Tokens will not survive a restart."
        )
        secret = secrets.token_bytes(32)
    return Settings(
        jwt_secret=secret,
        token_lifetime_sec=_int_env("TENANCY_JWT_EXPIRATION_SEC", DEFAULT_TOKEN_LIFETIME_SEC, minimum=1),
        store_url=(os.environ.get("TENANCY_STORE_URL") or "").strip(),
        store_db=(os.environ.get("TENANCY_STORE_DB") or DEFAULT_STORE_DB).strip(),
        store_timeout_ms=_int_env("TENANCY_STORE_TIMEOUT_MS", DEFAULT_STORE_TIMEOUT_MS),
        copy_batch_size=max(1, _int_env("TENANCY_COPY_BATCH_SIZE", DEFAULT_COPY_BATCH_SIZE)),
        audit_dir=(os.environ.get("TENANCY_AUDIT_DIR") or "").strip(),
    )


_settings: Optional[Settings] = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    global _settings
    if _settings is not None:
        return _settings
    with _settings_lock:
        if _settings is not None:
            return _settings
        _settings = load_settings()
        return _settings
