"""
Environment-driven settings.

Every value is read on demand so tests can override it with
`monkeypatch.setenv` without reloading modules.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_UPLOAD_DIR = "uploads"
DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024  # 50 MiB
DEFAULT_CACHE_TTL_S = 300
MAX_PUSH_CHUNK_SIZE = 500


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def upload_dir() -> Path:
    return Path(_env_str("UPLOAD_DIR", DEFAULT_UPLOAD_DIR))


def staging_dir() -> Path:
    """
    Where raw uploads (bulk-import sources) wait until they are processed.
    """
    return upload_dir() / "tmp"


def max_upload_bytes() -> int:
    value = _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    return value if value > 0 else DEFAULT_MAX_UPLOAD_BYTES


def cache_ttl_s() -> int:
    return max(0, _env_int("CACHE_TTL_S", DEFAULT_CACHE_TTL_S))


def push_chunk_size() -> int:
    value = _env_int("PUSH_CHUNK_SIZE", MAX_PUSH_CHUNK_SIZE)
    return max(1, min(value, MAX_PUSH_CHUNK_SIZE))


def pool_min_size() -> int:
    return max(1, _env_int("DB_POOL_MIN", 1))


def pool_max_size() -> int:
    return max(pool_min_size(), _env_int("DB_POOL_MAX", 10))


def frontend_url() -> str:
    return _env_str("FRONTEND_URL", "http://localhost:5173")


def fcm_credentials_json() -> str:
    return os.environ.get("FCM_CREDENTIALS", "").strip()


def fcm_credentials_file() -> Path:
    return Path(_env_str("FCM_CREDENTIALS_FILE", "firebase-service-account.json"))


def log_level() -> str:
    return _env_str("LOG_LEVEL", "INFO").upper()


def admin_username() -> str:
    return _env_str("ADMIN_USERNAME", "admin")


def admin_default_password() -> str:
    return _env_str("ADMIN_DEFAULT_PASSWORD", "admin@123")
