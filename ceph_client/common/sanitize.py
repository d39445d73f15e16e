# common/sanitize.py
import hashlib
from enum import Enum
from typing import Any

from pydantic import BaseModel

SAFE_KEYS = {
    "pool_name", "name", "image_name", "namespace", "name_space", "image_spec",
    "snapshot_name", "fs_id", "path", "depth", "url", "method", "username",
}
SENSITIVE_KEYS = {
    "authorization", "token", "password", "headers", "credentials", "cookie",
}

# Image and task listings can be long; log their size instead
MAX_LIST_ITEMS = 20

def hash_preview(s: str, n: int = 12) -> str:
    if not isinstance(s, str):
        s = str(s)
    return f"sha256={hashlib.sha256(s.encode('utf-8')).hexdigest()[:n]},len={len(s)}"

def sanitize_value(key: str, value: Any) -> Any:
    k = (key or "").lower()
    if k in SAFE_KEYS and not isinstance(value, BaseModel):
        return value
    if k in SENSITIVE_KEYS:
        # Never log raw; return only hash/length
        return hash_preview(str(value))
    if isinstance(value, BaseModel):
        # Auth, Credentials, RBDCreate...: sanitize field by field
        value = value.model_dump(exclude_none=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (bytes, bytearray)):
        return f"bytes:{len(value)}"
    if isinstance(value, str):
        return value if len(value) <= 120 else hash_preview(value)
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {k: sanitize_value(k, v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        if len(value) > MAX_LIST_ITEMS:
            return f"items:{len(value)}"
        return [sanitize_value("", v) for v in value]
    return str(value)
