# cricket_api/cache.py
from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional, Tuple

# Simple in-memory TTL cache (sufficient for single-instance deploys)
# key -> (expires_at_epoch, value)
_cache: Dict[str, Tuple[float, Any]] = {}
_lock = threading.Lock()


def make_key(namespace: str, key: str) -> str:
    """
    Enforce namespaced cache keys to avoid collisions.
    Example:
      make_key("scorecard", "m-42") -> "scorecard:m-42"
    """
    namespace = namespace.strip()
    key = key.strip()
    if not namespace or not key:
        raise ValueError("Cache namespace and key must be non-empty")
    return f"{namespace}:{key}"


def get(key: str) -> Optional[Any]:
    with _lock:
        item = _cache.get(key)
        if not item:
            return None

        expires_at, value = item
        if time.time() > expires_at:
            _cache.pop(key, None)
            return None

        return value


def set(key: str, value: Any, ttl_seconds: int = 60) -> None:
    if ttl_seconds <= 0:
        # Do not cache if TTL is invalid
        return
    with _lock:
        _cache[key] = (time.time() + ttl_seconds, value)


def invalidate(key: str) -> None:
    with _lock:
        _cache.pop(key, None)


def clear() -> None:
    with _lock:
        _cache.clear()
