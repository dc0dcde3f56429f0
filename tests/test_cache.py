import time

import pytest

from cricket_api import cache


def test_make_key_needs_both_parts():
    assert cache.make_key("scorecard", " m1 ") == "scorecard:m1"
    with pytest.raises(ValueError):
        cache.make_key("", "m1")


def test_set_get_invalidate():
    cache.set("k", {"a": 1}, ttl_seconds=30)
    assert cache.get("k") == {"a": 1}

    cache.invalidate("k")
    assert cache.get("k") is None


def test_zero_ttl_is_not_cached():
    cache.set("k", 1, ttl_seconds=0)
    assert cache.get("k") is None


def test_expired_entries_are_dropped(monkeypatch):
    cache.set("k", 1, ttl_seconds=5)
    later = time.time() + 10
    monkeypatch.setattr(cache.time, "time", lambda: later)
    assert cache.get("k") is None
