from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Single wall-clock source for handlers and jobs; tests monkeypatch it."""
    return datetime.now(timezone.utc)
