# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    user_id: str
    expires_at: datetime


class SessionStore(Protocol):
    def create(self, user_id: str) -> SessionRecord: ...

    def read(self, session_id: str) -> Optional[SessionRecord]: ...

    def destroy(self, session_id: str) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemorySessionStore:
    """Process-local session table with a fixed TTL per session."""

    def __init__(self, *, ttl_seconds: int, clock: Callable[[], datetime] = _utcnow) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._rows: Dict[str, SessionRecord] = {}

    def _purge(self, now: datetime) -> None:
        expired = [sid for sid, rec in self._rows.items() if rec.expires_at <= now]
        for sid in expired:
            self._rows.pop(sid, None)

    def create(self, user_id: str) -> SessionRecord:
        now = self._clock()
        rec = SessionRecord(
            session_id=secrets.token_urlsafe(32),
            user_id=str(user_id),
            expires_at=now + self.ttl,
        )
        with self._lock:
            self._purge(now)
            self._rows[rec.session_id] = rec
        return rec

    def read(self, session_id: str) -> Optional[SessionRecord]:
        if not session_id:
            return None
        now = self._clock()
        with self._lock:
            self._purge(now)
            return self._rows.get(session_id)

    def destroy(self, session_id: str) -> None:
        if not session_id:
            return
        with self._lock:
            self._rows.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._rows)
