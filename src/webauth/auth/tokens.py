# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Single-use, expiring secrets (password-reset tokens)."""

from __future__ import annotations

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from webauth.domain import ResetTokenRecord

TOKEN_BYTES = 32  # 64 hex characters once encoded


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    def __init__(self, *, nbytes: int = TOKEN_BYTES, clock: Callable[[], datetime] = utcnow) -> None:
        if nbytes < TOKEN_BYTES:
            raise ValueError(f"tokens need at least {TOKEN_BYTES} bytes of entropy")
        self._nbytes = nbytes
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def issue(self, ttl: timedelta) -> ResetTokenRecord:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        return ResetTokenRecord(
            secret=secrets.token_hex(self._nbytes),
            expires_at=self.now() + ttl,
        )

    def is_valid(self, record: Optional[ResetTokenRecord], now: Optional[datetime] = None) -> bool:
        if record is None or not record.secret:
            return False
        now = now if now is not None else self.now()
        return now < record.expires_at

    @staticmethod
    def matches(presented: str, stored: str) -> bool:
        """Constant-time comparison of a presented token with the stored one."""
        if not presented or not stored:
            return False
        return hmac.compare_digest(presented.encode("utf-8"), stored.encode("utf-8"))
