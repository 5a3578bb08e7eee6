# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Account data as held by the user store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


def normalize_email(email: str) -> str:
    """Comparison key for emails (trim + lower)."""
    return (email or "").strip().lower()


@dataclass(frozen=True)
class ResetTokenRecord:
    secret: str = field(repr=False)
    expires_at: datetime


@dataclass(frozen=True)
class UserIdentity:
    id: str
    email: str
    password_hash: str = field(repr=False)
    created_at: datetime
    federated_only: bool = False
    reset_token: Optional[ResetTokenRecord] = field(default=None, repr=False)

    def public(self) -> Dict[str, Any]:
        """Client-safe view: never includes the hash or the reset token."""
        return {
            "id": self.id,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
            "federated_only": self.federated_only,
        }
