# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

# argon2 never emits a salt shorter than this; 16 bytes is the library default.
MIN_SALT_LEN = 16


class CredentialHasher:
    """One-way password hashing backed by Argon2id.

    The encoded record produced by :meth:`hash` carries the parameters, the salt
    and the derived key together (``$argon2id$v=19$m=...,t=...,p=...$salt$key``).
    It is only ever handed back to :meth:`verify`.
    """

    def __init__(
        self,
        *,
        time_cost: Optional[int] = None,
        memory_cost: Optional[int] = None,
        salt_len: int = MIN_SALT_LEN,
    ) -> None:
        if salt_len < MIN_SALT_LEN:
            raise ValueError(f"salt_len must be at least {MIN_SALT_LEN} bytes")
        kwargs = {"salt_len": salt_len}
        if time_cost is not None:
            kwargs["time_cost"] = time_cost
        if memory_cost is not None:
            kwargs["memory_cost"] = memory_cost
        self._ph = PasswordHasher(**kwargs)
        # Same parameters as real records, so a decoy check costs one verify.
        self._decoy = self._ph.hash(secrets.token_hex(32))

    def hash(self, plain: str) -> str:
        if not plain:
            raise ValueError("Empty password")
        return self._ph.hash(plain)

    def verify(self, plain: str, record: str) -> bool:
        """Return True iff ``plain`` matches ``record``.

        Mismatches and malformed records both yield False so callers only ever
        see a single negative outcome.
        """
        if not record or not plain:
            return False
        try:
            return self._ph.verify(record, plain)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def verify_decoy(self, plain: str) -> bool:
        """Spend the cost of a real verification against a throwaway record.

        Used when no account exists for an email so that the lookup miss takes
        about as long as a wrong password. Always returns False.
        """
        self.verify(plain or "-", self._decoy)
        return False

    def unusable_hash(self) -> str:
        """Hash of a random, immediately discarded secret."""
        return self._ph.hash(secrets.token_hex(32))
