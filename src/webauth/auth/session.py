# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Server-side sessions referenced by a signed cookie.

The cookie holds nothing but the session id, signed with itsdangerous so a
forged or truncated value is rejected before the store is consulted. The
session row maps that id to a user id; the full identity is fetched from the
user store on every request.
"""

from __future__ import annotations

import logging
from typing import Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from webauth.domain import UserIdentity
from webauth.errors import ConfigurationError
from webauth.infra.session_repo import SessionStore
from webauth.infra.user_repo import UserStore

logger = logging.getLogger(__name__)

SESSION_SALT = "webauth.session.v1"


class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        users: UserStore,
        *,
        secret_key: str,
        max_age: int,
        salt: str = SESSION_SALT,
    ) -> None:
        if not secret_key:
            raise ConfigurationError("Missing session secret key")
        self.store = store
        self.users = users
        self.max_age = int(max_age)
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    # ------------------ cookie value <-> session id ------------------

    def _sign(self, session_id: str) -> str:
        return self._serializer.dumps({"sid": session_id})

    def session_id_from_cookie(self, cookie: str) -> Optional[str]:
        if not cookie:
            return None
        try:
            data = self._serializer.loads(cookie, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        sid = str((data or {}).get("sid") or "").strip() if isinstance(data, dict) else ""
        return sid or None

    # ------------------ state transitions ------------------

    def establish(self, user_id: str, *, previous_cookie: str = "") -> str:
        """Bind a brand-new session to ``user_id`` and return the cookie value.

        Any session carried by ``previous_cookie`` is destroyed first, so the
        id a client held before logging in never becomes authenticated.
        """
        old_sid = self.session_id_from_cookie(previous_cookie)
        if old_sid:
            self.store.destroy(old_sid)
        rec = self.store.create(str(user_id))
        logger.info("session established user_id=%s", user_id)
        return self._sign(rec.session_id)

    def restore(self, cookie: str) -> Optional[str]:
        """Return the user id bound to the cookie's session, or None (anonymous)."""
        sid = self.session_id_from_cookie(cookie)
        if not sid:
            return None
        rec = self.store.read(sid)
        if rec is None:
            return None
        return rec.user_id

    def current_user(self, cookie: str) -> Optional[UserIdentity]:
        user_id = self.restore(cookie)
        if not user_id:
            return None
        # A session whose user no longer resolves is just anonymous.
        return self.users.get_user_by_id(user_id)

    def destroy(self, cookie: str) -> None:
        sid = self.session_id_from_cookie(cookie)
        if sid:
            self.store.destroy(sid)
            logger.info("session destroyed")
