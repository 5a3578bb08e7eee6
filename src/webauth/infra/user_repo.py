# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""User persistence.

:class:`UserStore` is the contract the authenticators rely on. The shipped
implementation keeps every account in a single YAML document::

    version: 1
    users:
      <id>:
        email: a@x.com
        password_hash: $argon2id$...
        created_at: 2026-01-01T00:00:00+00:00
        federated_only: false
        reset_token: null
        reset_token_expiry: null
"""

from __future__ import annotations

import hmac
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import yaml

from webauth.domain import ResetTokenRecord, UserIdentity, normalize_email
from webauth.errors import EmailAlreadyRegistered, TransientError

logger = logging.getLogger(__name__)


class UserStore(Protocol):
    def get_user_by_id(self, user_id: str) -> Optional[UserIdentity]: ...

    def get_user_by_email(self, email: str) -> Optional[UserIdentity]: ...

    def get_user_by_reset_token(self, token: str) -> Optional[UserIdentity]: ...

    def create_user(self, email: str, password_hash: str, *, federated_only: bool = False) -> UserIdentity: ...

    def set_reset_token(self, user_id: str, token: str, expires_at: datetime) -> None: ...

    def update_password(self, user_id: str, password_hash: str) -> None: ...

    def consume_reset_token(self, user_id: str, token: str, password_hash: str, now: datetime) -> bool: ...


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _to_identity(user_id: str, udata: Dict[str, Any]) -> Optional[UserIdentity]:
    email = normalize_email(str(udata.get("email") or ""))
    if not email:
        return None
    token = str(udata.get("reset_token") or "").strip()
    expiry = _parse_dt(udata.get("reset_token_expiry"))
    reset = ResetTokenRecord(secret=token, expires_at=expiry) if token and expiry else None
    return UserIdentity(
        id=str(user_id),
        email=email,
        password_hash=str(udata.get("password_hash") or "").strip(),
        created_at=_parse_dt(udata.get("created_at")) or datetime.fromtimestamp(0, timezone.utc),
        federated_only=bool(udata.get("federated_only", False)),
        reset_token=reset,
    )


class YamlUserStore:
    """File-backed :class:`UserStore`.

    Every call re-reads the file; writes go through a temp file + ``os.replace``
    so a reader never sees a half-written document. One process-wide lock
    serialises read-modify-write cycles, which makes ``update_password`` (hash +
    token clear) a single unit.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()

    # ------------------ raw document ------------------

    def _load(self) -> Dict[str, Any]:
        try:
            if not self.path.exists():
                return {"version": 1, "users": {}}
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except OSError as exc:
            raise TransientError("user store unavailable") from exc
        if not isinstance(raw, dict):
            raw = {}
        if not isinstance(raw.get("users"), dict):
            raw["users"] = {}
        raw.setdefault("version", 1)
        return raw

    def _save(self, raw: Dict[str, Any]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(yaml.safe_dump(raw, sort_keys=False, allow_unicode=True), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            raise TransientError("user store unavailable") from exc

    def _find(self, predicate) -> Optional[UserIdentity]:
        with self._lock:
            users = self._load()["users"]
        for uid, udata in users.items():
            if not isinstance(udata, dict):
                continue
            u = _to_identity(uid, udata)
            if u is not None and predicate(u):
                return u
        return None

    # ------------------ reads ------------------

    def get_user_by_id(self, user_id: str) -> Optional[UserIdentity]:
        uid = str(user_id or "").strip()
        if not uid:
            return None
        with self._lock:
            udata = self._load()["users"].get(uid)
        if not isinstance(udata, dict):
            return None
        return _to_identity(uid, udata)

    def get_user_by_email(self, email: str) -> Optional[UserIdentity]:
        e = normalize_email(email)
        if not e:
            return None
        return self._find(lambda u: u.email == e)

    def get_user_by_reset_token(self, token: str) -> Optional[UserIdentity]:
        t = (token or "").strip()
        if not t:
            return None
        return self._find(lambda u: u.reset_token is not None and u.reset_token.secret == t)

    # ------------------ writes ------------------

    def create_user(self, email: str, password_hash: str, *, federated_only: bool = False) -> UserIdentity:
        e = normalize_email(email)
        if not e:
            raise ValueError("Email required")
        with self._lock:
            raw = self._load()
            for udata in raw["users"].values():
                if isinstance(udata, dict) and normalize_email(str(udata.get("email") or "")) == e:
                    raise EmailAlreadyRegistered()
            uid = uuid.uuid4().hex
            raw["users"][uid] = {
                "email": e,
                "password_hash": password_hash,
                "created_at": datetime.now(timezone.utc).isoformat(),
                "federated_only": bool(federated_only),
                "reset_token": None,
                "reset_token_expiry": None,
            }
            self._save(raw)
            created = _to_identity(uid, raw["users"][uid])
        logger.info("created user id=%s federated_only=%s", uid, bool(federated_only))
        return created

    def _update(self, user_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            raw = self._load()
            udata = raw["users"].get(str(user_id))
            if not isinstance(udata, dict):
                raise KeyError(f"Unknown user id {user_id!r}")
            udata.update(fields)
            self._save(raw)

    def set_reset_token(self, user_id: str, token: str, expires_at: datetime) -> None:
        # One slot per user: a new token replaces whatever was there.
        self._update(user_id, {"reset_token": token, "reset_token_expiry": expires_at.isoformat()})

    def update_password(self, user_id: str, password_hash: str) -> None:
        self._update(
            user_id,
            {
                "password_hash": password_hash,
                "federated_only": False,
                "reset_token": None,
                "reset_token_expiry": None,
            },
        )

    def consume_reset_token(self, user_id: str, token: str, password_hash: str, now: datetime) -> bool:
        """Swap in ``password_hash`` iff the user still holds ``token`` unexpired.

        Check and write happen under one lock, so a token is spent at most once.
        """
        with self._lock:
            raw = self._load()
            udata = raw["users"].get(str(user_id))
            if not isinstance(udata, dict):
                return False
            held = str(udata.get("reset_token") or "")
            expiry = _parse_dt(udata.get("reset_token_expiry"))
            if not held or expiry is None or not hmac.compare_digest(held.encode("utf-8"), (token or "").encode("utf-8")):
                return False
            if not now < expiry:
                return False
            udata.update(
                {
                    "password_hash": password_hash,
                    "federated_only": False,
                    "reset_token": None,
                    "reset_token_expiry": None,
                }
            )
            self._save(raw)
        return True
