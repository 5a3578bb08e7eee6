# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from webauth.auth.federated import FederatedAuthenticator
from webauth.auth.local import LocalAuthenticator
from webauth.auth.passwords import CredentialHasher
from webauth.auth.reset import PasswordResetFlow
from webauth.auth.session import SessionManager
from webauth.domain import UserIdentity
from webauth.infra.user_repo import UserStore
from webauth.settings import Settings


@dataclass(frozen=True)
class Services:
    settings: Settings
    users: UserStore
    hasher: CredentialHasher
    sessions: SessionManager
    local: LocalAuthenticator
    federated: FederatedAuthenticator
    reset: PasswordResetFlow


def services(request: Request) -> Services:
    return request.app.state.services


def session_cookie(request: Request) -> str:
    svc = services(request)
    return request.cookies.get(svc.settings.cookie_name, "")


def current_user_optional(request: Request) -> Optional[UserIdentity]:
    cached = getattr(request.state, "user", None)
    if cached is not None:
        return cached
    u = services(request).sessions.current_user(session_cookie(request))
    request.state.user = u
    return u


def require_user(request: Request) -> UserIdentity:
    u = current_user_optional(request)
    if u:
        return u
    raise HTTPException(status_code=401, detail="Not authenticated")
