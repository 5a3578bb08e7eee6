# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""OAuth2 authorization-code client for the external identity provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests
from authlib.integrations.requests_client import OAuth2Session, OAuthError

from webauth.errors import OAUTH_EXCHANGE_FAILED, AuthFailure, TransientError

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
DEFAULT_SCOPE = "openid email profile"


@dataclass(frozen=True)
class OAuthProviderConfig:
    client_id: str
    client_secret: str
    redirect_uri: str
    authorize_url: str = GOOGLE_AUTHORIZE_URL
    token_url: str = GOOGLE_TOKEN_URL
    userinfo_url: str = GOOGLE_USERINFO_URL
    scope: str = DEFAULT_SCOPE
    timeout: float = 10.0

    def __repr__(self) -> str:
        return f"OAuthProviderConfig(client_id={self.client_id!r}, redirect_uri={self.redirect_uri!r})"


@dataclass(frozen=True)
class ProviderProfile:
    """What the provider told us about the user after a successful exchange."""

    subject: str
    email: Optional[str]
    email_verified: Optional[bool] = None
    name: Optional[str] = None


class OAuthClient(Protocol):
    def authorization_url(self, state: str) -> str: ...

    def fetch_profile(self, code: str) -> ProviderProfile: ...


def profile_from_userinfo(data: dict) -> ProviderProfile:
    email = data.get("email")
    verified = data.get("email_verified")
    if isinstance(verified, str):
        verified = verified.strip().lower() == "true"
    return ProviderProfile(
        subject=str(data.get("sub") or ""),
        email=email if isinstance(email, str) and email.strip() else None,
        email_verified=verified if isinstance(verified, bool) else None,
        name=data.get("name") if isinstance(data.get("name"), str) else None,
    )


class AuthlibOAuthClient:
    def __init__(self, config: OAuthProviderConfig) -> None:
        self.config = config

    def _session(self) -> OAuth2Session:
        return OAuth2Session(
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            scope=self.config.scope,
            redirect_uri=self.config.redirect_uri,
        )

    def authorization_url(self, state: str) -> str:
        with self._session() as s:
            url, _ = s.create_authorization_url(self.config.authorize_url, state=state, prompt="select_account")
        return url

    def fetch_profile(self, code: str) -> ProviderProfile:
        try:
            with self._session() as s:
                s.fetch_token(self.config.token_url, code=code, timeout=self.config.timeout)
                resp = s.get(self.config.userinfo_url, timeout=self.config.timeout)
                resp.raise_for_status()
                data = resp.json()
        except OAuthError as exc:
            logger.warning("oauth code exchange rejected error=%s", exc.error)
            raise AuthFailure(OAUTH_EXCHANGE_FAILED) from exc
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else 0
            if 400 <= status < 500:
                logger.warning("oauth userinfo rejected status=%s", status)
                raise AuthFailure(OAUTH_EXCHANGE_FAILED) from exc
            raise TransientError("identity provider unavailable") from exc
        except requests.RequestException as exc:
            raise TransientError("identity provider unavailable") from exc
        except ValueError as exc:
            logger.warning("oauth userinfo was not JSON")
            raise AuthFailure(OAUTH_EXCHANGE_FAILED) from exc
        if not isinstance(data, dict):
            raise AuthFailure(OAUTH_EXCHANGE_FAILED)
        return profile_from_userinfo(data)
