# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from webauth.errors import ConfigurationError
from webauth.infra.oauth_client import OAuthProviderConfig

# Anchor the default users.yml to the project root rather than the cwd.
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_USERS_PATH = BASE_DIR / "data" / "users.yml"

TRUTHY = {"1", "true", "yes", "y"}


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(f"WEBAUTH_{name}")
    if v is None or not v.strip():
        return default
    return v.strip()


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    v = _env(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError as exc:
        raise ConfigurationError(f"WEBAUTH_{name} must be an integer") from exc


@dataclass(frozen=True)
class Settings:
    secret_key: str = field(repr=False)
    users_path: Path = DEFAULT_USERS_PATH
    cookie_name: str = "webauth_session"
    session_max_age: int = 86400
    cookie_secure: bool = False
    public_origin: str = "http://localhost:8000"
    reset_token_ttl: int = 3600
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = field(default=None, repr=False)
    oauth_success_redirect: str = "/"
    oauth_failure_redirect: str = "/auth?error=google-auth-failed"
    smtp_host: Optional[str] = None
    smtp_port: int = 25
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = field(default=None, repr=False)
    smtp_starttls: bool = False
    mail_from: str = "noreply@example.com"
    argon2_time_cost: Optional[int] = None
    argon2_memory_cost: Optional[int] = None

    @classmethod
    def from_env(cls) -> "Settings":
        secret = _env("SECRET_KEY") or (os.getenv("SECRET_KEY") or "").strip()
        if not secret:
            raise ConfigurationError("Missing WEBAUTH_SECRET_KEY (or SECRET_KEY) in environment")
        return cls(
            secret_key=secret,
            users_path=Path(_env("USERS_PATH", str(DEFAULT_USERS_PATH))).resolve(),
            cookie_name=_env("COOKIE_NAME", "webauth_session"),
            session_max_age=_env_int("SESSION_MAX_AGE", 86400),
            cookie_secure=(_env("COOKIE_SECURE", "false").lower() in TRUTHY),
            public_origin=_env("PUBLIC_ORIGIN", "http://localhost:8000"),
            reset_token_ttl=_env_int("RESET_TOKEN_TTL", 3600),
            google_client_id=_env("GOOGLE_CLIENT_ID"),
            google_client_secret=_env("GOOGLE_CLIENT_SECRET"),
            oauth_success_redirect=_env("OAUTH_SUCCESS_REDIRECT", "/"),
            oauth_failure_redirect=_env("OAUTH_FAILURE_REDIRECT", "/auth?error=google-auth-failed"),
            smtp_host=_env("SMTP_HOST"),
            smtp_port=_env_int("SMTP_PORT", 25),
            smtp_username=_env("SMTP_USERNAME"),
            smtp_password=_env("SMTP_PASSWORD"),
            smtp_starttls=(_env("SMTP_STARTTLS", "false").lower() in TRUTHY),
            mail_from=_env("MAIL_FROM", "noreply@example.com"),
            argon2_time_cost=_env_int("ARGON2_TIME_COST", None),
            argon2_memory_cost=_env_int("ARGON2_MEMORY_COST", None),
        )

    def validate(self) -> None:
        if not self.secret_key:
            raise ConfigurationError("Missing session secret key")
        if self.session_max_age <= 0:
            raise ConfigurationError("session_max_age must be positive")
        if self.reset_token_ttl <= 0:
            raise ConfigurationError("reset_token_ttl must be positive")
        if bool(self.google_client_id) != bool(self.google_client_secret):
            raise ConfigurationError("Google OAuth needs both client id and client secret")

    def oauth_provider(self) -> Optional[OAuthProviderConfig]:
        """Provider config, or None when federated login is switched off."""
        self.validate()
        if not self.google_client_id:
            return None
        return OAuthProviderConfig(
            client_id=self.google_client_id,
            client_secret=self.google_client_secret or "",
            redirect_uri=f"{self.public_origin.rstrip('/')}/api/auth/google/callback",
        )

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}
