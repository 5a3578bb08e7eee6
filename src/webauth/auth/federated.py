# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Federated (OAuth2) login mapped onto local identities by email."""

from __future__ import annotations

import logging
from typing import Optional

from webauth.auth.passwords import CredentialHasher
from webauth.auth.validation import EMAIL_RE
from webauth.domain import UserIdentity, normalize_email
from webauth.errors import NO_PROVIDER_EMAIL, AuthFailure, ConfigurationError, EmailAlreadyRegistered
from webauth.infra.oauth_client import AuthlibOAuthClient, OAuthClient, OAuthProviderConfig, ProviderProfile
from webauth.infra.user_repo import UserStore

logger = logging.getLogger(__name__)


class FederatedAuthenticator:
    """Completes provider logins.

    ``config=None`` disables the federated path; every entry point then raises
    ConfigurationError and the HTTP layer answers 404.
    """

    def __init__(
        self,
        config: Optional[OAuthProviderConfig],
        users: UserStore,
        hasher: CredentialHasher,
        *,
        client: Optional[OAuthClient] = None,
    ) -> None:
        self.config = config
        self.users = users
        self.hasher = hasher
        self.client = client
        if config is not None and client is None:
            self.client = AuthlibOAuthClient(config)

    @property
    def enabled(self) -> bool:
        return self.config is not None and self.client is not None

    def _require_client(self) -> OAuthClient:
        if not self.enabled:
            raise ConfigurationError("Federated login is not configured")
        return self.client

    def authorization_url(self, state: str) -> str:
        return self._require_client().authorization_url(state)

    def login_with_code(self, code: str) -> UserIdentity:
        profile = self._require_client().fetch_profile(code)
        return self.complete_oauth_login(profile)

    def complete_oauth_login(self, profile: ProviderProfile) -> UserIdentity:
        email = normalize_email(profile.email or "")
        # An address the provider says is unverified cannot be linked.
        if not email or profile.email_verified is False or not EMAIL_RE.match(email):
            logger.info("federated login rejected: unusable provider email")
            raise AuthFailure(NO_PROVIDER_EMAIL)

        u = self.users.get_user_by_email(email)
        if u is not None:
            logger.info("federated login linked user_id=%s", u.id)
            return u

        try:
            u = self.users.create_user(email, self.hasher.unusable_hash(), federated_only=True)
        except EmailAlreadyRegistered:
            # Lost a race with a concurrent first login for the same email.
            u = self.users.get_user_by_email(email)
            if u is None:
                raise
        logger.info("federated login created user_id=%s", u.id)
        return u
