# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Self-service password reset by possession of a mailed token."""

from __future__ import annotations

import logging
from datetime import timedelta
from urllib.parse import urlencode

from webauth.auth.passwords import CredentialHasher
from webauth.auth.tokens import TokenIssuer
from webauth.auth.validation import check_email, check_password
from webauth.domain import UserIdentity
from webauth.errors import INVALID_RESET_TOKEN, AuthFailure
from webauth.infra.mailer import Mailer
from webauth.infra.user_repo import UserStore

logger = logging.getLogger(__name__)

RESET_TTL = timedelta(hours=1)
RESET_ACK = "If an account exists with that email, a password reset link will be sent."


def reset_link(origin: str, token: str) -> str:
    return f"{origin.rstrip('/')}/reset-password?{urlencode({'token': token})}"


class PasswordResetFlow:
    def __init__(
        self,
        users: UserStore,
        hasher: CredentialHasher,
        tokens: TokenIssuer,
        mailer: Mailer,
        *,
        public_origin: str,
        ttl: timedelta = RESET_TTL,
    ) -> None:
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.mailer = mailer
        self.public_origin = public_origin
        self.ttl = ttl

    def request(self, email: str) -> str:
        """Issue and mail a reset token if the account exists.

        Returns the same acknowledgement whether or not it does. Mail delivery
        failure is logged and otherwise ignored.
        """
        e = check_email(email)
        u = self.users.get_user_by_email(e)
        if u is None:
            logger.info("password reset requested for unknown account")
            return RESET_ACK

        record = self.tokens.issue(self.ttl)
        self.users.set_reset_token(u.id, record.secret, record.expires_at)
        logger.info("password reset token issued user_id=%s", u.id)

        if not self.mailer.send(u.email, reset_link(self.public_origin, record.secret)):
            logger.error("password reset mail not delivered user_id=%s", u.id)
        return RESET_ACK

    def confirm(self, token: str, new_password: str) -> UserIdentity:
        check_password(new_password)
        u = self.users.get_user_by_reset_token(token)
        if (
            u is None
            or u.reset_token is None
            or not self.tokens.matches(token, u.reset_token.secret)
            or not self.tokens.is_valid(u.reset_token)
        ):
            logger.info("password reset confirm rejected")
            raise AuthFailure(INVALID_RESET_TOKEN)

        new_hash = self.hasher.hash(new_password)
        # Re-checked under the store lock: at most one confirm per token wins.
        if not self.users.consume_reset_token(u.id, token, new_hash, self.tokens.now()):
            logger.info("password reset confirm rejected: token already consumed")
            raise AuthFailure(INVALID_RESET_TOKEN)
        logger.info("password reset completed user_id=%s", u.id)
        return self.users.get_user_by_id(u.id) or u
