# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging

from webauth.auth.passwords import CredentialHasher
from webauth.auth.validation import check_email, check_password
from webauth.domain import UserIdentity, normalize_email
from webauth.errors import INVALID_CREDENTIALS, AuthFailure
from webauth.infra.user_repo import UserStore

logger = logging.getLogger(__name__)


class LocalAuthenticator:
    def __init__(self, users: UserStore, hasher: CredentialHasher) -> None:
        self.users = users
        self.hasher = hasher

    def register(self, email: str, password: str) -> UserIdentity:
        e = check_email(email)
        check_password(password)
        return self.users.create_user(e, self.hasher.hash(password))

    def authenticate(self, email: str, password: str) -> UserIdentity:
        """Return the identity for a matching email/password pair.

        Unknown email and wrong password raise the same AuthFailure. An unknown
        email still pays for one hash verification against a decoy record.
        """
        u = self.users.get_user_by_email(normalize_email(email))
        if u is None:
            self.hasher.verify_decoy(password)
            logger.info("local login rejected")
            raise AuthFailure(INVALID_CREDENTIALS)
        if not self.hasher.verify(password, u.password_hash):
            logger.info("local login rejected")
            raise AuthFailure(INVALID_CREDENTIALS)
        logger.info("local login ok user_id=%s", u.id)
        return u
