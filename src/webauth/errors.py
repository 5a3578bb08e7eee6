# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the authenticators, the flows and the stores."""

from __future__ import annotations

from typing import Dict, List, Optional

INVALID_CREDENTIALS = "invalid email or password"
NO_PROVIDER_EMAIL = "no email provided by provider"
INVALID_RESET_TOKEN = "invalid or expired token"
OAUTH_STATE_MISMATCH = "invalid oauth state"
OAUTH_EXCHANGE_FAILED = "federated login failed"


class WebAuthError(Exception):
    code = "ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(WebAuthError):
    """Malformed input. Safe to show to the caller, field by field."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])

    @classmethod
    def for_field(cls, field_name: str, message: str) -> "ValidationError":
        return cls(message, [{"field": field_name, "message": message}])


class EmailAlreadyRegistered(ValidationError):
    def __init__(self) -> None:
        super().__init__("Email already registered", [{"field": "email", "message": "Email already registered"}])


class AuthFailure(WebAuthError):
    """Wrong credentials, bad token, unusable provider profile.

    The message is always one of the fixed generic strings above.
    """

    code = "AUTH_FAILURE"


class TransientError(WebAuthError):
    """Store or remote provider unreachable; the request may be retried."""

    code = "TRANSIENT_ERROR"


class ConfigurationError(WebAuthError):
    """Missing or inconsistent configuration. Raised at startup."""

    code = "CONFIGURATION_ERROR"
