# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import re
from typing import Dict, List

from webauth.domain import normalize_email
from webauth.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_EMAIL_LEN = 254
MIN_PASSWORD_LEN = 8

# (pattern, message) pairs applied in order; every failing rule is reported.
PASSWORD_RULES = [
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (re.compile(r"[^A-Za-z0-9]"), "Password must contain at least one special character"),
]


def check_email(email: str) -> str:
    """Return the normalised email or raise ValidationError."""
    e = normalize_email(email)
    if not e or len(e) > MAX_EMAIL_LEN or not EMAIL_RE.match(e):
        raise ValidationError.for_field("email", "Please enter a valid email address")
    return e


def password_problems(password: str) -> List[str]:
    pw = password or ""
    out: List[str] = []
    if len(pw) < MIN_PASSWORD_LEN:
        out.append(f"Password must be at least {MIN_PASSWORD_LEN} characters")
    for rx, msg in PASSWORD_RULES:
        if not rx.search(pw):
            out.append(msg)
    return out


def check_password(password: str, *, field_name: str = "password") -> str:
    problems = password_problems(password)
    if problems:
        errors: List[Dict[str, str]] = [{"field": field_name, "message": p} for p in problems]
        raise ValidationError(problems[0], errors)
    return password
