# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication and credential lifecycle.

This package provides:
- Password hashing/verification (argon2)
- Expiring single-use reset tokens
- Local (email/password) and federated (OAuth2) login
- Server-side sessions referenced by signed cookies (itsdangerous)
- The password-reset request/confirm flow
"""
