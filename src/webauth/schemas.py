# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request bodies. Shape only; policy checks live in webauth.auth.validation."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CredentialsIn(BaseModel):
    email: str = Field(max_length=254, examples=["alice@example.com"])
    password: str = Field(max_length=1024, examples=["StrongPassw0rd!"])


class ForgotPasswordIn(BaseModel):
    email: str = Field(max_length=254)


class ResetPasswordIn(BaseModel):
    token: str = Field(max_length=512)
    password: str = Field(max_length=1024)
