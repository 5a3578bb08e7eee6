#!/usr/bin/env python3
from __future__ import annotations

import os
from getpass import getpass
from pathlib import Path

from webauth.auth.local import LocalAuthenticator
from webauth.auth.passwords import CredentialHasher
from webauth.errors import ValidationError
from webauth.infra.user_repo import YamlUserStore
from webauth.settings import DEFAULT_USERS_PATH

USERS_PATH = Path(os.getenv("WEBAUTH_USERS_PATH", str(DEFAULT_USERS_PATH))).resolve()


def main() -> None:
    local = LocalAuthenticator(YamlUserStore(USERS_PATH), CredentialHasher())

    email = input("Email: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user = local.register(email, pw1)
    except ValidationError as exc:
        raise SystemExit("; ".join(e["message"] for e in exc.errors) or exc.message)

    print(f"OK -> {user.email} ({user.id}) in {USERS_PATH}")


if __name__ == "__main__":
    main()
