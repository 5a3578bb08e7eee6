# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""webauth: local and federated login, sessions and password reset."""

__version__ = "0.1.0"
