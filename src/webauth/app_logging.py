# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import re

from pythonjsonlogger import jsonlogger

_SECRET_RE = re.compile(r"(?i)((?:token|password|secret|code|state)=)[^\s&\"']+")


def redact(text: str) -> str:
    return _SECRET_RE.sub(r"\1[redacted]", text)


class RedactSecretsFilter(logging.Filter):
    """Strips ``token=...``, ``code=...``-style values from records (e.g. access-log URLs)."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        clean = redact(msg)
        if clean != msg:
            record.msg = clean
            record.args = None
        return True


def setup_logger(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "asctime": "timestamp"},
    )
    handler.setFormatter(formatter)
    handler.addFilter(RedactSecretsFilter())
    logger = logging.getLogger()
    logger.addHandler(handler)
    logger.setLevel(level)
