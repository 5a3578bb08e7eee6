# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Outbound mail for password-reset links."""

from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Password Reset Request"


class Mailer(Protocol):
    def send(self, to_address: str, reset_link: str) -> bool: ...


def build_reset_message(to_address: str, reset_link: str, *, from_address: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = RESET_SUBJECT
    msg["From"] = from_address
    msg["To"] = to_address
    msg.set_content(
        "Click the following link to reset your password: "
        f"{reset_link}\nThis link will expire in 1 hour."
    )
    link = html.escape(reset_link, quote=True)
    msg.add_alternative(
        f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>Password Reset Request</h2>
  <p>You've requested to reset your password. Click the link below to set a new password:</p>
  <p><a href="{link}">Reset Password</a></p>
  <p style="color: #666; font-size: 14px;">
    This link will expire in 1 hour for security reasons.<br>
    If you didn't request this reset, please ignore this email.
  </p>
</div>
""",
        subtype="html",
    )
    return msg


class SmtpMailer:
    """Delivers reset mail through a plain SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        *,
        from_address: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._from = from_address
        self._username = username
        self._password = password
        self._starttls = starttls
        self._timeout = timeout

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(host=self._host, port=self._port, timeout=self._timeout)

    def send(self, to_address: str, reset_link: str) -> bool:
        msg = build_reset_message(to_address, reset_link, from_address=self._from)
        try:
            with self._new_connection() as conn:
                if self._starttls:
                    conn.starttls()
                if self._username:
                    conn.login(self._username, self._password or "")
                conn.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            # exc_info would carry the message (and the link) in some SMTP errors.
            logger.error("reset mail delivery failed to=%s error=%s", to_address, type(exc).__name__)
            return False
        logger.info("reset mail sent to=%s", to_address)
        return True


class LogMailer:
    """Development mailer: records that a mail would have gone out."""

    def send(self, to_address: str, reset_link: str) -> bool:
        logger.warning("no SMTP relay configured; reset mail for %s not delivered", to_address)
        return False
