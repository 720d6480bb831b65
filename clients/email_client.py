"""
Email gateway client.

Mail goes out as a signed JSON POST: X-API-Key identifies the caller and
X-Signature is the HMAC-SHA256 of the exact body bytes. Link-bearing mails
are composed here so the auth service only deals in tokens and URLs.
"""

import hashlib
import hmac
import json
import logging
from typing import Literal

import requests

logger = logging.getLogger(__name__)

Sender = Literal["auth", "system"]

REQUEST_TIMEOUT_SECONDS = 10


class EmailGatewayError(Exception):
    """The gateway could not be reached or refused the message."""


def sign_body(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class EmailGatewayClient:
    """Sends transactional mail (verification, login codes, password notices)."""

    def __init__(
        self,
        gateway_url: str,
        api_key: str,
        hmac_secret: str,
        app_name: str = "Transit",
    ):
        """
        Raises:
            ValueError: Any credential is empty.
        """
        missing = [
            name
            for name, value in (
                ("gateway_url", gateway_url),
                ("api_key", api_key),
                ("hmac_secret", hmac_secret),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Email gateway settings missing: {', '.join(missing)}")

        self.gateway_url = gateway_url
        self.app_name = app_name
        self._hmac_secret = hmac_secret
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json", "X-API-Key": api_key})

    def _post(self, payload: dict) -> None:
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        try:
            response = self._session.post(
                self.gateway_url,
                data=body,
                headers={"X-Signature": sign_body(self._hmac_secret, body)},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise EmailGatewayError(f"Email gateway unreachable: {e}") from e

        try:
            result = response.json()
        except ValueError as e:
            raise EmailGatewayError(
                f"Email gateway returned non-JSON response (HTTP {response.status_code})"
            ) from e

        if not response.ok or not result.get("success"):
            raise EmailGatewayError(
                f"Email gateway rejected message (HTTP {response.status_code}): "
                f"{result.get('message', 'no reason given')}"
            )

    def send_email(self, to: str, subject: str, body: str, sender: Sender = "system") -> None:
        """
        Send one plain-text mail.

        Raises:
            ValueError: Unknown sender identity.
            EmailGatewayError: Transport failure or gateway refusal.
        """
        if sender not in ("auth", "system"):
            raise ValueError(f"sender must be 'auth' or 'system', got '{sender}'")

        self._post(
            {
                "type": "custom",
                "email": to,
                "subject": subject,
                "body": body,
                "sender": sender,
            }
        )
        logger.info(f"Email sent to {to}: {subject}")

    def send_verification_email(self, email: str, verification_url: str) -> None:
        self.send_email(
            to=email,
            subject=f"Verify your email - {self.app_name}",
            body=(
                f"Welcome to {self.app_name}! Confirm your email address by opening "
                f"this link:\n\n{verification_url}\n\n"
                "The link expires in 24 hours. If you didn't sign up, ignore this email."
            ),
            sender="auth",
        )

    def send_login_code(self, email: str, code: str, expires_minutes: int) -> None:
        """Send the one-time login code. Never log the code itself."""
        self.send_email(
            to=email,
            subject=f"Your verification code - {self.app_name}",
            body=(
                f"Your login verification code is: {code}\n\n"
                f"It expires in {expires_minutes} minutes. If you didn't try to "
                "log in, ignore this email."
            ),
            sender="auth",
        )

    def send_welcome_email(self, email: str, name: str) -> None:
        self.send_email(
            to=email,
            subject=f"Welcome to {self.app_name}!",
            body=f"Hi {name},\n\nThanks for joining {self.app_name}.",
        )

    def send_password_reset_email(self, email: str, reset_url: str) -> None:
        self.send_email(
            to=email,
            subject=f"Password reset - {self.app_name}",
            body=(
                f"Reset your password by opening this link:\n\n{reset_url}\n\n"
                "The link expires in 1 hour. If you didn't ask for a reset, "
                "ignore this email."
            ),
            sender="auth",
        )

    def send_password_changed_email(self, email: str) -> None:
        self.send_email(
            to=email,
            subject=f"Your password was changed - {self.app_name}",
            body=(
                "The password for your account was just changed. If this wasn't "
                "you, reset your password immediately."
            ),
            sender="auth",
        )
