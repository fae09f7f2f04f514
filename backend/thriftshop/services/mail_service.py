"""
mail_service.py: transactional mail (password reset tokens) through Resend.
"""

from __future__ import annotations

import logging

import resend

from ..validation import UpstreamError

logger = logging.getLogger(__name__)

GENERIC_ERROR = "We could not send the email right now. Please try again."


class ResendMailer:
    def __init__(self, api_key: str, sender: str):
        self.api_key = (api_key or "").strip()
        self.sender = sender
        if self.api_key:
            resend.api_key = self.api_key

    def send(self, payload: dict) -> str:
        """Send one message; returns the provider message id."""
        if not self.api_key:
            logger.error("RESEND_API_KEY is not configured")
            raise UpstreamError(GENERIC_ERROR)

        try:
            response = resend.Emails.send(payload)
        except Exception as exc:
            logger.error("Mail dispatch to %s failed: %s", payload.get("to"), exc)
            raise UpstreamError(GENERIC_ERROR) from exc

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        if not message_id:
            logger.error("Mail dispatch to %s returned no id: %r", payload.get("to"), response)
            raise UpstreamError(GENERIC_ERROR)
        return message_id

    def send_password_reset(self, recipient_email: str, token: str, reset_url: str, expires_minutes: int) -> str:
        link = f"{reset_url}?token={token}"
        text = (
            f"Reset your password here: {link}\n\n"
            f"This link expires in {expires_minutes} minutes.\n\n"
            "If you did not request this, you can ignore this email."
        )
        html = (
            f'<p><a href="{link}">Reset your password</a></p>'
            f"<p>This link expires in {expires_minutes} minutes.</p>"
            "<p>If you did not request this, you can ignore this email.</p>"
        )
        return self.send({
            "from": self.sender,
            "to": [recipient_email],
            "subject": "Reset your password",
            "text": text,
            "html": html,
        })
