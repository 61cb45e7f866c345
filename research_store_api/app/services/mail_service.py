"""
Outbound e-mail.

There is no mail transport yet: messages are recorded in the
application log with their recipient and purpose only.  The reset
token itself is handed to ``deliver`` but never written anywhere.
"""

import logging

logger = logging.getLogger(__name__)


class MailService:
    """Send transactional e-mails to customers and staff."""

    @classmethod
    async def deliver(cls, recipient: str, subject: str, body: str) -> None:
        # TODO: hand messages to an SMTP relay once one is provisioned.
        logger.info("Queued e-mail '%s' for %s (%d chars)", subject, recipient, len(body))

    @classmethod
    async def send_password_reset(cls, recipient: str, token: str, audience: str = "customer") -> None:
        body = (
            "A password reset was requested for your account.\n"
            f"Use this code within the next hour to choose a new password:\n\n{token}\n\n"
            "If you did not ask for this, you can ignore this message."
        )
        await cls.deliver(recipient, f"Reset your {audience} password", body)

    @classmethod
    async def send_purchase_credentials(cls, recipient: str, temporary_password: str) -> None:
        body = (
            "Thank you for your purchase. An account was created for you.\n"
            f"E-mail: {recipient}\nTemporary password: {temporary_password}\n"
            "Please change it after your first sign-in."
        )
        await cls.deliver(recipient, "Your research store account", body)
