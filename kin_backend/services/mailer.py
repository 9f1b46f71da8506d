import logging
import smtplib
from email.message import EmailMessage

from kin_backend.core.config import Settings
from kin_backend.core.errors import EmailDeliveryFailed

logger = logging.getLogger(__name__)


class Mailer:
    """Sends one-time codes over SMTP (STARTTLS)."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def build_message(self, email: str, subject: str, code: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.settings.smtp_from or self.settings.smtp_user
        msg["To"] = email
        msg.set_content(
            f"Hello,\n\nYour code is: {code}\n\n"
            "The code expires in a few minutes. If you didn't request this, ignore this message.\n"
        )
        return msg

    def send(self, email: str, subject: str, code: str, token: str) -> None:
        # token is accepted for callers that link to it; only the code is mailed
        del token
        if not self.settings.smtp_host:
            if self.settings.mail_suppress:
                logger.info("Mail suppressed: %r to %s", subject, email)
                return
            logger.error("SMTP is not configured; cannot send %r to %s", subject, email)
            raise EmailDeliveryFailed()

        msg = self.build_message(email, subject, code)
        try:
            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as smtp:
                smtp.starttls()
                if self.settings.smtp_user and self.settings.smtp_password:
                    smtp.login(self.settings.smtp_user, self.settings.smtp_password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.exception("Failed to send %r to %s", subject, email)
            raise EmailDeliveryFailed() from exc
        logger.info("Sent %r to %s", subject, email)
