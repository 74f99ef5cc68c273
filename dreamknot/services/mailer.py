# dreamknot/services/mailer.py
import smtplib
from email.message import EmailMessage

from dreamknot.utils.settings import EMAIL_FROM, SMTP_HOST, SMTP_PASSWORD, SMTP_PORT, SMTP_USER
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)


class Mailer:
    """Plain-text SMTP sender."""

    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        user: str | None = SMTP_USER,
        password: str | None = SMTP_PASSWORD,
        sender: str = EMAIL_FROM,
        timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.timeout = timeout

    def send(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.user:
                smtp.starttls()
                smtp.login(self.user, self.password or "")
            smtp.send_message(msg)

        logger.info(f"Email '{subject}' sent to {to}")
