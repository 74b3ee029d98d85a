from __future__ import annotations

from email.message import EmailMessage
import logging
import smtplib

LOGGER = logging.getLogger(__name__)


class MailSendError(RuntimeError):
    pass


class MailAddressError(MailSendError):
    pass


class MailTransportError(MailSendError):
    pass


class Mailer:
    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        timeout: float = 10,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._timeout = timeout

    def send(self, address: str, subject: str, body: str, html: str | None = None) -> None:
        if not self._host or not self._user:
            raise MailTransportError("Mail transport is not configured")
        if "@" not in address or address.strip() != address:
            raise MailAddressError(f"Malformed recipient address: {address!r}")

        message = EmailMessage()
        message["From"] = self._user
        message["To"] = address
        message["Subject"] = subject
        message.set_content(body)
        if html:
            message.add_alternative(html, subtype="html")

        try:
            with self._connect() as client:
                if self._password:
                    client.login(self._user, self._password)
                client.send_message(message)
        except smtplib.SMTPRecipientsRefused as exc:
            LOGGER.warning("Mail recipient refused to=%s", address)
            raise MailAddressError("Recipient address was refused") from exc
        except (smtplib.SMTPException, OSError) as exc:
            LOGGER.error("Mail transport error host=%s error=%s", self._host, exc)
            raise MailTransportError("Failed to reach mail server") from exc

    def send_verification_code(self, address: str, code: str, subject: str, ttl_seconds: int) -> None:
        minutes = max(1, ttl_seconds // 60)
        body = (
            f"Your verification code is {code}.\n\n"
            f"It expires in {minutes} minute(s).\n\n"
            "If you did not request this code, you can ignore this email."
        )
        html = (
            f"<p>Your verification code is <strong>{code}</strong>."
            f" It expires in {minutes} minute(s).</p>"
        )
        self.send(address, subject, body, html=html)

    def _connect(self) -> smtplib.SMTP:
        # Port 465 speaks implicit TLS; anything else upgrades with STARTTLS.
        if self._port == 465:
            return smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout)
        client = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
        client.starttls()
        return client
