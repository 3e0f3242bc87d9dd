# File: app/core/email_service.py
import smtplib
import ssl
import time
import logging
from dataclasses import dataclass, field
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List, Optional

import requests

from app.core.config import settings
from app.core.exceptions import EmailConfigurationError, EmailProviderError

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str


@dataclass
class MessageResult:
    to: str
    success: bool
    error: Optional[str] = None
    provider_id: Optional[str] = None


@dataclass
class BatchSendResult:
    results: List[MessageResult] = field(default_factory=list)

    @property
    def accepted(self) -> List[MessageResult]:
        return [r for r in self.results if r.success]

    @property
    def rejected(self) -> List[MessageResult]:
        return [r for r in self.results if not r.success]

    @property
    def all_accepted(self) -> bool:
        return bool(self.results) and not self.rejected


def _chunks(items: List[EmailMessage], size: int) -> List[List[EmailMessage]]:
    size = max(size, 1)
    return [items[i:i + size] for i in range(0, len(items), size)]


class ResendTransport:
    """Batch sends through the Resend HTTP API"""

    def __init__(self, api_key: str, base_url: str, from_address: str, timeout: int):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.from_address = from_address
        self.timeout = timeout

    def send_chunk(self, messages: List[EmailMessage]) -> List[MessageResult]:
        payload = [
            {"from": self.from_address, "to": [m.to], "subject": m.subject, "html": m.html}
            for m in messages
        ]
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            # Report invalid messages individually instead of failing the whole batch
            "x-batch-validation": "permissive",
        }

        try:
            response = requests.post(
                f"{self.base_url}/emails/batch",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise EmailProviderError(f"Email provider request failed: {e}")

        if response.status_code >= 400:
            raise EmailProviderError(
                f"Email provider returned {response.status_code}",
                status_code=response.status_code,
                details={"body": response.text[:500]},
            )

        body = response.json() or {}
        errors = {e.get("index"): e.get("message") for e in body.get("errors") or []}
        ids = [item.get("id") for item in body.get("data") or []]

        results = []
        id_iter = iter(ids)
        for index, message in enumerate(messages):
            if index in errors:
                results.append(MessageResult(to=message.to, success=False, error=errors[index]))
            else:
                results.append(MessageResult(to=message.to, success=True, provider_id=next(id_iter, None)))
        return results


class SmtpTransport:
    """One SMTP connection per chunk, one message per recipient"""

    def __init__(self, server: str, port: int, username: Optional[str], password: Optional[str],
                 from_email: str, from_name: str, timeout: int):
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    def _build(self, message: EmailMessage) -> MIMEMultipart:
        mime = MIMEMultipart("alternative")
        mime["Subject"] = message.subject
        mime["From"] = f"{self.from_name} <{self.from_email}>"
        mime["To"] = message.to
        mime.attach(MIMEText(message.html, "html"))
        return mime

    def send_chunk(self, messages: List[EmailMessage]) -> List[MessageResult]:
        results = []
        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as server:
                server.starttls(context=context)
                if self.username and self.password:
                    server.login(self.username, self.password)

                for message in messages:
                    try:
                        server.sendmail(self.from_email, [message.to], self._build(message).as_string())
                        results.append(MessageResult(to=message.to, success=True))
                    except smtplib.SMTPRecipientsRefused as e:
                        results.append(MessageResult(to=message.to, success=False, error=str(e)))
        except (smtplib.SMTPException, OSError) as e:
            raise EmailProviderError(f"SMTP delivery failed: {e}")
        return results


class EmailService:
    def __init__(self, transport=None):
        self.from_email = settings.FROM_EMAIL
        self.from_name = settings.FROM_NAME
        self.batch_size = settings.EMAIL_BATCH_SIZE
        self.batch_delay = settings.EMAIL_BATCH_DELAY_SECONDS
        self._transport = transport

    def _build_transport(self):
        provider = settings.EMAIL_PROVIDER.lower()
        if provider == "smtp":
            return SmtpTransport(
                settings.SMTP_SERVER,
                settings.SMTP_PORT,
                settings.SMTP_USERNAME,
                settings.SMTP_PASSWORD,
                self.from_email,
                self.from_name,
                settings.EMAIL_TIMEOUT,
            )
        if provider == "resend":
            if not settings.RESEND_API_KEY:
                if settings.is_production:
                    raise EmailConfigurationError("RESEND_API_KEY is not configured")
                return None
            return ResendTransport(
                settings.RESEND_API_KEY,
                settings.RESEND_API_URL,
                f"{self.from_name} <{self.from_email}>",
                settings.EMAIL_TIMEOUT,
            )
        raise EmailConfigurationError(f"Unknown EMAIL_PROVIDER '{settings.EMAIL_PROVIDER}'")

    @property
    def transport(self):
        if self._transport is None:
            self._transport = self._build_transport()
        return self._transport

    def send_batch(self, messages: List[EmailMessage]) -> BatchSendResult:
        """Send messages in provider-sized chunks.

        Raises EmailProviderError when the first chunk fails as a whole and
        EmailConfigurationError when the provider cannot be used at all.
        If a later chunk fails, its messages and all that follow are reported
        as rejected next to the ones already accepted.
        """
        if not messages:
            return BatchSendResult()

        if not settings.SEND_EMAILS:
            logger.info(f"Email sending disabled. Would send {len(messages)} messages: {messages[0].subject}")
            return BatchSendResult([MessageResult(to=m.to, success=True) for m in messages])

        transport = self.transport
        if transport is None:
            logger.warning(f"No email provider key configured, skipping {len(messages)} messages in development")
            return BatchSendResult([MessageResult(to=m.to, success=True) for m in messages])

        result = BatchSendResult()
        chunks = _chunks(messages, self.batch_size)
        for index, chunk in enumerate(chunks):
            if index > 0 and self.batch_delay:
                time.sleep(self.batch_delay)
            try:
                result.results.extend(transport.send_chunk(chunk))
            except EmailProviderError as e:
                if index == 0:
                    raise
                # Earlier chunks are already delivered and must stay reported as accepted
                logger.error(f"Email chunk {index + 1}/{len(chunks)} failed after {len(result.results)} messages: {e.message}")
                unsent = [m for later in chunks[index:] for m in later]
                result.results.extend(MessageResult(to=m.to, success=False, error=e.message) for m in unsent)
                break

        logger.info(f"Email batch sent: {len(result.accepted)}/{len(messages)} accepted")
        return result

    def send_email(self, to_email: str, subject: str, html_content: str) -> BatchSendResult:
        return self.send_batch([EmailMessage(to=to_email, subject=subject, html=html_content)])


# Global email service instance
email_service = EmailService()
