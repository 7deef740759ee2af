"""Customer email delivery through SendGrid."""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

import httpx

from config import Settings, get_settings
from services.documents import (
    COMPANY,
    email_copy,
    render_quote_email_html,
    render_quote_email_text,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailConfig:
    """Mail transport settings, fixed for the lifetime of a dispatcher."""

    api_key: str
    sender: str
    timeout: float
    api_url: str = "https://api.sendgrid.com/v3/mail/send"

    @classmethod
    def from_settings(cls, settings: Settings) -> "MailConfig":
        return cls(
            api_key=settings.sendgrid_api_key,
            sender=settings.mail_from,
            timeout=settings.mail_timeout_seconds,
            api_url=settings.sendgrid_api_url,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class EmailMessage:
    """A single outgoing email."""

    to: str
    sender: str
    subject: str
    text: str
    html: str


class MailTransport(Protocol):
    async def deliver(self, message: EmailMessage) -> None: ...


class SendGridTransport:
    """Posts messages to the SendGrid v3 mail-send API."""

    def __init__(self, config: MailConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client

    def _payload(self, message: EmailMessage) -> dict[str, Any]:
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": message.sender, "name": COMPANY["name"]},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }

    async def deliver(self, message: EmailMessage) -> None:
        """
        Send one message.

        Raises:
            httpx.HTTPError: on timeouts, connection failures and non-2xx responses.
        """
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        payload = self._payload(message)

        if self._client is not None:
            response = await self._client.post(
                self.config.api_url, json=payload, headers=headers, timeout=self.config.timeout
            )
            response.raise_for_status()
            return

        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            response = await client.post(self.config.api_url, json=payload, headers=headers)
            response.raise_for_status()


class NotificationDispatcher:
    """
    Best-effort delivery of customer notifications.

    Without an API key the dispatcher runs dry: it logs the recipient and
    reports success without touching the transport. Transport failures are
    logged and reported as False, never raised.
    """

    def __init__(self, config: MailConfig, transport: MailTransport | None = None):
        self.config = config
        self.transport = transport or SendGridTransport(config)

    async def send(self, message: EmailMessage) -> bool:
        if not self.config.configured:
            logger.info(f"Mail not configured, skipping delivery to {message.to}: {message.subject}")
            return True

        try:
            await self.transport.deliver(message)
        except httpx.TimeoutException:
            logger.error(f"Mail transport timeout sending to {message.to}")
            return False
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Mail transport error: {e.response.status_code} - {e.response.text}"
            )
            return False
        except Exception as e:
            logger.exception(f"Mail delivery to {message.to} failed: {e}")
            return False

        logger.info(f"Mail sent to {message.to}: {message.subject}")
        return True


def build_quote_email(quote: Any, sender: str, kind: str = "confirmation") -> EmailMessage:
    """
    Quote email addressed to the customer.

    ``confirmation`` acknowledges a new request; ``quotation`` delivers the
    priced quote from the back office.
    """
    return EmailMessage(
        to=quote.customer_email,
        sender=sender,
        subject=email_copy(quote, kind)["subject"],
        text=render_quote_email_text(quote, kind),
        html=render_quote_email_html(quote, kind),
    )


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    """Dependency returning the process-wide dispatcher."""
    return NotificationDispatcher(MailConfig.from_settings(get_settings()))
