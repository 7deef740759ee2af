"""Tests for the notification dispatcher and SendGrid transport."""

import json
from dataclasses import FrozenInstanceError

import httpx
import pytest

from config import get_settings
from services.notifications import (
    EmailMessage,
    MailConfig,
    NotificationDispatcher,
    SendGridTransport,
    build_quote_email,
)

MESSAGE = EmailMessage(
    to="customer@example.com",
    sender="quotes@example.com",
    subject="Your Irrigation Quote #1",
    text="Dear customer",
    html="<p>Dear customer</p>",
)


class CountingTransport:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = 0

    async def deliver(self, message: EmailMessage) -> None:
        self.calls += 1
        if self.error:
            raise self.error


def mail_config(api_key: str = "SG.key") -> MailConfig:
    return MailConfig(api_key=api_key, sender="quotes@example.com", timeout=2.0)


@pytest.mark.asyncio
async def test_dry_run_without_api_key():
    """Test an unconfigured dispatcher reports success without sending."""
    transport = CountingTransport()
    dispatcher = NotificationDispatcher(mail_config(api_key=""), transport)

    assert await dispatcher.send(MESSAGE) is True
    assert transport.calls == 0


@pytest.mark.asyncio
async def test_send_delivers_through_transport():
    transport = CountingTransport()
    dispatcher = NotificationDispatcher(mail_config(), transport)

    assert await dispatcher.send(MESSAGE) is True
    assert transport.calls == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        httpx.ReadTimeout("timed out"),
        httpx.ConnectError("connection refused"),
        RuntimeError("unexpected"),
    ],
)
async def test_send_failures_return_false(error):
    dispatcher = NotificationDispatcher(mail_config(), CountingTransport(error))
    assert await dispatcher.send(MESSAGE) is False


def test_mail_config_is_immutable():
    config = mail_config()
    with pytest.raises(FrozenInstanceError):
        config.api_key = "other"


def test_mail_config_from_settings():
    config = MailConfig.from_settings(get_settings())
    assert config.api_key == ""
    assert config.configured is False
    assert config.sender == "quotes@driptech.co.ke"
    assert config.timeout == 10.0


@pytest.mark.asyncio
async def test_sendgrid_transport_posts_message():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(202)

    config = mail_config()
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await SendGridTransport(config, client).deliver(MESSAGE)

    assert len(requests) == 1
    request = requests[0]
    assert str(request.url) == config.api_url
    assert request.headers["Authorization"] == "Bearer SG.key"
    body = json.loads(request.content)
    assert body["personalizations"][0]["to"][0]["email"] == "customer@example.com"
    assert body["from"]["email"] == "quotes@example.com"
    assert body["subject"] == "Your Irrigation Quote #1"
    assert [c["type"] for c in body["content"]] == ["text/plain", "text/html"]


@pytest.mark.asyncio
async def test_dispatcher_reports_provider_rejection():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"errors": [{"message": "bad key"}]})

    config = mail_config()
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        dispatcher = NotificationDispatcher(config, SendGridTransport(config, client))
        assert await dispatcher.send(MESSAGE) is False


def test_build_quote_email(quote_factory):
    message = build_quote_email(quote_factory(), "quotes@example.com")
    assert message.to == "mary@example.com"
    assert message.sender == "quotes@example.com"
    assert message.subject == "Your Irrigation Quote #42 - DripTech"
    assert "Mary Wanjiku" in message.text
    assert "Mary Wanjiku" in message.html


@pytest.mark.asyncio
async def test_sendgrid_transport_applies_timeout_to_shared_client():
    """Test the configured timeout wins over the client's own default."""
    timeouts = []

    def handler(request: httpx.Request) -> httpx.Response:
        timeouts.append(request.extensions["timeout"])
        return httpx.Response(202)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), timeout=30.0) as client:
        await SendGridTransport(mail_config(), client).deliver(MESSAGE)

    assert timeouts == [{"connect": 2.0, "read": 2.0, "write": 2.0, "pool": 2.0}]


def test_build_quotation_email(quote_factory):
    message = build_quote_email(quote_factory(total_amount=100000), "quotes@example.com", kind="quotation")
    assert message.subject == "Quotation #42 for your Drip Irrigation project - DripTech"
    assert "valid until 14 February 2026" in message.text
    assert "To accept this quotation" in message.html
    assert "has been received" not in message.html
