"""
Notification Delivery Tests
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.services.notification_service import (
    ConsoleSender,
    MSG91SmsSender,
    Notification,
    NotificationError,
    NotificationSender,
    SMTPEmailSender,
    deliver,
    get_email_sender,
    get_sms_sender,
)


class FlakySender(NotificationSender):
    name = "flaky"

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def send(self, notification: Notification) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise NotificationError("provider down")


NOTE = Notification(to="user@example.com", subject="Hello", body="Body")


@pytest.fixture(autouse=True)
def fast_backoff():
    with patch("app.services.notification_service.RETRY_BACKOFF_BASE", 0):
        yield


class TestDeliver:

    @pytest.mark.asyncio
    async def test_retries_until_delivered(self):
        sender = FlakySender(failures=2)

        assert await deliver(sender, NOTE, max_attempts=3) is True
        assert sender.calls == 3

    @pytest.mark.asyncio
    async def test_gives_up_without_raising(self):
        sender = FlakySender(failures=10)

        assert await deliver(sender, NOTE, max_attempts=2) is False
        assert sender.calls == 2

    @pytest.mark.asyncio
    async def test_console_sender_always_delivers(self):
        assert await deliver(ConsoleSender("sms"), NOTE) is True


class TestMSG91:

    @pytest.mark.asyncio
    async def test_sends_flow_payload(self, mock_httpx_response):
        sms = Notification(to="+27820000001", subject="OTP", body="123456")

        with patch(
            "app.services.notification_service.post_with_retry",
            new=AsyncMock(return_value=mock_httpx_response(200)),
        ) as post:
            await MSG91SmsSender().send(sms)

        payload = post.await_args.kwargs["json"]
        assert payload["recipients"] == [{"mobiles": "27820000001", "message": "123456"}]

    @pytest.mark.asyncio
    async def test_rejection_raises(self, mock_httpx_response):
        with patch(
            "app.services.notification_service.post_with_retry",
            new=AsyncMock(return_value=mock_httpx_response(401, text="bad authkey")),
        ):
            with pytest.raises(NotificationError):
                await MSG91SmsSender().send(NOTE)

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        with patch(
            "app.services.notification_service.post_with_retry",
            new=AsyncMock(side_effect=httpx.ConnectError("refused")),
        ):
            with pytest.raises(NotificationError):
                await MSG91SmsSender().send(NOTE)


def test_provider_selection():
    with patch("app.services.notification_service.settings.EMAIL_PROVIDER", "smtp"), \
            patch("app.services.notification_service.settings.SMS_PROVIDER", "msg91"):
        assert isinstance(get_email_sender(), SMTPEmailSender)
        assert isinstance(get_sms_sender(), MSG91SmsSender)

    assert isinstance(get_email_sender(), ConsoleSender)
    assert isinstance(get_sms_sender(), ConsoleSender)


def test_smtp_message_has_html_alternative():
    message = SMTPEmailSender()._build_message(
        Notification(to="a@b.com", subject="Hi", body="plain", html="<p>html</p>")
    )

    assert message["To"] == "a@b.com"
    assert [part.get_content_type() for part in message.get_payload()] == ["text/plain", "text/html"]
