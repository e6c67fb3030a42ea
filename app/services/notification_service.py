"""
Notification Service

Email and SMS delivery behind a single ``NotificationSender`` interface.
Providers are selected by ``EMAIL_PROVIDER`` / ``SMS_PROVIDER``; delivery
is fire-and-forget from the caller's point of view.
"""

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import httpx

from app.core.config import settings
from app.core.http_client import post_with_retry


logger = logging.getLogger(__name__)

MSG91_FLOW_URL = "https://control.msg91.com/api/v5/flow/"
RETRY_BACKOFF_BASE = 0.5  # seconds


class NotificationError(Exception):
    """Raised by a sender when a provider rejects or fails a delivery."""


@dataclass
class Notification:
    to: str
    subject: str
    body: str
    html: Optional[str] = None


class NotificationSender:
    """Delivers a notification. Implementations raise NotificationError on failure."""

    name = "base"

    async def send(self, notification: Notification) -> None:
        raise NotImplementedError


class ConsoleSender(NotificationSender):
    """Development sender: writes the message to the log."""

    name = "console"

    def __init__(self, channel: str = "email"):
        self.channel = channel

    async def send(self, notification: Notification) -> None:
        logger.info(
            "[DEV MODE] %s to %s | %s\n%s",
            self.channel, notification.to, notification.subject, notification.body,
        )


class SMTPEmailSender(NotificationSender):
    """Sends multipart email through SMTP with STARTTLS."""

    name = "smtp"

    def _build_message(self, notification: Notification) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = notification.subject
        msg["From"] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
        msg["To"] = notification.to

        # Attach plain text and HTML versions
        msg.attach(MIMEText(notification.body, "plain"))
        if notification.html:
            msg.attach(MIMEText(notification.html, "html"))
        return msg

    def _send_sync(self, notification: Notification) -> None:
        msg = self._build_message(notification)
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.starttls()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.sendmail(settings.EMAIL_FROM_ADDRESS, notification.to, msg.as_string())

    async def send(self, notification: Notification) -> None:
        try:
            # smtplib is blocking
            await asyncio.to_thread(self._send_sync, notification)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery to {notification.to} failed: {e}") from e


class MSG91SmsSender(NotificationSender):
    """Sends SMS through the MSG91 flow API; the body is the template variable."""

    name = "msg91"

    async def send(self, notification: Notification) -> None:
        payload = {
            "template_id": settings.MSG91_TEMPLATE_ID,
            "sender": settings.MSG91_SENDER_ID,
            "short_url": "0",
            "recipients": [
                {"mobiles": notification.to.lstrip("+"), "message": notification.body},
            ],
        }
        headers = {"authkey": settings.MSG91_AUTH_KEY, "accept": "application/json"}

        try:
            response = await post_with_retry(MSG91_FLOW_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise NotificationError(f"MSG91 request failed: {e}") from e

        if response.status_code >= 400:
            raise NotificationError(
                f"MSG91 rejected SMS to {notification.to}: {response.status_code} {response.text[:200]}"
            )


# ============== Provider Selection ==============

def get_email_sender() -> NotificationSender:
    if settings.EMAIL_PROVIDER == "smtp":
        return SMTPEmailSender()
    return ConsoleSender("email")


def get_sms_sender() -> NotificationSender:
    if settings.SMS_PROVIDER == "msg91":
        return MSG91SmsSender()
    return ConsoleSender("sms")


# ============== Delivery ==============

async def deliver(
    sender: NotificationSender,
    notification: Notification,
    max_attempts: Optional[int] = None,
) -> bool:
    """
    Deliver a notification with bounded retries.

    Failures never propagate: the final one is logged and swallowed so the
    operation that scheduled the notification is unaffected.

    Returns:
        bool: True if the notification was delivered.
    """
    attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS

    for attempt in range(attempts):
        try:
            await sender.send(notification)
            logger.info("Notification '%s' sent to %s via %s", notification.subject, notification.to, sender.name)
            return True
        except Exception as e:
            if attempt < attempts - 1:
                wait_time = RETRY_BACKOFF_BASE * (2 ** attempt)
                logger.warning(
                    "Notification to %s failed (attempt %d/%d), retrying in %.2fs: %s",
                    notification.to, attempt + 1, attempts, wait_time, e,
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(
                    "Notification to %s failed after %d attempts: %s",
                    notification.to, attempts, e,
                )
    return False


async def send_email(notification: Notification) -> bool:
    return await deliver(get_email_sender(), notification)


async def send_sms(notification: Notification) -> bool:
    return await deliver(get_sms_sender(), notification)


def schedule_email(background_tasks, notification: Optional[Notification]) -> None:
    """Queue an email to be delivered after the response is sent."""
    if notification is not None and notification.to:
        background_tasks.add_task(send_email, notification)


def schedule_sms(background_tasks, notification: Optional[Notification]) -> None:
    """Queue an SMS to be delivered after the response is sent."""
    if notification is not None and notification.to:
        background_tasks.add_task(send_sms, notification)
