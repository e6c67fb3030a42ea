"""
Email Service

Renders the notification bodies sent for OTPs, tickets, quiz results and
applications. Delivery itself lives in ``notification_service``.
"""

from html import escape

from app.core.config import settings
from app.services.notification_service import Notification


BRAND = "Swiftdesk"


def _layout(title: str, content: str) -> str:
    """Wrap HTML content in the shared email layout."""
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <style>
            body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0; padding: 0; background-color: #f5f5f5; }}
            .container {{ max-width: 600px; margin: 40px auto; background: white; border-radius: 12px; box-shadow: 0 4px 20px rgba(0,0,0,0.1); overflow: hidden; }}
            .header {{ background: linear-gradient(135deg, #0ea5e9 0%, #0369a1 100%); padding: 32px; text-align: center; }}
            .header h1 {{ color: white; margin: 0; font-size: 24px; }}
            .content {{ padding: 32px 40px; }}
            .otp-box {{ background: #f0f9ff; border: 2px dashed #bae6fd; border-radius: 12px; padding: 24px; text-align: center; margin: 24px 0; }}
            .otp-code {{ font-size: 36px; font-weight: bold; letter-spacing: 8px; color: #0369a1; font-family: monospace; }}
            .quote {{ background: #f9fafb; border-left: 4px solid #0ea5e9; padding: 12px 16px; margin: 20px 0; white-space: pre-wrap; }}
            .footer {{ background: #f9fafb; padding: 20px; text-align: center; color: #6b7280; font-size: 14px; }}
            p {{ color: #374151; line-height: 1.6; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>{escape(title)}</h1>
            </div>
            <div class="content">
                {content}
            </div>
            <div class="footer">
                <p>&copy; {BRAND}. All rights reserved.</p>
            </div>
        </div>
    </body>
    </html>
    """


# ============== OTP ==============

def verification_email(to_email: str, otp_code: str, name: str, ttl_minutes: int) -> Notification:
    """Email verification code sent at registration and on resend."""
    text = f"""
Hi {name},

Welcome to {BRAND}! Please use the verification code below to complete your registration:

Your verification code: {otp_code}

This code will expire in {ttl_minutes} minutes.

If you didn't create an account with {BRAND}, you can safely ignore this email.
"""
    html = _layout(
        f"Welcome to {BRAND}",
        f"""
        <p>Hi {escape(name)},</p>
        <p>Please use the verification code below to complete your registration:</p>
        <div class="otp-box"><div class="otp-code">{otp_code}</div></div>
        <p>This code will expire in <strong>{ttl_minutes} minutes</strong>.</p>
        <p>If you didn't create an account with {BRAND}, you can safely ignore this email.</p>
        """,
    )
    return Notification(
        to=to_email,
        subject=f"Verify your {BRAND} account - {otp_code}",
        body=text,
        html=html,
    )


def login_code_email(to_email: str, otp_code: str, ttl_minutes: int) -> Notification:
    text = f"Your {BRAND} login code is {otp_code}. It will expire in {ttl_minutes} minutes."
    html = _layout(
        "Your login code",
        f"""
        <p>Use the code below to sign in:</p>
        <div class="otp-box"><div class="otp-code">{otp_code}</div></div>
        <p>This code will expire in <strong>{ttl_minutes} minutes</strong>. If you didn't try to sign in, ignore this email.</p>
        """,
    )
    return Notification(to=to_email, subject=f"{BRAND} - Your OTP code", body=text, html=html)


def otp_sms(phone: str, otp_code: str, ttl_minutes: int) -> Notification:
    return Notification(
        to=phone,
        subject="OTP",
        body=f"{otp_code} is your {BRAND} code. It expires in {ttl_minutes} minutes.",
    )


# ============== Tickets ==============

def ticket_created_email(to_email: str, ticket_id: str, subject: str, message: str) -> Notification:
    """Confirmation sent to the submitter of a new ticket."""
    text = f"""
Thanks for contacting {BRAND} support.

Your ticket ID is {ticket_id}. Keep it to track your request.

Subject: {subject}

{message}
"""
    html = _layout(
        "We received your ticket",
        f"""
        <p>Thanks for contacting {BRAND} support. Your ticket ID is:</p>
        <div class="otp-box"><div class="otp-code">{escape(ticket_id)}</div></div>
        <p><strong>Subject:</strong> {escape(subject)}</p>
        <div class="quote">{escape(message)}</div>
        """,
    )
    return Notification(to=to_email, subject=f"[{ticket_id}] {subject}", body=text, html=html)


def new_ticket_alert(to_email: str, ticket_id: str, submitter: str, subject: str, message: str) -> Notification:
    text = f"New ticket {ticket_id} from {submitter}\n\nSubject: {subject}\n\n{message}\n"
    html = _layout(
        "New support ticket",
        f"""
        <p><strong>{escape(ticket_id)}</strong> from {escape(submitter)}</p>
        <p><strong>Subject:</strong> {escape(subject)}</p>
        <div class="quote">{escape(message)}</div>
        """,
    )
    return Notification(to=to_email, subject=f"New ticket [{ticket_id}] {subject}", body=text, html=html)


def ticket_reply_email(to_email: str, ticket_id: str, subject: str, message: str, from_support: bool) -> Notification:
    """Reply notification; ``from_support`` selects the submitter-facing wording."""
    heading = "Support replied to your ticket" if from_support else f"Customer replied on {ticket_id}"
    text = f"{heading}\n\nTicket: {ticket_id}\nSubject: {subject}\n\n{message}\n"
    html = _layout(
        heading,
        f"""
        <p><strong>Ticket:</strong> {escape(ticket_id)}<br><strong>Subject:</strong> {escape(subject)}</p>
        <div class="quote">{escape(message)}</div>
        """,
    )
    return Notification(to=to_email, subject=f"Re: [{ticket_id}] {subject}", body=text, html=html)


def ticket_closed_email(to_email: str, ticket_id: str, subject: str) -> Notification:
    text = f"Your ticket {ticket_id} ({subject}) has been closed by support staff.\n"
    html = _layout(
        "Ticket closed",
        f"<p>Your ticket <strong>{escape(ticket_id)}</strong> ({escape(subject)}) has been closed by support staff.</p>",
    )
    return Notification(to=to_email, subject=f"Closed: [{ticket_id}] {subject}", body=text, html=html)


# ============== Quiz / Contact / Applications ==============

def quiz_result_email(to_email: str, score: int, total: int, percentage: int, passed: bool) -> Notification:
    outcome = "PASSED" if passed else "FAILED"
    text = f"Quiz Result\n\nEmail: {to_email}\nScore: {score}/{total}\nPercentage: {percentage}%\nStatus: {outcome}\n"
    html = _layout(
        "Quiz Result",
        f"""
        <p>Email: <strong>{escape(to_email)}</strong></p>
        <p>Score: {score}/{total}</p>
        <p>Percentage: {percentage}%</p>
        <p>Status: {outcome}</p>
        """,
    )
    return Notification(to=to_email, subject="Quiz Result", body=text, html=html)


def contact_alert(to_email: str, name: str, sender_email: str, subject: str, message: str) -> Notification:
    text = f"New contact message from {name} <{sender_email}>\n\nSubject: {subject}\n\n{message}\n"
    html = _layout(
        "New contact message",
        f"""
        <p>From <strong>{escape(name)}</strong> &lt;{escape(sender_email)}&gt;</p>
        <p><strong>Subject:</strong> {escape(subject)}</p>
        <div class="quote">{escape(message)}</div>
        """,
    )
    return Notification(to=to_email, subject=f"Contact: {subject or 'New message'}", body=text, html=html)


def application_received_email(to_email: str, first_name: str, application_id: int) -> Notification:
    text = (
        f"Hi {first_name},\n\nWe received your application (reference {application_id}). "
        "We'll be in touch once it has been reviewed.\n"
    )
    html = _layout(
        "Application received",
        f"""
        <p>Hi {escape(first_name)},</p>
        <p>We received your application (reference <strong>{application_id}</strong>).
        We'll be in touch once it has been reviewed.</p>
        """,
    )
    return Notification(to=to_email, subject=f"{BRAND} application received", body=text, html=html)


def admin_address() -> str | None:
    return settings.ADMIN_EMAIL or None
