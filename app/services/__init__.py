"""
Swiftdesk Backend - Services Module

Business logic layer.
"""

from app.services import notification_service
from app.services import email_service
from app.services import otp_service
from app.services import auth_service
from app.services import ticket_service
from app.services import post_service
from app.services import quiz_service
from app.services import contact_service
from app.services import storage_service
from app.services import application_service
from app.services import ai_service
from app.services import chat_service

__all__ = [
    "notification_service",
    "email_service",
    "otp_service",
    "auth_service",
    "ticket_service",
    "post_service",
    "quiz_service",
    "contact_service",
    "storage_service",
    "application_service",
    "ai_service",
    "chat_service",
]
