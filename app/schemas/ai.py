"""
AI Schemas

Pydantic models for ticket triage and the chat assistant.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.enums import ChatRole
from app.schemas.common import ApiModel, NonBlankStr


class TicketAnalysisRequest(ApiModel):
    email: Optional[str] = None
    subject: Optional[str] = None
    message: NonBlankStr = Field(..., max_length=5000)


class TicketAnalysis(ApiModel):
    """Triage suggestion for a draft ticket."""

    category: str
    urgency: str
    sentiment: str
    suggested_subject: str
    improved_message: str


class ChatRequest(ApiModel):
    prompt: NonBlankStr = Field(..., max_length=8000)
    conversation_id: Optional[int] = None


class ChatResponse(ApiModel):
    reply: str
    conversation_id: int
    latency_ms: int


class ConversationResponse(ApiModel):
    id: int
    title: str
    created_at: datetime
    updated_at: datetime


class ChatMessageResponse(ApiModel):
    id: int
    role: ChatRole
    content: str
    latency_ms: Optional[int] = None
    created_at: datetime
