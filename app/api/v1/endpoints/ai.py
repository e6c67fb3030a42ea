"""
AI Routes

Ticket triage suggestions and the chat assistant.
"""

from fastapi import APIRouter, Request

from app.api.deps import CurrentUser, DbSession
from app.middleware.rate_limit import ai_limiter, rate_limit
from app.models.conversation import ChatMessage, Conversation
from app.schemas.ai import (
    ChatMessageResponse,
    ChatRequest,
    ChatResponse,
    ConversationResponse,
    TicketAnalysis,
    TicketAnalysisRequest,
)
from app.services import ai_service, chat_service


router = APIRouter(prefix="/ai", tags=["AI"])


@router.post(
    "/analyze-ticket",
    response_model=TicketAnalysis,
    summary="Suggest category, urgency and a cleaned-up ticket",
)
@rate_limit(ai_limiter)
async def analyze_ticket(request: Request, data: TicketAnalysisRequest) -> TicketAnalysis:
    """
    Triage a draft ticket before it is submitted.

    Returns 502 when the model is unavailable or replies with malformed
    JSON.
    """
    triage = await ai_service.analyze_ticket(data.message, email=data.email, subject=data.subject)
    return TicketAnalysis.model_validate(triage)


@router.post("/chat", response_model=ChatResponse)
@rate_limit(ai_limiter)
async def chat(
    request: Request,
    data: ChatRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> ChatResponse:
    reply, conversation, latency_ms = await chat_service.chat(
        db, current_user, data.prompt, data.conversation_id
    )
    return ChatResponse(reply=reply, conversation_id=conversation.id, latency_ms=latency_ms)


@router.get("/conversations", response_model=list[ConversationResponse])
async def list_conversations(current_user: CurrentUser, db: DbSession) -> list[Conversation]:
    return await chat_service.list_conversations(db, current_user)


@router.get("/conversations/{conversation_id}/messages", response_model=list[ChatMessageResponse])
async def get_conversation_messages(
    conversation_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> list[ChatMessage]:
    return await chat_service.get_messages(db, current_user, conversation_id)
