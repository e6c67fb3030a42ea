"""
Chat Service

Chat assistant with persisted, owner-scoped conversations.
"""

import logging
import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Forbidden, NotFound
from app.core.utils import utc_now
from app.models.account import Account
from app.models.conversation import ChatMessage, Conversation
from app.models.enums import ChatRole
from app.services import ai_service


logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20
TITLE_LENGTH = 60

SYSTEM_PROMPT = """You are Swift, the Swiftdesk assistant.
Help users with web development, system architecture, programming concepts
and developer tooling. Prefer explaining concepts over handing out large
blocks of code, never generate complete multi-file projects, and keep
answers concise and practical. If a question is about a support ticket,
suggest opening one with a clear subject and the steps to reproduce."""


async def _owned_conversation(db: AsyncSession, owner: Account, conversation_id: int) -> Conversation:
    result = await db.execute(
        select(Conversation).where(
            Conversation.id == conversation_id,
            Conversation.owner_id == owner.id,
        )
    )
    conversation = result.scalar_one_or_none()
    if conversation is None:
        raise NotFound("Conversation not found")
    return conversation


async def _recent_history(db: AsyncSession, conversation_id: int) -> list[ChatMessage]:
    """The last HISTORY_LIMIT messages, oldest first."""
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.conversation_id == conversation_id)
        .order_by(ChatMessage.id.desc())
        .limit(HISTORY_LIMIT)
    )
    return list(reversed(result.scalars().all()))


async def chat(
    db: AsyncSession,
    owner: Account,
    prompt: str,
    conversation_id: Optional[int] = None,
) -> tuple[str, Conversation, int]:
    """
    Send a prompt in a new or existing conversation.

    The user message and the reply are committed together; a failed
    completion leaves the conversation unchanged.

    Returns:
        tuple: (reply text, conversation, latency in milliseconds)
    """
    started = time.perf_counter()
    prompt = prompt.strip()

    if conversation_id is not None:
        conversation = await _owned_conversation(db, owner, conversation_id)
    else:
        conversation = Conversation(owner_id=owner.id, title=prompt[:TITLE_LENGTH] or "New conversation")
        db.add(conversation)
        await db.flush()

    db.add(ChatMessage(conversation_id=conversation.id, role=ChatRole.USER, content=prompt))
    await db.flush()

    history = await _recent_history(db, conversation.id)
    turns = [{"role": m.role.value, "content": m.content} for m in history[:-1]]

    reply = await ai_service.complete(prompt, system=SYSTEM_PROMPT, history=turns)
    latency_ms = int((time.perf_counter() - started) * 1000)

    db.add(
        ChatMessage(
            conversation_id=conversation.id,
            role=ChatRole.ASSISTANT,
            content=reply,
            latency_ms=latency_ms,
        )
    )
    conversation.updated_at = utc_now()
    await db.commit()

    logger.info("Chat reply in conversation %s took %dms", conversation.id, latency_ms)
    return reply, conversation, latency_ms


async def list_conversations(db: AsyncSession, owner: Account) -> list[Conversation]:
    result = await db.execute(
        select(Conversation)
        .where(Conversation.owner_id == owner.id)
        .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
    )
    return list(result.scalars().all())


async def get_messages(db: AsyncSession, viewer: Account, conversation_id: int) -> list[ChatMessage]:
    """
    Messages of a conversation, oldest first.

    Raises:
        NotFound: Unknown conversation.
        Forbidden: The viewer does not own it (admins may read any).
    """
    result = await db.execute(select(Conversation).where(Conversation.id == conversation_id))
    conversation = result.scalar_one_or_none()
    if conversation is None:
        raise NotFound("Conversation not found")
    if conversation.owner_id != viewer.id and not viewer.is_admin:
        raise Forbidden("Not your conversation")

    messages = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.conversation_id == conversation.id)
        .order_by(ChatMessage.id)
    )
    return list(messages.scalars().all())
