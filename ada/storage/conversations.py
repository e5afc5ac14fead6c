"""Conversation and message persistence."""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ada.storage.models import Conversation, Message

logger = logging.getLogger(__name__)

TITLE_LENGTH = 50


async def start_conversation(session: AsyncSession, title: str = "New Conversation") -> Conversation:
    conversation = Conversation(title=title)
    session.add(conversation)
    await session.flush()
    logger.debug("Started conversation %s", str(conversation.id)[:8])
    return conversation


async def get_conversation(session: AsyncSession, conversation_id: UUID) -> Optional[Conversation]:
    result = await session.execute(
        select(Conversation)
        .options(selectinload(Conversation.messages))
        .where(Conversation.id == conversation_id)
    )
    return result.scalar_one_or_none()


async def load_or_create_conversation(
    session: AsyncSession,
    conversation_id: Optional[UUID] = None,
) -> Conversation:
    """Resume the given (or most recently active) conversation, creating one if none exist."""
    if conversation_id is not None:
        found = await get_conversation(session, conversation_id)
        if found:
            return found
        logger.warning("Conversation %s not found, starting a new one", conversation_id)
        return await start_conversation(session)

    result = await session.execute(
        select(Conversation)
        .options(selectinload(Conversation.messages))
        .order_by(Conversation.updated_at.desc())
        .limit(1)
    )
    if latest := result.scalar_one_or_none():
        return latest
    return await start_conversation(session)


def append_message(
    conversation: Conversation,
    role: str,
    content: str,
    plan_id: Optional[UUID] = None,
) -> Message:
    """Append a message at the end of the conversation. Messages are never reordered."""
    message = Message(
        role=role,
        content=content,
        plan_id=plan_id,
        position=len(conversation.messages),
    )
    conversation.messages.append(message)
    conversation.updated_at = datetime.now(timezone.utc)
    return message


def maybe_set_title(conversation: Conversation, intent: str) -> None:
    """Name the conversation after its first plan."""
    if len(conversation.messages) <= 2 and intent:
        conversation.title = intent[:TITLE_LENGTH]


async def find_conversation_for_plan(session: AsyncSession, plan_id: UUID) -> Optional[Conversation]:
    """The conversation whose messages reference ``plan_id``, if any."""
    result = await session.execute(
        select(Conversation)
        .options(selectinload(Conversation.messages))
        .join(Message, Message.conversation_id == Conversation.id)
        .where(Message.plan_id == plan_id)
        .limit(1)
    )
    return result.scalars().first()
