"""Read-only assembly of the state snapshot a plan is built from."""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict

from leadflow.domain.models import Conversation, Message
from leadflow.domain.types import MessageRole
from leadflow.store.repository import LeadflowStore

logger = structlog.get_logger()


class BusinessProfile(BaseModel):
    """Static facts about the business the agents speak for."""

    model_config = ConfigDict(frozen=True)

    name: str
    services: tuple[str, ...] = ()
    service_area: str = ""


class StateSnapshot(BaseModel):
    """Immutable view of a customer's conversation at planning time."""

    model_config = ConfigDict(frozen=True)

    business: BusinessProfile
    conversation: Conversation | None = None
    messages: tuple[Message, ...] = ()

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def last_customer_message(self) -> str | None:
        """Return the most recent customer-authored message, if any."""
        for message in reversed(self.messages):
            if message.role == MessageRole.CUSTOMER:
                return message.content
        return None


def build_state(store: LeadflowStore, phone: str, business: BusinessProfile) -> StateSnapshot:
    """Load the conversation for *phone* and its history.

    Performs reads only.  A phone with no conversation yields a snapshot
    with ``conversation=None`` and no messages.

    Args:
        store: The orchestration store.
        phone: Customer phone number (the conversation lookup key).
        business: The business profile to embed in the snapshot.

    Returns:
        A frozen ``StateSnapshot``.
    """
    conversation = store.get_conversation_by_phone(phone)
    messages: tuple[Message, ...] = ()
    if conversation is not None:
        messages = tuple(store.list_messages(conversation.id))
    logger.debug(
        "state_built",
        phone=phone,
        conversation_id=conversation.id if conversation else None,
        message_count=len(messages),
    )
    return StateSnapshot(business=business, conversation=conversation, messages=messages)
