"""Tests for the read-only state snapshot."""

from __future__ import annotations

from leadflow.context.builder import BusinessProfile, build_state
from leadflow.domain.types import EventType, MessageRole
from leadflow.store.repository import LeadflowStore

PHONE = "+15551234567"


class TestBuildState:
    def test_unknown_phone_gives_empty_snapshot(
        self, store: LeadflowStore, business: BusinessProfile
    ) -> None:
        state = build_state(store, PHONE, business)

        assert state.conversation is None
        assert state.message_count == 0
        assert state.last_customer_message is None
        assert state.business == business

    def test_loads_conversation_and_history(
        self, store: LeadflowStore, business: BusinessProfile
    ) -> None:
        conversation, _ = store.get_or_create_conversation(PHONE, EventType.INBOUND_SMS)
        store.add_message(conversation.id, MessageRole.CUSTOMER, "Need a quote")
        store.add_message(conversation.id, MessageRole.CUSTOMER, "For mulching")
        store.add_message(conversation.id, MessageRole.AI, "Sure thing!")

        state = build_state(store, PHONE, business)

        assert state.conversation == conversation
        assert state.message_count == 3
        assert state.last_customer_message == "For mulching"

    def test_reads_only(self, store: LeadflowStore, business: BusinessProfile) -> None:
        build_state(store, PHONE, business)

        assert store.get_conversation_by_phone(PHONE) is None
