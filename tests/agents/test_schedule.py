"""Tests for the schedule agent."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from leadflow.agents.models import ScheduleDecision
from leadflow.agents.schedule import (
    format_schedule_confirmation,
    format_slot,
    propose_schedule,
)

SLOTS = [datetime(2026, 3, 3, 9, 0, tzinfo=UTC) + timedelta(days=i) for i in range(5)]


def _client(index: int) -> MagicMock:
    client = MagicMock()
    client.messages.parse.return_value.parsed_output = ScheduleDecision(
        can_schedule=True,
        proposed_date_index=index,
        suggested_message="How about Thursday?",
        needs_confirmation=False,
    )
    return client


class TestProposeSchedule:
    def test_uses_model_choice(self) -> None:
        proposal = propose_schedule("Thursday works", "mowing", SLOTS, "Green Thumb", _client(2))

        assert proposal.proposed_date == SLOTS[2]
        assert proposal.alternatives == (SLOTS[0], SLOTS[1], SLOTS[3])
        assert proposal.suggested_message == "How about Thursday?"
        assert proposal.needs_confirmation is False

    @pytest.mark.parametrize(("index", "expected"), [(-3, 0), (42, 4)])
    def test_index_clamped_into_range(self, index: int, expected: int) -> None:
        proposal = propose_schedule(None, "mowing", SLOTS, "Green Thumb", _client(index))

        assert proposal.proposed_date == SLOTS[expected]

    def test_fallback_proposes_earliest_slot(self) -> None:
        proposal = propose_schedule(None, "Lawn Mowing", SLOTS, "Green Thumb", None)

        assert proposal.proposed_date == SLOTS[0]
        assert proposal.can_schedule is True
        assert "Tuesday, March 3 at 9:00 AM" in proposal.suggested_message
        assert "lawn mowing" in proposal.suggested_message

    def test_requires_slots(self) -> None:
        with pytest.raises(ValueError, match="At least one slot"):
            propose_schedule(None, "mowing", [], "Green Thumb", None)


def test_format_slot() -> None:
    assert format_slot(datetime(2026, 3, 3, 14, 0, tzinfo=UTC)) == "Tuesday, March 3 at 2:00 PM"


def test_confirmation_message() -> None:
    message = format_schedule_confirmation(SLOTS[0], "Lawn Mowing", "Green Thumb", "Dana")

    assert message.startswith("Hi Dana! Your lawn mowing appointment with Green Thumb")
    assert "Tuesday, March 3 at 9:00 AM" in message
