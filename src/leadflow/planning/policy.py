"""Automation policy: which actions run unattended and which need approval.

A ``Policy`` is frozen and versioned, and it is passed explicitly to the
planner on every call.  Tier presets mirror how much a business trusts the
automation; any field can be overridden from a YAML policy file.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field

from leadflow.domain.types import PolicyTier

logger = structlog.get_logger()

DEFAULT_MAX_MESSAGES = 50


def normalize_phone(phone: str) -> str:
    """Reduce *phone* to its last ten digits for comparisons."""
    digits = re.sub(r"\D", "", phone)
    return digits[-10:]


class Policy(BaseModel):
    """Versioned automation settings for one business."""

    model_config = ConfigDict(frozen=True)

    version: str = "1"
    tier: PolicyTier = PolicyTier.OWNER_OPERATOR
    auto_respond_missed_calls: bool = True
    auto_send_messages: bool = True
    auto_quote_enabled: bool = False
    approvals_required_for_booking: bool = True
    sync_leads_to_fsm: bool = True
    max_messages_per_conversation: int = Field(default=DEFAULT_MAX_MESSAGES, gt=0)
    blocked_phones: tuple[str, ...] = ()

    def is_phone_blocked(self, phone: str) -> bool:
        """Return True if *phone* is on the do-not-serve list."""
        target = normalize_phone(phone)
        return any(normalize_phone(blocked) == target for blocked in self.blocked_phones)

    @classmethod
    def for_tier(cls, tier: PolicyTier | str, **overrides: Any) -> Policy:
        """Build the preset policy for *tier*, applying *overrides* on top.

        Args:
            tier: One of the ``PolicyTier`` values.
            **overrides: Field values that replace the preset.

        Returns:
            A new ``Policy``.
        """
        tier = PolicyTier(tier)
        return cls.model_validate({**TIER_DEFAULTS[tier], "tier": tier, **overrides})


TIER_DEFAULTS: dict[PolicyTier, dict[str, Any]] = {
    PolicyTier.OWNER_OPERATOR: {
        "auto_quote_enabled": False,
        "approvals_required_for_booking": True,
    },
    PolicyTier.SMB: {
        "auto_quote_enabled": True,
        "approvals_required_for_booking": True,
    },
    PolicyTier.COMMERCIAL: {
        "auto_quote_enabled": True,
        "approvals_required_for_booking": False,
    },
}


def load_policy(path: Path | str) -> Policy:
    """Load a policy from a YAML file.

    The file may name a ``tier``; its preset is applied first and the other
    keys override it.

    Args:
        path: Path to the YAML policy file.

    Returns:
        The loaded ``Policy``.
    """
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    tier = data.pop("tier", PolicyTier.OWNER_OPERATOR)
    if "blocked_phones" in data:
        data["blocked_phones"] = tuple(str(p) for p in data["blocked_phones"])
    policy = Policy.for_tier(tier, **data)
    logger.info("policy_loaded", path=str(path), tier=policy.tier, version=policy.version)
    return policy
