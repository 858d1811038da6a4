"""Context builder: read-only state snapshots for planning."""

from leadflow.context.builder import BusinessProfile, StateSnapshot, build_state

__all__ = ["BusinessProfile", "StateSnapshot", "build_state"]
