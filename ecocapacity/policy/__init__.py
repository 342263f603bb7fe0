"""Capacity policy engine."""

from ecocapacity.policy.engine import BookingDecision, CapacityPolicyEngine

__all__ = ["CapacityPolicyEngine", "BookingDecision"]
