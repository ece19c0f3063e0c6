"""
Metering errors

PlanNotFound and InteractionLimitReached deny the interaction.
StoreUnavailable during a count is handled by the gate's fail-open policy.
PersistenceError during a record is logged by the caller and swallowed.
"""
from typing import Optional


class MeteringError(Exception):
    """Base class for interaction metering errors"""


class PlanNotFound(MeteringError):
    def __init__(self, plan_ref: Optional[str]):
        self.plan_ref = plan_ref
        super().__init__(f"Plan not found: {plan_ref}")


class StoreUnavailable(MeteringError):
    """The datastore could not be read"""


class PersistenceError(MeteringError):
    """The datastore rejected a write"""


class InteractionLimitReached(MeteringError):
    reason = "limit_reached"

    def __init__(self, remaining: int = 0, limit: Optional[int] = None):
        self.remaining = remaining
        self.limit = limit
        super().__init__("Interaction limit reached")
