"""
Per-request interaction gating for the chat endpoints

PENDING -> resolve user and plan -> QuotaGate.can_interact
  denied   -> InteractionLimitReached (HTTP 429), nothing generated or recorded
  allowed  -> record the interaction, then let the handler call the generator

Recording happens before generation starts so that concurrent requests see
the new count as early as possible. A failed record is logged and the request
still goes through. Anonymous requests are not gated.
"""
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from doctor_helper.core.exceptions import InteractionLimitReached, StoreUnavailable
from doctor_helper.core.interactions import QuotaGate, InteractionRecorder, InteractionCheck
from doctor_helper.core.plans import PlanCatalog
from doctor_helper.core.system_config import get_metering_fail_open
from doctor_helper.models.interaction import InteractionType
from doctor_helper.models.user import User
import logging

logger = logging.getLogger(__name__)


def interaction_type_for(
    image: Optional[str] = None,
    document: Optional[str] = None,
    health_report: Optional[dict] = None,
) -> str:
    if image:
        return InteractionType.IMAGE_ANALYSIS.value
    if document or health_report:
        return InteractionType.HEALTH_REPORT.value
    return InteractionType.CHAT.value


@dataclass
class GateOutcome:
    interaction_type: str
    user_id: Optional[str] = None
    plan_id: Optional[str] = None
    check: Optional[InteractionCheck] = None
    recorded: bool = False

    @property
    def gated(self) -> bool:
        return self.check is not None


class InteractionGate:
    """Runs the check-then-record sequence for one inbound request"""

    def __init__(self, db: AsyncSession, fail_open: Optional[bool] = None):
        self.db = db
        self.fail_open = fail_open
        self.catalog = PlanCatalog(db)

    async def admit(
        self,
        user: Optional[User],
        interaction_type: str = InteractionType.CHAT.value,
        request_id: Optional[str] = None,
    ) -> GateOutcome:
        """Raise InteractionLimitReached or record the interaction and return the outcome"""
        if user is None:
            return GateOutcome(interaction_type=interaction_type)

        # A rollback inside the metering calls expires the request-scoped user
        user_id = user.id
        user_email = user.email
        plan_ref = (user.plan_id, user.plan)

        fail_open = self.fail_open
        if fail_open is None:
            fail_open = await get_metering_fail_open(self.db)

        try:
            plan = await self.catalog.resolve_plan(user_id, *plan_ref)
        except StoreUnavailable:
            if not fail_open:
                logger.warning(f"Plan lookup failed for user {user_id}, denying (fail closed)", exc_info=True)
                raise InteractionLimitReached(remaining=0, limit=None)
            logger.warning(f"Plan lookup failed for user {user_id}, allowing (fail open)", exc_info=True)
            return GateOutcome(interaction_type=interaction_type, user_id=user_id)

        plan_id = plan.id if plan else None
        gate = QuotaGate(self.db, fail_open=fail_open)
        check = await gate.can_interact(user_id, plan_id)

        if not check.can_interact:
            raise InteractionLimitReached(
                remaining=check.remaining_interactions or 0,
                limit=check.limit,
            )

        recorded = await InteractionRecorder(self.db).record(
            user_id, plan_id, interaction_type, request_id=request_id
        )
        if recorded:
            logger.info(f"Interaction recorded: {interaction_type} for user {user_email}")

        return GateOutcome(
            interaction_type=interaction_type,
            user_id=user_id,
            plan_id=plan_id,
            check=check,
            recorded=recorded,
        )
