"""
Plan catalog

Read side used by the quota gate on every interaction attempt, plus the
mutations behind the admin plan screens.
"""
from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from doctor_helper.config import get_settings
from doctor_helper.core.exceptions import PlanNotFound, StoreUnavailable
from doctor_helper.models.plan import Plan
from doctor_helper.models.user import User
import logging

settings = get_settings()
logger = logging.getLogger(__name__)

PLAN_FIELDS = (
    "title",
    "description",
    "features",
    "monthly_price",
    "yearly_price",
    "is_active",
    "is_popular",
    "interactions_limit",
)


class PlanCatalog:
    """Lookup and maintenance of subscription plans"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _execute(self, query, what: str):
        try:
            return await self.db.execute(query)
        except (SQLAlchemyError, OSError) as e:
            await self.db.rollback()
            raise StoreUnavailable(f"Failed to load {what}") from e

    async def get_plans(self, active_only: bool = False) -> List[Plan]:
        """All plans ordered by monthly price ascending"""
        query = select(Plan).order_by(Plan.monthly_price.asc(), Plan.title.asc())
        if active_only:
            query = query.where(Plan.is_active == True)
        result = await self._execute(query, "plans")
        return list(result.scalars().all())

    async def find_plan_by_id(self, plan_id: Optional[str]) -> Optional[Plan]:
        if not plan_id:
            return None
        result = await self._execute(select(Plan).where(Plan.id == plan_id), f"plan {plan_id}")
        return result.scalar_one_or_none()

    async def require_plan(self, plan_id: Optional[str]) -> Plan:
        plan = await self.find_plan_by_id(plan_id)
        if not plan:
            raise PlanNotFound(plan_id)
        return plan

    async def find_plan_by_title(self, title: Optional[str]) -> Optional[Plan]:
        if not title:
            return None
        result = await self._execute(select(Plan).where(Plan.title == title), f"plan '{title}'")
        return result.scalar_one_or_none()

    async def resolve_user_plan(self, user: User) -> Optional[Plan]:
        return await self.resolve_plan(user.id, user.plan_id, user.plan)

    async def resolve_plan(
        self,
        user_id: str,
        plan_id: Optional[str],
        plan_title: Optional[str],
    ) -> Optional[Plan]:
        """
        Resolve the plan a user is entitled to.
        1. plan_id
        2. plan title (older rows written before plan_id existed)
        3. the default plan title
        """
        plan = await self.find_plan_by_id(plan_id)
        if plan:
            return plan

        plan = await self.find_plan_by_title(plan_title)
        if plan:
            logger.info(f"Resolved plan for user {user_id} by title '{plan_title}'")
            return plan

        plan = await self.find_plan_by_title(settings.DEFAULT_PLAN_TITLE)
        if plan:
            logger.info(f"User {user_id} has no resolvable plan, using '{settings.DEFAULT_PLAN_TITLE}'")
        else:
            logger.warning(f"No plan resolvable for user {user_id} and default plan is missing")
        return plan

    async def add_plan(self, data: Dict[str, Any]) -> Plan:
        plan = Plan(**{k: v for k, v in data.items() if k in PLAN_FIELDS and v is not None})
        self.db.add(plan)
        await self.db.commit()
        await self.db.refresh(plan)
        logger.info(f"Plan created: {plan.id} ({plan.title})")
        return plan

    async def update_plan(self, plan_id: str, updates: Dict[str, Any]) -> Optional[Plan]:
        """Apply the given fields; interactions_limit may be set to None to make a plan unlimited"""
        plan = await self.find_plan_by_id(plan_id)
        if not plan:
            return None

        for field, value in updates.items():
            if field in PLAN_FIELDS:
                setattr(plan, field, value)

        await self.db.commit()
        await self.db.refresh(plan)
        logger.info(f"Plan updated: {plan.id} ({plan.title})")
        return plan

    async def delete_plan(self, plan_id: str) -> bool:
        """Delete a plan. Ledger rows keep the orphaned plan_id."""
        plan = await self.find_plan_by_id(plan_id)
        if not plan:
            return False

        await self.db.delete(plan)
        await self.db.commit()
        logger.info(f"Plan deleted: {plan_id}")
        return True
