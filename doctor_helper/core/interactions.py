"""
Interaction metering

InteractionLedger  append-only log of interactions plus the monthly count query
QuotaGate          decides whether a user may interact under a plan this month
InteractionRecorder  writes a consumed interaction after the gate passed

Counting is scoped to (user_id, plan_id, month). A user who changes plan
mid-month starts from zero under the new plan; rows recorded under the old
plan stay in the ledger but are not summed.

Check and record are two separate round trips with no lock or conditional
write between them, so concurrent requests for the same user can both pass
the gate on the last free slot. The limit is a soft cap. Closing that race
needs a single conditional insert (or a locked per-month counter row) and
would change behavior under load.
"""
from dataclasses import dataclass
from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from doctor_helper.config import get_settings
from doctor_helper.core.exceptions import PlanNotFound, StoreUnavailable, PersistenceError
from doctor_helper.core.plans import PlanCatalog
from doctor_helper.models.interaction import UserInteraction, InteractionType
import logging

settings = get_settings()
logger = logging.getLogger(__name__)


def current_utc_month(now: Optional[datetime] = None) -> str:
    """YYYY-MM of the given instant in UTC"""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m")


@dataclass
class InteractionCheck:
    can_interact: bool
    remaining_interactions: Optional[int] = None
    limit: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        # Unlimited and unknown results carry no remaining/limit keys
        data: Dict[str, Any] = {"canInteract": self.can_interact}
        if self.remaining_interactions is not None:
            data["remainingInteractions"] = self.remaining_interactions
        if self.limit is not None:
            data["limit"] = self.limit
        return data


@dataclass
class InteractionStats:
    current_month: int
    limit: Optional[int]
    remaining: Optional[int]

    @property
    def has_unlimited(self) -> bool:
        return self.limit is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentMonth": self.current_month,
            "limit": self.limit,
            "remaining": self.remaining,
            "hasUnlimited": self.has_unlimited,
        }


class InteractionLedger:
    """Durable append-only store of interactions"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        user_id: str,
        plan_id: str,
        interaction_type: str = InteractionType.CHAT.value,
        request_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Insert one interaction stamped with the current UTC month.
        Returns False when request_id was already recorded for this user.
        Raises PersistenceError when the store rejects the write.
        """
        now = now or datetime.now(timezone.utc)
        month = current_utc_month(now)
        interaction_type = InteractionType(interaction_type).value

        logger.info(
            f"Recording interaction: user={user_id} plan={plan_id} "
            f"type={interaction_type} month={month} request_id={request_id}"
        )

        try:
            if request_id:
                existing = await self.db.execute(
                    select(UserInteraction.id).where(
                        and_(
                            UserInteraction.user_id == user_id,
                            UserInteraction.request_id == request_id,
                        )
                    )
                )
                if existing.scalar_one_or_none():
                    logger.info(f"Interaction {request_id} for user {user_id} already recorded, skipping")
                    return False

            self.db.add(UserInteraction(
                user_id=user_id,
                plan_id=plan_id,
                interaction_type=interaction_type,
                month=month,
                request_id=request_id,
                created_at=now,
            ))
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if request_id:
                # Lost a race with a concurrent insert of the same request
                logger.info(f"Interaction {request_id} for user {user_id} inserted concurrently, skipping")
                return False
            logger.error(f"Error recording interaction for user {user_id}: {e}")
            raise PersistenceError("Failed to record interaction") from e
        except (SQLAlchemyError, OSError) as e:
            await self.db.rollback()
            logger.error(f"Error recording interaction for user {user_id}: {e}")
            raise PersistenceError("Failed to record interaction") from e

        return True

    async def count_for_month(self, user_id: str, plan_id: str, month: str) -> int:
        """Number of interactions matching user, plan and month exactly"""
        try:
            result = await self.db.execute(
                select(func.count(UserInteraction.id)).where(
                    and_(
                        UserInteraction.user_id == user_id,
                        UserInteraction.plan_id == plan_id,
                        UserInteraction.month == month,
                    )
                )
            )
        except (SQLAlchemyError, OSError) as e:
            await self.db.rollback()
            raise StoreUnavailable("Failed to count interactions") from e
        return result.scalar() or 0

    async def counts_by_user_for_month(self, month: str) -> Dict[str, int]:
        """Interactions per user for a month, across all plans"""
        result = await self.db.execute(
            select(UserInteraction.user_id, func.count(UserInteraction.id))
            .where(UserInteraction.month == month)
            .group_by(UserInteraction.user_id)
        )
        return {row[0]: row[1] for row in result.all()}

    async def usage_summary(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Totals, unique users and per-day chart data for the admin usage screen"""
        conditions = []
        if start_date:
            conditions.append(UserInteraction.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
        if end_date:
            end_exclusive = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
            conditions.append(UserInteraction.created_at < end_exclusive)

        by_type_query = (
            select(UserInteraction.interaction_type, func.count(UserInteraction.id))
            .group_by(UserInteraction.interaction_type)
        )
        rows_query = select(
            UserInteraction.user_id,
            UserInteraction.interaction_type,
            UserInteraction.created_at,
        )
        if conditions:
            by_type_query = by_type_query.where(and_(*conditions))
            rows_query = rows_query.where(and_(*conditions))

        by_type_result = await self.db.execute(by_type_query)
        by_type = {t.value: 0 for t in InteractionType}
        by_type.update({row[0]: row[1] for row in by_type_result.all()})

        rows_result = await self.db.execute(rows_query)

        daily: Dict[str, Dict[str, Any]] = {}
        users = set()
        for user_id, interaction_type, created_at in rows_result.all():
            users.add(user_id)
            day = created_at.date().isoformat()
            bucket = daily.setdefault(day, {"interactions": 0, "users": set(), "by_type": {}})
            bucket["interactions"] += 1
            bucket["users"].add(user_id)
            bucket["by_type"][interaction_type] = bucket["by_type"].get(interaction_type, 0) + 1

        chart_data: List[Dict[str, Any]] = [
            {
                "date": day,
                "interactions": bucket["interactions"],
                "uniqueUsers": len(bucket["users"]),
                "byType": bucket["by_type"],
            }
            for day, bucket in sorted(daily.items())
        ]

        return {
            "totalInteractions": sum(by_type.values()),
            "byType": by_type,
            "uniqueUsers": len(users),
            "chartData": chart_data,
        }


class QuotaGate:
    """Monthly quota check for a user under a plan"""

    def __init__(self, db: AsyncSession, fail_open: Optional[bool] = None):
        self.catalog = PlanCatalog(db)
        self.ledger = InteractionLedger(db)
        self.fail_open = settings.METERING_FAIL_OPEN if fail_open is None else fail_open

    async def can_interact(
        self,
        user_id: str,
        plan_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> InteractionCheck:
        """
        Unknown plan: deny (no entitlement can be established).
        Unlimited plan: allow, no remaining/limit.
        Limited plan: allow while this month's count is below the limit.
        Store or other unexpected failure: allow when fail_open, deny otherwise.
        """
        try:
            plan = await self.catalog.require_plan(plan_id)

            if plan.is_unlimited:
                return InteractionCheck(can_interact=True)

            limit = plan.interactions_limit
            count = await self.ledger.count_for_month(user_id, plan.id, current_utc_month(now))
        except PlanNotFound:
            logger.info(f"Plan {plan_id} not found for user {user_id}, denying interaction")
            return InteractionCheck(can_interact=False)
        except Exception:
            if self.fail_open:
                logger.warning(
                    f"Interaction limit check failed for user {user_id}, allowing (fail open)",
                    exc_info=True,
                )
                return InteractionCheck(can_interact=True)
            logger.warning(
                f"Interaction limit check failed for user {user_id}, denying (fail closed)",
                exc_info=True,
            )
            return InteractionCheck(can_interact=False)

        remaining = max(0, limit - count)
        allowed = count < limit
        if not allowed:
            logger.info(f"User {user_id} reached limit {limit} on plan {plan_id}")

        return InteractionCheck(can_interact=allowed, remaining_interactions=remaining, limit=limit)

    async def get_stats(
        self,
        user_id: str,
        plan_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> InteractionStats:
        """Usage for display. Never raises; falls back to a zero count."""
        try:
            plan = await self.catalog.find_plan_by_id(plan_id)
        except Exception:
            logger.error(f"Error loading plan {plan_id} for interaction stats", exc_info=True)
            return InteractionStats(current_month=0, limit=None, remaining=None)

        if not plan:
            return InteractionStats(current_month=0, limit=None, remaining=None)

        limit = plan.interactions_limit
        try:
            count = await self.ledger.count_for_month(user_id, plan.id, current_utc_month(now))
        except Exception:
            logger.error(f"Error counting interactions for user {user_id}, defaulting to 0", exc_info=True)
            count = 0

        remaining = None if limit is None else max(0, limit - count)
        return InteractionStats(current_month=count, limit=limit, remaining=remaining)


class InteractionRecorder:
    """Records a consumed interaction. Failures never reach the caller."""

    def __init__(self, db: AsyncSession):
        self.ledger = InteractionLedger(db)

    async def record(
        self,
        user_id: str,
        plan_id: str,
        interaction_type: str = InteractionType.CHAT.value,
        request_id: Optional[str] = None,
    ) -> bool:
        try:
            return await self.ledger.record(user_id, plan_id, interaction_type, request_id=request_id)
        except PersistenceError:
            logger.error(
                f"Failed to record {interaction_type} interaction for user {user_id}, continuing",
                exc_info=True,
            )
            return False
