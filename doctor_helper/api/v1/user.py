from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from doctor_helper.database import get_db
from doctor_helper.models.user import User
from doctor_helper.middleware.auth import get_current_active_user
from doctor_helper.core.exceptions import StoreUnavailable
from doctor_helper.core.gating import InteractionGate
from doctor_helper.core.interactions import QuotaGate
from doctor_helper.core.plans import PlanCatalog
from doctor_helper.schemas.interaction import (
    InteractionRequest,
    InteractionStatsResponse,
    InteractionRecordResponse,
)
from doctor_helper.schemas.plan import PlanResponse
from doctor_helper.api.v1.chat import get_request_id
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


async def _resolve_plan_id(db: AsyncSession, user: User) -> Optional[str]:
    user_id = user.id
    try:
        plan = await PlanCatalog(db).resolve_plan(user_id, user.plan_id, user.plan)
    except StoreUnavailable:
        logger.error(f"Error resolving plan for user {user_id}", exc_info=True)
        return None
    return plan.id if plan else None


@router.get("/interaction-limit", response_model=InteractionStatsResponse)
async def get_interaction_limit(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """This month's usage against the user's plan. Falls back to zeros instead of failing."""
    user_id = current_user.id
    plan_id = await _resolve_plan_id(db, current_user)
    stats = await QuotaGate(db).get_stats(user_id, plan_id)
    return stats.to_dict()


@router.post("/interaction-limit", response_model=InteractionRecordResponse)
async def record_interaction(
    interaction: InteractionRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id),
):
    """Check the limit and consume one interaction (429 when the limit is reached)"""
    outcome = await InteractionGate(db).admit(
        current_user, interaction.interactionType.value, request_id=request_id
    )

    stats = await QuotaGate(db).get_stats(outcome.user_id, outcome.plan_id)
    return InteractionRecordResponse(
        canInteract=True,
        remainingInteractions=stats.remaining,
        limit=stats.limit,
        currentMonth=stats.current_month,
        hasUnlimited=stats.has_unlimited,
    )


@router.get("/plan", response_model=PlanResponse)
async def get_user_plan(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """The plan the current user is entitled to"""
    plan = await PlanCatalog(db).resolve_user_plan(current_user)
    if not plan:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plan not found"
        )
    return plan
