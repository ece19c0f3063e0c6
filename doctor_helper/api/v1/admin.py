from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional
from datetime import date, datetime
from pydantic import BaseModel
from doctor_helper.database import get_db
from doctor_helper.models.user import User
from doctor_helper.middleware.auth import get_current_admin_user
from doctor_helper.core.plans import PlanCatalog
from doctor_helper.core.interactions import InteractionLedger, current_utc_month
from doctor_helper.core.system_config import (
    list_configs,
    set_config_value,
    parse_bool,
    METERING_FAIL_OPEN,
)
from doctor_helper.schemas.plan import PlanCreate, PlanUpdate, PlanResponse
from doctor_helper.schemas.interaction import UserPlanUpdate
from doctor_helper.api.v1.auth import user_to_response
from doctor_helper.schemas.auth import UserResponse

router = APIRouter()

NULLABLE_PLAN_FIELDS = {"interactions_limit", "description"}


# Schemas
class UserListResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str]
    role: str
    status: str
    plan_id: Optional[str]
    plan: Optional[str]
    created_at: Optional[datetime]
    interactions_this_month: int


class ConfigUpdate(BaseModel):
    value: str
    description: Optional[str] = None


# Plans
@router.get("/plans", response_model=List[PlanResponse])
async def list_plans(
    current_admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """List all plans, active and inactive"""
    return await PlanCatalog(db).get_plans()


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    plan_data: PlanCreate,
    current_admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a plan"""
    catalog = PlanCatalog(db)
    if await catalog.find_plan_by_title(plan_data.title):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A plan with this title already exists"
        )
    return await catalog.add_plan(plan_data.model_dump())


@router.put("/plans/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: str,
    plan_data: PlanUpdate,
    current_admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """Update a plan; send interactions_limit: null to make it unlimited"""
    catalog = PlanCatalog(db)
    updates = {
        field: value
        for field, value in plan_data.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_PLAN_FIELDS
    }

    if updates.get("title"):
        existing = await catalog.find_plan_by_title(updates["title"])
        if existing and existing.id != plan_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A plan with this title already exists"
            )

    plan = await catalog.update_plan(plan_id, updates)
    if not plan:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plan not found"
        )
    return plan


@router.delete("/plans/{plan_id}")
async def delete_plan(
    plan_id: str,
    current_admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a plan. Recorded interactions keep their plan_id."""
    if not await PlanCatalog(db).delete_plan(plan_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plan not found"
        )
    return {"message": "Plan deleted successfully"}


# Users
@router.get("/users", response_model=List[UserListResponse])
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """List users with this month's interaction count"""
    result = await db.execute(
        select(User).order_by(User.created_at.desc()).offset(skip).limit(limit)
    )
    users = result.scalars().all()
    counts = await InteractionLedger(db).counts_by_user_for_month(current_utc_month())

    return [
        UserListResponse(
            **user_to_response(user).model_dump(),
            interactions_this_month=counts.get(user.id, 0),
        )
        for user in users
    ]


@router.put("/users/{user_id}/plan", response_model=UserResponse)
async def update_user_plan(
    user_id: str,
    plan_update: UserPlanUpdate,
    current_admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Move a user to another plan.
    Counting restarts under the new plan; earlier interactions stay recorded under the old one.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    plan = await PlanCatalog(db).find_plan_by_id(plan_update.plan_id)
    if not plan:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plan not found"
        )

    user.plan_id = plan.id
    user.plan = plan.title  # keep the legacy title column in sync
    await db.commit()
    await db.refresh(user)

    return user_to_response(user)


# Usage
@router.get("/usage")
async def get_usage(
    start: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    end: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    current_admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """Interaction analytics from the ledger"""
    if start and end and start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end"
        )
    return await InteractionLedger(db).usage_summary(start, end)


# Configs
@router.get("/configs")
async def get_configs(
    current_admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """Get all system configurations (secrets masked)"""
    return await list_configs(db)


@router.put("/configs/{key}")
async def update_config(
    key: str,
    config_update: ConfigUpdate,
    current_admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """Create or update a system configuration"""
    if key == METERING_FAIL_OPEN:
        try:
            parse_bool(config_update.value)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await set_config_value(db, key, config_update.value, config_update.description)
    return {"message": "Configuration updated successfully"}
