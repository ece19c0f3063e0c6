from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from doctor_helper.database import get_db
from doctor_helper.core.plans import PlanCatalog
from doctor_helper.schemas.plan import PlanResponse

router = APIRouter()


@router.get("/plans", response_model=List[PlanResponse])
async def list_active_plans(
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """List active plans, cheapest first"""
    response.headers["Cache-Control"] = "no-store"
    return await PlanCatalog(db).get_plans(active_only=True)
