from pydantic import BaseModel
from typing import Optional
from doctor_helper.models.interaction import InteractionType


class InteractionRequest(BaseModel):
    interactionType: InteractionType = InteractionType.CHAT


class InteractionStatsResponse(BaseModel):
    currentMonth: int
    limit: Optional[int]
    remaining: Optional[int]
    hasUnlimited: bool


class InteractionRecordResponse(BaseModel):
    canInteract: bool
    remainingInteractions: Optional[int]
    limit: Optional[int]
    currentMonth: int
    hasUnlimited: bool


class UserPlanUpdate(BaseModel):
    plan_id: str
