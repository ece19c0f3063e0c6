# Pydantic schemas
from doctor_helper.schemas.auth import UserCreate, UserLogin, UserResponse, TokenResponse, RefreshTokenRequest
from doctor_helper.schemas.plan import PlanCreate, PlanUpdate, PlanResponse
from doctor_helper.schemas.interaction import (
    InteractionRequest, InteractionStatsResponse, InteractionRecordResponse, UserPlanUpdate
)
from doctor_helper.schemas.chat import ChatMessage, HealthReportContext, ChatRequest, ChatResponse

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "TokenResponse", "RefreshTokenRequest",
    "PlanCreate", "PlanUpdate", "PlanResponse",
    "InteractionRequest", "InteractionStatsResponse", "InteractionRecordResponse", "UserPlanUpdate",
    "ChatMessage", "HealthReportContext", "ChatRequest", "ChatResponse",
]
