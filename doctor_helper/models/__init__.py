from doctor_helper.models.plan import Plan
from doctor_helper.models.user import User, UserRole, UserStatus
from doctor_helper.models.interaction import UserInteraction, InteractionType
from doctor_helper.models.system_config import SystemConfig

__all__ = [
    "Plan",
    "User",
    "UserRole",
    "UserStatus",
    "UserInteraction",
    "InteractionType",
    "SystemConfig",
]
