from sqlalchemy import Column, String, DateTime, Index, UniqueConstraint
from sqlalchemy.sql import func
import enum
from doctor_helper.database import Base
import uuid


class InteractionType(str, enum.Enum):
    CHAT = "chat"
    IMAGE_ANALYSIS = "image_analysis"
    HEALTH_REPORT = "health_report"


class UserInteraction(Base):
    """One metered interaction. Rows are inserted once and never updated."""
    __tablename__ = "user_interactions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # No FK on user_id/plan_id: the ledger outlives users and plans
    user_id = Column(String, nullable=False, index=True)
    plan_id = Column(String, nullable=False)
    interaction_type = Column(String(32), nullable=False, default=InteractionType.CHAT.value)
    month = Column(String(7), nullable=False)  # YYYY-MM
    request_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __table_args__ = (
        Index("ix_user_interactions_user_plan_month", "user_id", "plan_id", "month"),
        UniqueConstraint("user_id", "request_id", name="uq_user_interactions_user_request"),
    )
