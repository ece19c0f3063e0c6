from sqlalchemy import Column, String, DateTime, Integer, Numeric, JSON, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from doctor_helper.database import Base
import uuid


class Plan(Base):
    __tablename__ = "plans"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False, unique=True, index=True)
    description = Column(String)
    features = Column(JSON, default=list)
    monthly_price = Column(Numeric(10, 2), default=0, nullable=False)
    yearly_price = Column(Numeric(10, 2), default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_popular = Column(Boolean, default=False, nullable=False)
    interactions_limit = Column(Integer, nullable=True)  # null = unlimited
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    # Relationships
    users = relationship("User", back_populates="plan_ref", passive_deletes=True)

    @property
    def is_unlimited(self) -> bool:
        return self.interactions_limit is None
