from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class PlanBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    features: List[str] = []
    monthly_price: float = Field(0, ge=0)
    yearly_price: float = Field(0, ge=0)
    is_active: bool = True
    is_popular: bool = False
    interactions_limit: Optional[int] = Field(None, ge=0)  # null = unlimited


class PlanCreate(PlanBase):
    pass


class PlanUpdate(BaseModel):
    """Only fields present in the request body are applied"""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    features: Optional[List[str]] = None
    monthly_price: Optional[float] = Field(None, ge=0)
    yearly_price: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None
    is_popular: Optional[bool] = None
    interactions_limit: Optional[int] = Field(None, ge=0)


class PlanResponse(PlanBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
