from sqlalchemy import Column, String, DateTime, Text, Boolean
from sqlalchemy.sql import func
from doctor_helper.database import Base


class SystemConfig(Base):
    __tablename__ = "system_configs"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    description = Column(Text)
    is_secret = Column(Boolean, default=False, nullable=False)  # value is Fernet-encrypted
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())
