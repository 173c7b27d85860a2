"""
Per-user storage accumulator
"""
from sqlalchemy import Column, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class UserStorage(Base):
    """User storage usage table"""
    __tablename__ = "user_storage"

    user_id = Column(String(36), ForeignKey("users.id"), primary_key=True)
    used_storage = Column(Float, nullable=False, default=0)  # GB, same unit as SubscriptionPlan.storage_limit
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="storage")
