"""
Audit log for subscription lifecycle and plan catalog changes
"""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from app.core.database import Base


class AuditLog(Base):
    """Audit log table"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), nullable=False, index=True)  # actor
    action = Column(String(64), nullable=False, index=True)  # subscription.create, subscription.cancel, plan.update ...
    resource_type = Column(String(32), nullable=True, index=True)  # subscription, plan
    resource_id = Column(String(64), nullable=True)
    detail = Column(Text, nullable=True)  # JSON
    ip = Column(String(64), nullable=True)
    request_id = Column(String(64), nullable=True, index=True)  # matches X-Request-ID
    created_at = Column(DateTime(timezone=True), server_default=func.now())
