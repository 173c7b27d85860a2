"""
Audit trail: records subscription lifecycle and plan catalog changes to audit_logs
"""
import json
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


async def log_audit(
    db: AsyncSession,
    user_id: str,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    detail: Optional[dict[str, Any]] = None,
    ip: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    """Write one audit entry. No-op when AUDIT_LOG_ENABLED is off; failures are logged, not raised."""
    if not settings.AUDIT_LOG_ENABLED:
        return
    try:
        entry = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            detail=json.dumps(detail, ensure_ascii=False, default=str) if detail else None,
            ip=ip,
            request_id=request_id,
        )
        db.add(entry)
        await db.commit()
    except SQLAlchemyError as e:
        logger.warning("Failed to write audit log %s: %s", action, e)
        await db.rollback()
