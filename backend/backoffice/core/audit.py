"""
Back-office ledger - audit sink
Best-effort audit trail written after the business transaction commits.
"""

import logging
from typing import Any, Optional

from backoffice.core import database
from backoffice.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    """Coerce Decimal/datetime/enum values for the JSON column"""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, "value"):
        return value.value
    return str(value)


async def log_audit(
    action: str,
    entity_type: str,
    entity_id: Optional[int],
    description: str,
    user: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> None:
    """
    Record an audit entry in a separate session.

    Failures are logged and swallowed; the caller's operation has already
    been committed and is never affected.
    """
    try:
        async with database.AsyncSessionLocal() as session:
            session.add(AuditLog(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                description=description,
                user_email=user,
                metadata_=_jsonable(metadata) if metadata else None,
            ))
            await session.commit()
    except Exception:
        logger.exception(f"[Audit] failed to record {action} for {entity_type}#{entity_id}")
