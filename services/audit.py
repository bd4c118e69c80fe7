"""Audit logging service."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import AuditLog
from utils import serialize_decimals

logger = logging.getLogger(__name__)

LEVEL_INFO = "info"
LEVEL_WARNING = "warning"
LEVEL_CRITICAL = "critical"

QUOTE_CREATED = "quote.created"
QUOTE_UPDATED = "quote.updated"
QUOTE_DELETED = "quote.deleted"
QUOTE_SENT = "quote.sent"
QUOTE_STATUS_CHANGED = "quote.status_changed"
QUOTE_EXPORTED = "quote.exported"
CLIENT_CREATED = "client.created"
CLIENT_DELETED = "client.deleted"
SERVICE_CREATED = "service.created"
SERVICE_DELETED = "service.deleted"
PACKAGE_CREATED = "package.created"
PACKAGE_DELETED = "package.deleted"
BUSINESS_UPDATED = "business.updated"


def record(
    action: str,
    level: str,
    actor_id: Optional[int],
    business_id: Optional[int],
    resource_type: str,
    metadata: Optional[dict[str, Any]] = None,
    resource_id: Optional[int] = None,
) -> bool:
    """Append an audit entry after the primary mutation has been committed.

    Commits on its own.  A failure is logged and rolled back but never
    raised, so it cannot undo or fail the operation that triggered it.
    Returns whether the entry was written.
    """
    entry = AuditLog(
        business_id=business_id,
        user_id=actor_id,
        action=action,
        level=level,
        resource_type=resource_type,
        resource_id=resource_id,
        metadata_json=json.dumps(serialize_decimals(metadata or {}), sort_keys=True),
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(
            "Audit entry %s for %s %s could not be written",
            action,
            resource_type,
            resource_id,
        )
        return False
    logger.info("audit %s [%s] business=%s resource=%s", action, level, business_id, resource_id)
    return True
