"""Business settings of the caller's own tenant."""

from __future__ import annotations

import logging

from extensions import db
from models import Business
from schemas import BusinessUpdate, parse_input
from services import audit
from services.errors import NotFoundError
from services.tenant import TenantContext, require_business

logger = logging.getLogger(__name__)

BUSINESS_NOT_FOUND = "Institut introuvable"


def get_business(ctx: TenantContext) -> Business:
    business = db.session.get(Business, require_business(ctx))
    if business is None or not business.is_active:
        raise NotFoundError(BUSINESS_NOT_FOUND)
    return business


def update_business(ctx: TenantContext, data) -> Business:
    """Update the contact details shown on quotes and in quote emails."""
    business = get_business(ctx)
    payload = parse_input(BusinessUpdate, data)
    changes = []
    for key in sorted(payload.model_fields_set):
        value = getattr(payload, key)
        if key == "name" and value is None:
            continue
        if key == "email" and value:
            value = value.lower()
        setattr(business, key, value)
        changes.append(key)
    db.session.commit()

    logger.info("Business %s settings updated (%s)", business.id, ", ".join(changes))
    audit.record(
        audit.BUSINESS_UPDATED,
        audit.LEVEL_INFO,
        ctx.user_id,
        business.id,
        "Business",
        {"changes": changes},
        resource_id=business.id,
    )
    return business
