"""Resolution of the acting user and business from the Flask session."""

from __future__ import annotations

import logging
from typing import Optional

from flask import g, session

from extensions import db
from models import Business, User
from services.errors import Unauthenticated
from services.tenant import TenantContext

logger = logging.getLogger(__name__)


def get_current_user() -> Optional[User]:
    """Return the user loaded for this request, or None."""
    return getattr(g, "current_user", None)


def load_current_user() -> None:
    """Set ``g.current_user`` and ``g.business_id`` from the session.

    Inactive users and users of inactive businesses are treated as logged out.
    """
    g.current_user = None
    g.business_id = None
    user_id = session.get("user_id")
    if not user_id:
        return
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        session.clear()
        return
    business = db.session.get(Business, user.business_id)
    if business is None or not business.is_active:
        logger.warning("User %s belongs to an inactive business", user.id)
        return
    g.current_user = user
    g.business_id = business.id


def resolve_context() -> TenantContext:
    """Return the caller's :class:`TenantContext` or raise ``Unauthenticated``."""
    user = get_current_user()
    business_id = getattr(g, "business_id", None)
    if user is None or business_id is None:
        raise Unauthenticated("Non authentifié.")
    return TenantContext(user_id=user.id, business_id=business_id)
