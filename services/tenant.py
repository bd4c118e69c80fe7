"""Tenant context and data isolation services.

Every service function receives a :class:`TenantContext` explicitly; the
helpers here turn it into mandatory ``business_id`` filters.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import g, has_request_context
from sqlalchemy import event

from extensions import db
from services.errors import NotFoundError, Unauthenticated


@dataclass(frozen=True)
class TenantContext:
    """The resolved caller: who is acting, and for which business."""

    user_id: int | None
    business_id: int


def require_business(ctx: TenantContext | None) -> int:
    """Return the business id of *ctx* or raise before any storage access."""
    if ctx is None or not ctx.business_id:
        raise Unauthenticated("Session invalide ou expirée.")
    return ctx.business_id


def scoped_query(model, ctx: TenantContext):
    """Return a query on *model* filtered to the caller's business.

    Usage::

        clients = scoped_query(Client, ctx).order_by(Client.created_at.desc()).all()
    """
    bid = require_business(ctx)
    return model.query.filter_by(business_id=bid)


def stamp_business(obj, ctx: TenantContext):
    """Set ``business_id`` on *obj* from *ctx*.

    Call before ``db.session.add()``.  Returns *obj* for chaining.
    """
    obj.business_id = require_business(ctx)
    return obj


def get_scoped_or_404(model, obj_id, ctx: TenantContext, message: str = "Introuvable"):
    """Fetch one row by PK, only if it belongs to the caller's business.

    Missing rows and rows of another business raise the same
    :class:`NotFoundError`.
    """
    bid = require_business(ctx)
    obj = db.session.get(model, obj_id) if obj_id is not None else None
    if obj is None or obj.business_id != bid:
        raise NotFoundError(message)
    return obj


class TenantSecurityError(Exception):
    """Raised when a cross-tenant write is attempted."""


def _enforce_tenant_on_flush(session, flush_context):
    """Verify that all new/dirty tenant-scoped objects match the active business.

    Backs up the explicit filters: primary isolation is ``scoped_query()`` and
    ``stamp_business()``.  It catches programming errors that bypass them.
    """
    if not has_request_context():
        # CLI, migrations, tests calling services directly
        return

    bid = getattr(g, "business_id", None)
    if bid is None:
        return

    for obj in list(session.new) + list(session.dirty):
        obj_bid = getattr(obj, "business_id", None)
        if obj_bid is not None and obj_bid != bid:
            raise TenantSecurityError(
                f"Cross-tenant write blocked: {type(obj).__name__} "
                f"has business_id={obj_bid}, active business is {bid}"
            )


def register_tenant_guards(app):
    """Register the after_flush event listener.  Call once during app init."""
    event.listen(db.session, "after_flush", _enforce_tenant_on_flush)
