"""Client management."""

from __future__ import annotations

from extensions import db
from models import Client, Quote
from schemas import ClientIn, ClientUpdate, parse_input
from services import audit
from services.errors import InvalidStateError
from services.tenant import TenantContext, get_scoped_or_404, scoped_query, stamp_business

CLIENT_NOT_FOUND = "Client introuvable"


def list_clients(ctx: TenantContext) -> list[Client]:
    return scoped_query(Client, ctx).order_by(Client.created_at.desc(), Client.id.desc()).all()


def get_client(ctx: TenantContext, client_id: int) -> Client:
    return get_scoped_or_404(Client, client_id, ctx, CLIENT_NOT_FOUND)


def create_client(ctx: TenantContext, data) -> Client:
    payload = parse_input(ClientIn, data)
    values = payload.model_dump()
    if values.get("email"):
        values["email"] = values["email"].lower()
    client = Client(**values)
    stamp_business(client, ctx)
    db.session.add(client)
    db.session.commit()
    audit.record(
        audit.CLIENT_CREATED,
        audit.LEVEL_INFO,
        ctx.user_id,
        ctx.business_id,
        "Client",
        {"first_name": client.first_name, "last_name": client.last_name, "email": client.email},
        resource_id=client.id,
    )
    return client


def update_client(ctx: TenantContext, client_id: int, data) -> Client:
    payload = parse_input(ClientUpdate, data)
    client = get_client(ctx, client_id)
    for key in payload.model_fields_set:
        value = getattr(payload, key)
        if key in ("first_name", "last_name") and value is None:
            continue
        if key == "email" and value:
            value = value.lower()
        setattr(client, key, value)
    db.session.commit()
    return client


def delete_client(ctx: TenantContext, client_id: int) -> None:
    """Hard-delete a client that no quote references."""
    client = get_client(ctx, client_id)
    if scoped_query(Quote, ctx).filter_by(client_id=client.id).first() is not None:
        raise InvalidStateError(
            "Ce client est utilisé dans des devis et ne peut pas être supprimé."
        )
    snapshot = {
        "first_name": client.first_name,
        "last_name": client.last_name,
        "email": client.email,
    }
    db.session.delete(client)
    db.session.commit()
    audit.record(
        audit.CLIENT_DELETED,
        audit.LEVEL_CRITICAL,
        ctx.user_id,
        ctx.business_id,
        "Client",
        snapshot,
        resource_id=client_id,
    )
