"""Quote lifecycle: create, edit, send, accept/reject, delete.

Only the submitted line inputs (service/package id, quantity, optional
service price) are trusted.  Line prices and every total are recomputed
from the catalogue by :mod:`services.pricing` and persisted as an immutable
snapshot together with the quote number, in a single transaction.

Status flow::

    DRAFT --send--> SENT --> ACCEPTED
                         \\-> REJECTED
"""

from __future__ import annotations

import datetime
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

import mailer
from config_models import AppConfig, EmailConfig
from extensions import db
from models import (
    DISCOUNT_PERCENTAGE,
    QUOTE_ACCEPTED,
    QUOTE_DRAFT,
    QUOTE_REJECTED,
    QUOTE_SENT,
    Client,
    Quote,
    QuoteItem,
)
from schemas import QuoteIn, QuoteStatusIn, QuoteUpdate, parse_input
from services import audit
from services.catalogue import get_active_service, package_line
from services.errors import (
    ExternalServiceError,
    InvalidStateError,
    NotFoundError,
    NumberingError,
    ValidationError,
)
from services.numbering import next_quote_number
from services.pricing import (
    PricedLine,
    QuoteTotals,
    ServiceLine,
    compute_quote_totals,
    discounted_totals,
    edit_line,
)
from services.quote_email import render_quote_email
from services.tenant import TenantContext, get_scoped_or_404, scoped_query, stamp_business
from utils import utc_now

logger = logging.getLogger(__name__)

QUOTE_NOT_FOUND = "Devis introuvable"
MAX_NUMBERING_ATTEMPTS = 3

_ALLOWED_TRANSITIONS = {
    QUOTE_SENT: {QUOTE_ACCEPTED, QUOTE_REJECTED},
}


def list_quotes(ctx: TenantContext) -> list[Quote]:
    return scoped_query(Quote, ctx).order_by(Quote.created_at.desc(), Quote.id.desc()).all()


def get_quote(ctx: TenantContext, quote_id: int) -> Quote:
    return get_scoped_or_404(Quote, quote_id, ctx, QUOTE_NOT_FOUND)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolve_client(ctx: TenantContext, client_id: int) -> Client:
    client = scoped_query(Client, ctx).filter_by(id=client_id).first()
    if client is None:
        raise ValidationError(
            "Données invalides.", field_errors={"client_id": ["Client introuvable"]}
        )
    return client


def _build_lines(ctx: TenantContext, items) -> list:
    """Turn submitted line inputs into pricing lines read from the catalogue."""
    lines = []
    for item in items:
        if item.package_id is not None:
            line = package_line(ctx, item.package_id)
        else:
            service = get_active_service(ctx, item.service_id)
            line = ServiceLine(
                name=service.name,
                unit_price=service.price,
                description=service.description,
                service_id=service.id,
            )
        # no-ops on package lines
        line = edit_line(line, "quantity", item.quantity)
        if item.price is not None:
            line = edit_line(line, "price", item.price)
        if item.name:
            line = edit_line(line, "name", item.name)
        if item.description is not None:
            line = edit_line(line, "description", item.description)
        lines.append(line)
    return lines


def _snapshot_lines(quote: Quote) -> list[PricedLine]:
    return [
        PricedLine(
            name=item.name,
            description=item.description,
            unit_price=item.price,
            quantity=item.quantity,
            line_total=item.total,
            package_discount=item.package_discount,
            service_id=item.service_id,
            package_id=item.package_id,
        )
        for item in quote.items
    ]


def _quote_items(ctx: TenantContext, totals: QuoteTotals) -> list[QuoteItem]:
    items = []
    for position, line in enumerate(totals.lines):
        item = QuoteItem(
            service_id=line.service_id,
            package_id=line.package_id,
            name=line.name,
            description=line.description,
            price=line.unit_price,
            quantity=line.quantity,
            total=line.line_total,
            package_discount=line.package_discount,
            position=position,
        )
        stamp_business(item, ctx)
        items.append(item)
    return items


def _apply_totals(quote: Quote, totals: QuoteTotals) -> None:
    quote.subtotal = totals.subtotal
    quote.package_discounts_total = totals.package_discounts_total
    quote.discount = totals.discount
    quote.discount_type = totals.discount_type
    quote.discount_amount = totals.discount_amount
    quote.total = totals.total


def _totals_metadata(quote: Quote) -> dict:
    return {
        "quote_number": quote.quote_number,
        "client_id": quote.client_id,
        "subtotal": quote.subtotal,
        "total": quote.total,
        "items": len(quote.items),
    }


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def create_quote(ctx: TenantContext, data, app_cfg: Optional[AppConfig] = None) -> Quote:
    """Price and persist a new DRAFT quote with the next free number."""
    app_cfg = app_cfg or AppConfig()
    payload = parse_input(QuoteIn, data)
    client = _resolve_client(ctx, payload.client_id)
    client_id = client.id
    totals = compute_quote_totals(
        _build_lines(ctx, payload.items), payload.discount, payload.discount_type
    )
    today = datetime.date.today()
    valid_until = payload.valid_until or today + datetime.timedelta(
        days=app_cfg.quote_validity_days
    )

    for attempt in range(1, MAX_NUMBERING_ATTEMPTS + 1):
        try:
            quote = Quote(
                client_id=client_id,
                quote_number=next_quote_number(
                    ctx.business_id, today.year, app_cfg.quote_prefix
                ),
                status=QUOTE_DRAFT,
                valid_until=valid_until,
                notes=payload.notes,
            )
            stamp_business(quote, ctx)
            _apply_totals(quote, totals)
            quote.items.extend(_quote_items(ctx, totals))
            db.session.add(quote)
            db.session.commit()
            break
        except NumberingError:
            db.session.rollback()
            raise
        except IntegrityError:
            db.session.rollback()
            logger.warning(
                "Quote number conflict for business %s (attempt %s/%s)",
                ctx.business_id,
                attempt,
                MAX_NUMBERING_ATTEMPTS,
            )
    else:
        raise NumberingError("Impossible d'attribuer un numéro de devis. Veuillez réessayer.")

    logger.info("Quote %s created for business %s", quote.quote_number, ctx.business_id)
    audit.record(
        audit.QUOTE_CREATED,
        audit.LEVEL_INFO,
        ctx.user_id,
        ctx.business_id,
        "Quote",
        _totals_metadata(quote),
        resource_id=quote.id,
    )
    return quote


def update_quote(ctx: TenantContext, quote_id: int, data) -> Quote:
    """Edit a DRAFT quote; totals are recomputed and items replaced atomically.

    Without a new item list the stored subtotal and package discounts are
    kept as they are and only the global discount is applied again.
    """
    quote = get_quote(ctx, quote_id)
    if not quote.is_editable:
        raise InvalidStateError("Impossible de modifier un devis déjà envoyé")
    payload = parse_input(QuoteUpdate, data)

    fields = payload.model_fields_set
    client_id = quote.client_id
    if "client_id" in fields and payload.client_id is not None:
        client_id = _resolve_client(ctx, payload.client_id).id

    discount = payload.discount if payload.discount is not None else quote.discount
    discount_type = payload.discount_type or quote.discount_type
    if discount_type == DISCOUNT_PERCENTAGE and discount > 100:
        raise ValidationError(
            "Données invalides.",
            field_errors={"discount": ["Le pourcentage doit être entre 0 et 100"]},
        )
    if payload.items is not None:
        totals = compute_quote_totals(_build_lines(ctx, payload.items), discount, discount_type)
        new_items = _quote_items(ctx, totals)
    else:
        totals = discounted_totals(
            _snapshot_lines(quote),
            quote.subtotal,
            quote.package_discounts_total,
            discount,
            discount_type,
        )
        new_items = None

    quote.client_id = client_id
    if "valid_until" in fields:
        quote.valid_until = payload.valid_until
    if "notes" in fields:
        quote.notes = payload.notes
    _apply_totals(quote, totals)
    if new_items is not None:
        quote.items.clear()
        db.session.flush()
        quote.items.extend(new_items)
    db.session.commit()

    logger.info("Quote %s updated", quote.quote_number)
    audit.record(
        audit.QUOTE_UPDATED,
        audit.LEVEL_INFO,
        ctx.user_id,
        ctx.business_id,
        "Quote",
        {**_totals_metadata(quote), "changes": sorted(fields)},
        resource_id=quote.id,
    )
    return quote


def send_quote(
    ctx: TenantContext,
    quote_id: int,
    email_cfg: EmailConfig,
    app_cfg: Optional[AppConfig] = None,
) -> Quote:
    """Email a DRAFT quote to its client and mark it SENT.

    The status only changes once the mail transport succeeded (or the send
    was simulated because email is disabled).
    """
    app_cfg = app_cfg or AppConfig()
    quote = get_quote(ctx, quote_id)
    if quote.status != QUOTE_DRAFT:
        raise InvalidStateError("Seuls les devis en brouillon peuvent être envoyés")
    recipient = quote.client.email if quote.client else None
    if not recipient:
        raise ValidationError("Le client n'a pas d'adresse email")

    subject, html_body = render_quote_email(quote, app_cfg)
    simulation = False
    if email_cfg.enabled:
        try:
            mailer.send_html_email(email_cfg, recipient, subject, html_body)
        except mailer.MailerError as exc:
            db.session.rollback()
            logger.error("Sending quote %s failed: %s", quote.quote_number, exc)
            raise ExternalServiceError(
                "Erreur lors de l'envoi de l'email. Veuillez réessayer."
            ) from exc
    elif email_cfg.simulate_when_disabled:
        simulation = True
        logger.info("[SIMULATION] Quote %s would be sent to %s", quote.quote_number, recipient)
    else:
        raise ExternalServiceError("L'envoi d'emails n'est pas configuré")

    quote.status = QUOTE_SENT
    quote.sent_at = utc_now()
    db.session.commit()

    logger.info("Quote %s sent to %s", quote.quote_number, recipient)
    audit.record(
        audit.QUOTE_SENT,
        audit.LEVEL_INFO,
        ctx.user_id,
        ctx.business_id,
        "Quote",
        {
            "quote_number": quote.quote_number,
            "recipient": recipient,
            "total": quote.total,
            "simulation": simulation,
        },
        resource_id=quote.id,
    )
    return quote


def update_quote_status(ctx: TenantContext, quote_id: int, data) -> Quote:
    payload = parse_input(QuoteStatusIn, data)
    quote = get_quote(ctx, quote_id)
    previous = quote.status
    if payload.status not in _ALLOWED_TRANSITIONS.get(previous, set()):
        raise InvalidStateError(
            f"Transition de statut impossible : {previous} → {payload.status}"
        )
    quote.status = payload.status
    db.session.commit()
    audit.record(
        audit.QUOTE_STATUS_CHANGED,
        audit.LEVEL_INFO,
        ctx.user_id,
        ctx.business_id,
        "Quote",
        {"quote_number": quote.quote_number, "from": previous, "to": quote.status},
        resource_id=quote.id,
    )
    return quote


def delete_quote(ctx: TenantContext, quote_id: int) -> None:
    """Delete a quote and its items.

    Existence is checked within the tenant first, then the delete itself is
    filtered by the tenant again.
    """
    quote = get_quote(ctx, quote_id)
    snapshot = {
        "quote_number": quote.quote_number,
        "client_id": quote.client_id,
        "status": quote.status,
        "total": quote.total,
        "items": len(quote.items),
    }
    scoped_query(QuoteItem, ctx).filter_by(quote_id=quote_id).delete(
        synchronize_session=False
    )
    deleted = scoped_query(Quote, ctx).filter_by(id=quote_id).delete(
        synchronize_session=False
    )
    if deleted != 1:
        db.session.rollback()
        raise NotFoundError(QUOTE_NOT_FOUND)
    db.session.commit()

    logger.info("Quote %s deleted", snapshot["quote_number"])
    audit.record(
        audit.QUOTE_DELETED,
        audit.LEVEL_CRITICAL,
        ctx.user_id,
        ctx.business_id,
        "Quote",
        snapshot,
        resource_id=quote_id,
    )
