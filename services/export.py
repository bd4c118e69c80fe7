"""CSV export of all quotes of a business, for the accountant."""

from __future__ import annotations

import csv
import io
import logging
from typing import Optional

from sqlalchemy.orm import selectinload

from models import Quote
from services import audit
from services.tenant import TenantContext, scoped_query
from utils import format_date

logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "%d/%m/%Y"

CSV_HEADER = [
    "Numéro de Devis",
    "Date de Création",
    "Statut",
    "Client - Prénom",
    "Client - Nom",
    "Client - Email",
    "Client - Téléphone",
    "Sous-total",
    "Réduction",
    "Type Réduction",
    "Total",
    "Date d'Envoi",
    "Valide jusqu'au",
    "Notes",
    "Ligne - Nom du Service",
    "Ligne - Description",
    "Ligne - Prix Unitaire",
    "Ligne - Quantité",
    "Ligne - Total",
]

_QUOTE_COLUMNS = 14
_ITEM_COLUMNS = len(CSV_HEADER) - _QUOTE_COLUMNS


def _money(value) -> str:
    return f"{value:.2f}" if value is not None else ""


def _quote_cells(quote: Quote, date_format: str) -> list[str]:
    client = quote.client
    return [
        quote.quote_number,
        format_date(quote.created_at, date_format),
        quote.status,
        client.first_name if client else "",
        client.last_name if client else "",
        (client.email or "") if client else "",
        (client.phone or "") if client else "",
        _money(quote.subtotal),
        _money(quote.discount),
        quote.discount_type or "",
        _money(quote.total),
        format_date(quote.sent_at, date_format),
        format_date(quote.valid_until, date_format),
        quote.notes or "",
    ]


def quote_rows(quote: Quote, date_format: str = DEFAULT_DATE_FORMAT) -> list[list[str]]:
    """Rows of one quote: one per item, quote columns on the first row only.

    A quote without items yields a single row with empty item columns.
    """
    head = _quote_cells(quote, date_format)
    if not quote.items:
        return [head + [""] * _ITEM_COLUMNS]
    rows = []
    for index, item in enumerate(quote.items):
        cells = head if index == 0 else [""] * _QUOTE_COLUMNS
        rows.append(
            cells
            + [
                item.name,
                item.description or "",
                _money(item.price),
                str(item.quantity),
                _money(item.total),
            ]
        )
    return rows


def export_quotes(ctx: TenantContext, date_format: Optional[str] = None) -> str:
    """Return every quote of the business as CSV, newest first.

    Returns an empty string when the business has no quote; in that case
    nothing is audited.
    """
    date_format = date_format or DEFAULT_DATE_FORMAT
    quotes = (
        scoped_query(Quote, ctx)
        .options(selectinload(Quote.client), selectinload(Quote.items))
        .order_by(Quote.created_at.desc(), Quote.id.desc())
        .all()
    )
    if not quotes:
        return ""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    line_items = 0
    for quote in quotes:
        writer.writerows(quote_rows(quote, date_format))
        line_items += len(quote.items)
    content = buffer.getvalue().rstrip("\n")

    logger.info(
        "Exported %s quotes (%s line items) for business %s",
        len(quotes),
        line_items,
        ctx.business_id,
    )
    audit.record(
        audit.QUOTE_EXPORTED,
        audit.LEVEL_INFO,
        ctx.user_id,
        ctx.business_id,
        "Quote",
        {"quote_count": len(quotes), "total_line_items": line_items, "export_format": "CSV"},
    )
    return content
