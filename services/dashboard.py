"""Headline figures for the dashboard."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from extensions import db
from models import Client, Quote
from services.tenant import TenantContext, require_business
from utils import quantize_money, to_decimal


def dashboard_stats(ctx: TenantContext) -> dict:
    """Client and quote counts plus revenue over every quote of the business.

    Revenue sums the stored totals of all quotes whatever their status.
    """
    business_id = require_business(ctx)
    total_clients = (
        db.session.query(func.count(Client.id))
        .filter(Client.business_id == business_id)
        .scalar()
    )
    total_quotes, revenue = (
        db.session.query(func.count(Quote.id), func.sum(Quote.total))
        .filter(Quote.business_id == business_id)
        .one()
    )
    total_revenue = quantize_money(to_decimal(revenue))
    average = (
        quantize_money(total_revenue / total_quotes) if total_quotes else Decimal("0.00")
    )
    return {
        "total_clients": total_clients or 0,
        "total_quotes": total_quotes or 0,
        "total_revenue": total_revenue,
        "average_quote_value": average,
    }
