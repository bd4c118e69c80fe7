"""Sequential quote numbering: ``PREFIX-YYYY-NNN`` per business and year.

The counter lives in :class:`NumberSequence`, one row per business and year,
incremented with an SQL expression under ``SELECT ... FOR UPDATE`` inside the
caller's transaction.  When no counter exists yet it is seeded from the most
recent quote of the business, so that numbering continues where existing
data left off.  Numbers already held by a quote (written by a concurrent
creator or imported) are skipped.  The sequence is zero-padded to three
digits and simply widens past 999.
"""

from __future__ import annotations

import datetime
import logging
import re
from typing import Optional

from extensions import db
from models import NumberSequence, Quote
from services.errors import NumberingError

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "DEVIS"

_NUMBER_RE = re.compile(r"^(?P<prefix>.+)-(?P<year>\d{4})-(?P<seq>\d+)$")


def format_quote_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:03d}"


def parse_quote_number(number: str) -> tuple[int, int]:
    """Return ``(year, sequence)`` of *number*; raise ``ValueError`` if malformed."""
    match = _NUMBER_RE.match(number or "")
    if not match:
        raise ValueError(f"Malformed quote number: {number!r}")
    return int(match.group("year")), int(match.group("seq"))


def _latest_quote_number(business_id: int) -> Optional[str]:
    last = (
        db.session.query(Quote.quote_number)
        .filter(Quote.business_id == business_id)
        .order_by(Quote.created_at.desc(), Quote.id.desc())
        .first()
    )
    return last[0] if last else None


def _number_taken(business_id: int, number: str) -> bool:
    return (
        db.session.query(Quote.id)
        .filter(Quote.business_id == business_id, Quote.quote_number == number)
        .first()
        is not None
    )


def _seed_value(business_id: int, year: int) -> int:
    """Last sequence already used this year according to existing quotes."""
    number = _latest_quote_number(business_id)
    if number is None:
        return 0
    try:
        last_year, last_seq = parse_quote_number(number)
    except ValueError as exc:
        logger.error("Cannot derive next number for business %s: %s", business_id, exc)
        raise NumberingError("Impossible de déterminer le numéro du devis précédent.") from exc
    if last_year != year:
        return 0
    return last_seq


def _next_sequence(business_id: int, year: int) -> int:
    """Atomically increment and return the next sequence value."""
    scope_key = str(year)
    seq = (
        NumberSequence.query.filter_by(business_id=business_id, scope_key=scope_key)
        .with_for_update()
        .first()
    )
    if not seq:
        seq = NumberSequence(
            business_id=business_id,
            scope_key=scope_key,
            last_value=_seed_value(business_id, year) + 1,
        )
        db.session.add(seq)
        db.session.flush()
        return seq.last_value
    # SQL-side increment so concurrent writers never read the same value
    seq.last_value = NumberSequence.last_value + 1
    db.session.flush()
    db.session.refresh(seq)
    return seq.last_value


def next_quote_number(
    business_id: int,
    year: Optional[int] = None,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """Reserve and return the next quote number for *business_id* in *year*.

    Must run in the same transaction as the quote insert; rolling that
    transaction back releases the number.
    """
    if year is None:
        year = datetime.date.today().year
    number = format_quote_number(prefix, year, _next_sequence(business_id, year))
    while _number_taken(business_id, number):
        logger.warning(
            "Quote number %s already used by business %s, skipping", number, business_id
        )
        number = format_quote_number(prefix, year, _next_sequence(business_id, year))
    return number
