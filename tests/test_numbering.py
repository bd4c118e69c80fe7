"""Quote numbering tests."""

import datetime
from unittest.mock import patch

import pytest

from extensions import db
from models import NumberSequence, Quote
from services import numbering, quotes
from services.errors import NotFoundError, NumberingError
from services.numbering import format_quote_number, next_quote_number, parse_quote_number
from tests.conftest import quote_payload


def _legacy_quote(ctx, client_id, number):
    quote = Quote(business_id=ctx.business_id, client_id=client_id, quote_number=number)
    db.session.add(quote)
    db.session.commit()
    return quote


class TestFormatting:
    def test_format_pads_to_three_digits(self):
        assert format_quote_number("DEVIS", 2025, 7) == "DEVIS-2025-007"

    def test_format_widens_past_999(self):
        assert format_quote_number("DEVIS", 2025, 1000) == "DEVIS-2025-1000"

    def test_parse(self):
        assert parse_quote_number("DEVIS-2024-042") == (2024, 42)

    @pytest.mark.parametrize("number", ["", "DEVIS-42", "DEVIS-24-001", "DEVIS-2025-abc"])
    def test_parse_rejects_malformed(self, number):
        with pytest.raises(ValueError):
            parse_quote_number(number)


class TestNumbering:
    def test_sequence_per_business_and_year(self, ctx, other_ctx):
        assert next_quote_number(ctx.business_id, 2025) == "DEVIS-2025-001"
        assert next_quote_number(ctx.business_id, 2025) == "DEVIS-2025-002"
        assert next_quote_number(other_ctx.business_id, 2025) == "DEVIS-2025-001"
        assert next_quote_number(ctx.business_id, 2026) == "DEVIS-2026-001"

    def test_custom_prefix(self, ctx):
        assert next_quote_number(ctx.business_id, 2025, prefix="Q") == "Q-2025-001"

    def test_seeded_from_latest_quote(self, ctx, sample_data):
        _legacy_quote(ctx, sample_data["client_id"], "DEVIS-2025-041")
        assert next_quote_number(ctx.business_id, 2025) == "DEVIS-2025-042"

    def test_new_year_restarts(self, ctx, sample_data):
        _legacy_quote(ctx, sample_data["client_id"], "DEVIS-2024-120")
        assert next_quote_number(ctx.business_id, 2025) == "DEVIS-2025-001"

    def test_widens_past_999(self, ctx):
        db.session.add(
            NumberSequence(business_id=ctx.business_id, scope_key="2025", last_value=999)
        )
        db.session.commit()
        assert next_quote_number(ctx.business_id, 2025) == "DEVIS-2025-1000"

    def test_fails_closed_on_unparseable_previous_number(self, ctx, sample_data):
        _legacy_quote(ctx, sample_data["client_id"], "LEGACY-42")
        with pytest.raises(NumberingError):
            next_quote_number(ctx.business_id, 2025)

    def test_create_fails_closed_without_creating(self, ctx, sample_data):
        _legacy_quote(ctx, sample_data["client_id"], "LEGACY-42")
        with pytest.raises(NumberingError):
            quotes.create_quote(ctx, quote_payload(sample_data))
        assert Quote.query.filter_by(business_id=ctx.business_id).count() == 1

    def test_created_quotes_are_sequential(self, ctx, sample_data, other_ctx, other_data):
        year = datetime.date.today().year
        first = quotes.create_quote(ctx, quote_payload(sample_data))
        second = quotes.create_quote(ctx, quote_payload(sample_data))
        foreign = quotes.create_quote(other_ctx, quote_payload(other_data))
        assert first.quote_number == f"DEVIS-{year}-001"
        assert second.quote_number == f"DEVIS-{year}-002"
        assert foreign.quote_number == f"DEVIS-{year}-001"

    def test_failed_creation_consumes_no_number(self, ctx, sample_data):
        year = datetime.date.today().year
        with pytest.raises(NotFoundError):
            quotes.create_quote(
                ctx, quote_payload(sample_data, items=[{"service_id": 99999}])
            )
        quote = quotes.create_quote(ctx, quote_payload(sample_data))
        assert quote.quote_number == f"DEVIS-{year}-001"


class TestConcurrentCreation:
    def test_lagging_counter_skips_used_numbers(self, ctx, sample_data):
        year = datetime.date.today().year
        db.session.add(
            NumberSequence(business_id=ctx.business_id, scope_key=str(year), last_value=0)
        )
        db.session.commit()
        _legacy_quote(ctx, sample_data["client_id"], f"DEVIS-{year}-001")
        quote = quotes.create_quote(ctx, quote_payload(sample_data))
        assert quote.quote_number == f"DEVIS-{year}-002"

    def test_conflict_with_concurrent_creator_is_retried(self, ctx, sample_data, caplog):
        year = datetime.date.today().year
        client_id = sample_data["client_id"]
        raced = []

        def racing_next_number(business_id, year, prefix):
            number = numbering.next_quote_number(business_id, year, prefix)
            if not raced:
                # another request commits the same number before our insert
                _legacy_quote(ctx, client_id, number)
                raced.append(number)
            return number

        with patch("services.quotes.next_quote_number", side_effect=racing_next_number):
            quote = quotes.create_quote(ctx, quote_payload(sample_data))

        assert raced == [f"DEVIS-{year}-001"]
        assert quote.quote_number == f"DEVIS-{year}-002"
        numbers = [
            q.quote_number for q in Quote.query.filter_by(business_id=ctx.business_id)
        ]
        assert sorted(numbers) == [f"DEVIS-{year}-001", f"DEVIS-{year}-002"]
        assert "Quote number conflict" in caplog.text

    def test_gives_up_after_repeated_conflicts(self, ctx, sample_data):
        first = quotes.create_quote(ctx, quote_payload(sample_data))
        taken = first.quote_number
        with patch("services.quotes.next_quote_number", return_value=taken) as next_number:
            with pytest.raises(NumberingError):
                quotes.create_quote(ctx, quote_payload(sample_data))
        assert next_number.call_count == quotes.MAX_NUMBERING_ATTEMPTS
        assert Quote.query.filter_by(business_id=ctx.business_id).count() == 1

    def test_interleaved_creators_get_distinct_numbers(self, ctx, sample_data):
        created = [quotes.create_quote(ctx, quote_payload(sample_data)) for _ in range(3)]
        year = datetime.date.today().year
        _legacy_quote(ctx, sample_data["client_id"], f"DEVIS-{year}-004")
        created.append(quotes.create_quote(ctx, quote_payload(sample_data)))
        numbers = [q.quote_number for q in created]
        assert len(set(numbers)) == 4
        assert numbers[-1] == f"DEVIS-{year}-005"
