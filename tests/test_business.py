"""Business settings and dashboard tests."""

from decimal import Decimal

import pytest

from config_models import AppConfig
from models import AuditLog
from services import business, quotes
from services.dashboard import dashboard_stats
from services.errors import Unauthenticated, ValidationError
from services.quote_email import render_quote_email
from services.tenant import TenantContext
from tests.conftest import quote_payload


class TestBusinessSettings:
    def test_get_own_business(self, ctx):
        assert business.get_business(ctx).name == "Institut Belle"

    def test_update_contact_details(self, ctx):
        updated = business.update_business(
            ctx,
            {
                "email": "Accueil@Belle.FR",
                "phone": "01 23 45 67 89",
                "address": "12 rue des Lilas",
                "city": "Lyon",
                "postal_code": "69003",
                "siret": "12345678901234",
            },
        )
        assert updated.email == "accueil@belle.fr"
        assert updated.display_address == "12 rue des Lilas, 69003 Lyon"
        entry = AuditLog.query.filter_by(action="business.updated").one()
        assert entry.business_id == ctx.business_id

    def test_blank_values_clear_fields(self, ctx):
        business.update_business(ctx, {"phone": "0123456789"})
        updated = business.update_business(ctx, {"phone": "", "name": None})
        assert updated.phone is None
        assert updated.name == "Institut Belle"

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "X"},
            {"postal_code": "6900"},
            {"siret": "123"},
            {"phone": "12"},
            {"email": "pas-un-email"},
        ],
    )
    def test_invalid_settings_rejected(self, ctx, payload):
        with pytest.raises(ValidationError) as exc:
            business.update_business(ctx, payload)
        assert set(exc.value.field_errors) == set(payload)

    def test_only_own_business_is_changed(self, ctx, other_ctx):
        business.update_business(ctx, {"city": "Lyon"})
        assert business.get_business(other_ctx).city is None

    def test_settings_feed_quote_email(self, ctx, sample_data):
        business.update_business(ctx, {"name": "Institut Belle & Zen", "phone": "0123456789"})
        quote = quotes.create_quote(ctx, quote_payload(sample_data))
        subject, html = render_quote_email(quote, AppConfig())
        assert subject == f"Devis {quote.quote_number} de Institut Belle & Zen"
        assert "0123456789" in html

    def test_missing_business_rejected(self, app):
        with pytest.raises(Unauthenticated):
            business.get_business(TenantContext(user_id=1, business_id=None))


class TestDashboardStats:
    def test_empty_business(self, ctx):
        assert dashboard_stats(ctx) == {
            "total_clients": 0,
            "total_quotes": 0,
            "total_revenue": Decimal("0.00"),
            "average_quote_value": Decimal("0.00"),
        }

    def test_counts_and_revenue_scoped_to_business(
        self, ctx, sample_data, other_ctx, other_data
    ):
        quotes.create_quote(ctx, quote_payload(sample_data))
        quotes.create_quote(ctx, quote_payload(sample_data, discount="0"))
        quotes.create_quote(other_ctx, quote_payload(other_data))
        stats = dashboard_stats(ctx)
        assert stats["total_clients"] == 1
        assert stats["total_quotes"] == 2
        assert stats["total_revenue"] == Decimal("324.00")
        assert stats["average_quote_value"] == Decimal("162.00")


class TestBusinessRoutes:
    def test_dashboard(self, logged_in_client, ctx, sample_data):
        quotes.create_quote(ctx, quote_payload(sample_data))
        response = logged_in_client.get("/api/dashboard")
        assert response.get_json() == {
            "success": True,
            "data": {
                "total_clients": 1,
                "total_quotes": 1,
                "total_revenue": 152.0,
                "average_quote_value": 152.0,
            },
        }

    def test_dashboard_requires_login(self, client):
        assert client.get("/api/dashboard").status_code == 401

    def test_get_and_update_settings(self, logged_in_client):
        assert logged_in_client.get("/api/business").get_json()["data"]["name"] == (
            "Institut Belle"
        )
        response = logged_in_client.patch(
            "/api/business", json={"city": "Lyon", "postal_code": "69003"}
        )
        assert response.status_code == 200
        assert response.get_json()["data"]["display_address"] == "69003 Lyon"

    def test_invalid_settings_are_field_level(self, logged_in_client):
        response = logged_in_client.put("/api/business", json={"siret": "abc"})
        assert response.status_code == 422
        assert "siret" in response.get_json()["fieldErrors"]
