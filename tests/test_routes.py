"""HTTP boundary tests."""

from unittest.mock import patch

import mailer
from extensions import db
from models import Quote
from services import quotes
from tests.conftest import quote_payload


class TestAppCreation:
    def test_create_app(self, app):
        assert app is not None
        assert app.config["APP_CONFIG"].quote_prefix == "DEVIS"
        assert app.config["EMAIL_CONFIG"].enabled is False

    def test_blueprints_registered(self, app):
        assert {"clients", "catalogue", "quotes"} <= set(app.blueprints)

    def test_security_headers(self, client):
        response = client.get("/api/csrf-token")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.get_json()["data"]["csrf_token"]

    def test_unknown_route_is_json(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.get_json()["code"] == "NOT_FOUND"


class TestAuthentication:
    def test_anonymous_rejected(self, client):
        response = client.get("/api/quotes")
        assert response.status_code == 401
        body = response.get_json()
        assert body == {
            "success": False,
            "error": "Non authentifié.",
            "code": "UNAUTHENTICATED",
            "fieldErrors": {},
        }

    def test_inactive_user_logged_out(self, app, logged_in_client, ctx):
        from models import User

        db.session.get(User, ctx.user_id).is_active = False
        db.session.commit()
        assert logged_in_client.get("/api/clients").status_code == 401


class TestQuoteRoutes:
    def test_create_quote(self, logged_in_client, sample_data):
        response = logged_in_client.post("/api/quotes", json=quote_payload(sample_data))
        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] is True
        data = body["data"]
        assert data["status"] == "DRAFT"
        assert data["subtotal"] == 180.0
        assert data["package_discounts_total"] == 8.0
        assert data["total"] == 152.0
        assert data["items"][1]["package_discount"] == 8.0
        assert data["client"]["full_name"] == "Marie Dupont"

    def test_validation_errors_are_field_level(self, logged_in_client, sample_data):
        response = logged_in_client.post(
            "/api/quotes", json=quote_payload(sample_data, items=[])
        )
        assert response.status_code == 422
        body = response.get_json()
        assert body["code"] == "VALIDATION_ERROR"
        assert "items" in body["fieldErrors"]

    def test_missing_body(self, logged_in_client):
        response = logged_in_client.post("/api/quotes", data="not json")
        assert response.status_code == 422

    def test_list_and_get(self, logged_in_client, ctx, sample_data):
        quote = quotes.create_quote(ctx, quote_payload(sample_data))
        listed = logged_in_client.get("/api/quotes").get_json()["data"]
        assert [q["quote_number"] for q in listed] == [quote.quote_number]
        assert "items" not in listed[0]
        detail = logged_in_client.get(f"/api/quotes/{quote.id}").get_json()["data"]
        assert len(detail["items"]) == 2

    def test_edit_sent_quote_conflict(self, logged_in_client, ctx, sample_data):
        quote = quotes.create_quote(ctx, quote_payload(sample_data))
        quote_id = quote.id
        assert logged_in_client.post(f"/api/quotes/{quote_id}/send").status_code == 200
        response = logged_in_client.put(f"/api/quotes/{quote_id}", json={"notes": "x"})
        assert response.status_code == 409
        assert response.get_json()["code"] == "INVALID_STATE"

    def test_send_failure_maps_to_502(self, app, logged_in_client, ctx, sample_data, smtp_config):
        app.config["EMAIL_CONFIG"] = smtp_config
        quote = quotes.create_quote(ctx, quote_payload(sample_data))
        quote_id = quote.id
        with patch("mailer.send_html_email", side_effect=mailer.MailerError("timeout")):
            response = logged_in_client.post(f"/api/quotes/{quote_id}/send")
        assert response.status_code == 502
        assert response.get_json()["code"] == "EXTERNAL_SERVICE_ERROR"
        assert db.session.get(Quote, quote_id).status == "DRAFT"

    def test_status_transition(self, logged_in_client, ctx, sample_data):
        quote = quotes.create_quote(ctx, quote_payload(sample_data))
        quote_id = quote.id
        logged_in_client.post(f"/api/quotes/{quote_id}/send")
        response = logged_in_client.post(
            f"/api/quotes/{quote_id}/status", json={"status": "ACCEPTED"}
        )
        assert response.get_json()["data"]["status"] == "ACCEPTED"

    def test_delete(self, logged_in_client, ctx, sample_data):
        quote = quotes.create_quote(ctx, quote_payload(sample_data))
        quote_id = quote.id
        response = logged_in_client.delete(f"/api/quotes/{quote_id}")
        assert response.get_json() == {"success": True, "data": {"id": quote_id}}
        assert logged_in_client.get(f"/api/quotes/{quote_id}").status_code == 404

    def test_foreign_quote_is_not_found(self, logged_in_client, other_ctx, other_data):
        foreign = quotes.create_quote(other_ctx, quote_payload(other_data))
        foreign_id = foreign.id
        for response in (
            logged_in_client.get(f"/api/quotes/{foreign_id}"),
            logged_in_client.put(f"/api/quotes/{foreign_id}", json={"notes": "x"}),
            logged_in_client.post(f"/api/quotes/{foreign_id}/send"),
            logged_in_client.delete(f"/api/quotes/{foreign_id}"),
        ):
            assert response.status_code == 404
            assert response.get_json()["error"] == "Devis introuvable"

    def test_export_csv(self, logged_in_client, ctx, sample_data):
        quotes.create_quote(ctx, quote_payload(sample_data))
        response = logged_in_client.get("/api/quotes/export")
        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        text = response.get_data(as_text=True)
        assert text.startswith("Numéro de Devis,Date de Création,Statut")
        assert len(text.split("\n")) == 3

    def test_export_empty(self, logged_in_client):
        response = logged_in_client.get("/api/quotes/export")
        assert response.status_code == 200
        assert response.get_data(as_text=True) == ""


class TestCatalogueRoutes:
    def test_package_listing_includes_pricing(self, logged_in_client, sample_data):
        packages = logged_in_client.get("/api/packages").get_json()["data"]
        assert packages[0]["base_price"] == 80.0
        assert packages[0]["discount"] == 8.0
        assert packages[0]["final_price"] == 72.0
        assert packages[0]["services_description"] == "Brushing × 2, Soin visage × 1"

    def test_create_service(self, logged_in_client):
        response = logged_in_client.post(
            "/api/services", json={"name": "Épilation", "price": 15.5}
        )
        assert response.status_code == 201
        assert response.get_json()["data"]["price"] == 15.5

    def test_delete_service_soft(self, logged_in_client, sample_data):
        response = logged_in_client.delete(f"/api/services/{sample_data['coupe_id']}")
        assert response.get_json()["data"]["is_active"] is False
        listed = logged_in_client.get("/api/services").get_json()["data"]
        assert sample_data["coupe_id"] not in [s["id"] for s in listed]

    def test_null_price_leaves_service_unchanged(self, logged_in_client, sample_data):
        response = logged_in_client.patch(
            f"/api/services/{sample_data['coupe_id']}", json={"price": None}
        )
        assert response.status_code == 200
        assert response.get_json()["data"]["price"] == 50.0


class TestClientRoutes:
    def test_crud(self, logged_in_client):
        created = logged_in_client.post(
            "/api/clients", json={"first_name": "Lucie", "last_name": "Bernard"}
        ).get_json()["data"]
        client_id = created["id"]
        updated = logged_in_client.patch(
            f"/api/clients/{client_id}", json={"phone": "0611223344"}
        ).get_json()["data"]
        assert updated["phone"] == "0611223344"
        assert logged_in_client.delete(f"/api/clients/{client_id}").status_code == 200
        assert logged_in_client.get(f"/api/clients/{client_id}").status_code == 404

    def test_delete_referenced_client_conflict(self, logged_in_client, ctx, sample_data):
        quotes.create_quote(ctx, quote_payload(sample_data))
        response = logged_in_client.delete(f"/api/clients/{sample_data['client_id']}")
        assert response.status_code == 409
