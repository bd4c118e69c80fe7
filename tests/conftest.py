"""Shared fixtures: an in-memory application, two tenants and a small catalogue."""

import os

import pytest

os.environ["DATABASE_URI"] = "sqlite://"  # In-memory database for tests
os.environ["APP_SECRET_KEY"] = "test-secret-key"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["EMAIL_SIMULATE"] = "true"
os.environ["CONFIG_PATH"] = os.path.join(os.path.dirname(__file__), "no-config.yaml")

from app import create_app
from config_models import EmailConfig
from extensions import db
from models import Business, User
from services import catalogue as catalogue_service
from services import clients as client_service
from services.tenant import TenantContext


def make_tenant(name: str, user_email: str) -> TenantContext:
    business = Business(name=name, email=f"contact@{name.lower().replace(' ', '')}.fr")
    db.session.add(business)
    db.session.flush()
    user = User(email=user_email, name="Owner", business_id=business.id)
    db.session.add(user)
    db.session.commit()
    return TenantContext(user_id=user.id, business_id=business.id)


def make_catalogue(ctx: TenantContext) -> dict:
    """Client + three services + one package (base 80.00, 10 %).

    Returns a dict of IDs.
    """
    client = client_service.create_client(
        ctx,
        {"first_name": "Marie", "last_name": "Dupont", "email": "Marie.Dupont@Example.fr"},
    )
    coupe = catalogue_service.create_service(ctx, {"name": "Coupe", "price": "50.00"})
    brushing = catalogue_service.create_service(ctx, {"name": "Brushing", "price": "30.00"})
    soin = catalogue_service.create_service(ctx, {"name": "Soin visage", "price": "20.00"})
    package = catalogue_service.create_package(
        ctx,
        {
            "name": "Forfait Mariée",
            "discount_type": "PERCENTAGE",
            "discount_value": "10",
            "items": [
                {"service_id": brushing.id, "quantity": 2},
                {"service_id": soin.id, "quantity": 1},
            ],
        },
    )
    return {
        "client_id": client.id,
        "coupe_id": coupe.id,
        "brushing_id": brushing.id,
        "soin_id": soin.id,
        "package_id": package.id,
    }


def quote_payload(data: dict, **overrides) -> dict:
    """Coupe x2 + the package, 20.00 fixed discount: 180 / 8 / 172 / 152."""
    payload = {
        "client_id": data["client_id"],
        "items": [
            {"service_id": data["coupe_id"], "quantity": 2},
            {"package_id": data["package_id"]},
        ],
        "discount": "20",
        "discount_type": "FIXED",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def app():
    """Create application for testing."""
    application = create_app()
    application.config["TESTING"] = True
    application.config["WTF_CSRF_ENABLED"] = False
    application.config["SESSION_COOKIE_SECURE"] = False
    with application.app_context():
        yield application
        db.session.remove()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def ctx(app):
    return make_tenant("Institut Belle", "anna@belle.fr")


@pytest.fixture
def other_ctx(app):
    return make_tenant("Salon Rival", "paul@rival.fr")


@pytest.fixture
def sample_data(ctx):
    return make_catalogue(ctx)


@pytest.fixture
def other_data(other_ctx):
    return make_catalogue(other_ctx)


@pytest.fixture
def logged_in_client(client, ctx):
    """Create test client with a session for the first tenant's user."""
    with client.session_transaction() as sess:
        sess["user_id"] = ctx.user_id
    return client


@pytest.fixture
def smtp_config():
    return EmailConfig(
        enabled=True,
        smtp_host="smtp.test.local",
        smtp_port=587,
        smtp_user="",
        smtp_password="",
        sender="devis@belle.fr",
        timeout=5,
    )
