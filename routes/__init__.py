"""Blueprint registration."""

from routes.business import business_bp
from routes.catalogue import catalogue_bp
from routes.clients import clients_bp
from routes.dashboard import dashboard_bp
from routes.quotes import quotes_bp

ALL_BLUEPRINTS = [
    dashboard_bp,
    business_bp,
    clients_bp,
    catalogue_bp,
    quotes_bp,
]


def register_blueprints(app):
    """Register all application blueprints on *app*."""
    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)
