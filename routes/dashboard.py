"""Dashboard route."""

from flask import Blueprint

from routes._actions import action
from services.dashboard import dashboard_stats

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@action()
def stats(ctx):
    return dashboard_stats(ctx)
