"""JSON boundary shared by every blueprint.

Route functions decorated with :func:`action` receive the caller's
:class:`TenantContext` as first argument and return plain data.  The
decorator turns that data into ``{"success": true, "data": ...}`` and every
:class:`QuoteAppError` into ``{"success": false, "error": ..., "code": ...,
"fieldErrors": {...}}``.
"""

from __future__ import annotations

import logging
from functools import wraps

from flask import Response, jsonify

from extensions import db
from services.auth import resolve_context
from services.errors import QuoteAppError
from utils import serialize_decimals

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Une erreur inattendue s'est produite. Veuillez réessayer."


def failure_response(message: str, code: str, status: int, field_errors=None):
    body = {
        "success": False,
        "error": message,
        "code": code,
        "fieldErrors": field_errors or {},
    }
    return jsonify(body), status


def success_response(data, status: int = 200):
    return jsonify({"success": True, "data": serialize_decimals(data)}), status


def action(success_status: int = 200):
    """Decorator that resolves the tenant and maps results and errors to JSON."""

    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            try:
                ctx = resolve_context()
                result = f(ctx, *args, **kwargs)
            except QuoteAppError as exc:
                db.session.rollback()
                if exc.http_status >= 500:
                    logger.error("%s failed: %s (%s)", f.__name__, exc.message, exc.code)
                else:
                    logger.info("%s rejected: %s (%s)", f.__name__, exc.message, exc.code)
                return failure_response(exc.message, exc.code, exc.http_status, exc.field_errors)
            except Exception:
                db.session.rollback()
                logger.exception("Unexpected error in %s", f.__name__)
                return failure_response(GENERIC_ERROR, "INTERNAL_ERROR", 500)
            if isinstance(result, Response):
                return result
            return success_response(result, success_status)

        return decorated

    return decorator
