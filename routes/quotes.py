"""Quote routes."""

from flask import Blueprint, Response, current_app, request

from routes._actions import action
from routes.clients import client_to_dict
from services import quotes as quote_service
from services.export import export_quotes

quotes_bp = Blueprint("quotes", __name__, url_prefix="/api/quotes")


def quote_item_to_dict(item):
    return {
        "id": item.id,
        "service_id": item.service_id,
        "package_id": item.package_id,
        "name": item.name,
        "description": item.description,
        "price": item.price,
        "quantity": item.quantity,
        "total": item.total,
        "package_discount": item.package_discount,
    }


def quote_to_dict(quote, with_items: bool = True):
    data = {
        "id": quote.id,
        "quote_number": quote.quote_number,
        "status": quote.status,
        "client": client_to_dict(quote.client) if quote.client else None,
        "subtotal": quote.subtotal,
        "package_discounts_total": quote.package_discounts_total,
        "discount": quote.discount,
        "discount_type": quote.discount_type,
        "discount_amount": quote.discount_amount,
        "total": quote.total,
        "valid_until": quote.valid_until,
        "notes": quote.notes,
        "sent_at": quote.sent_at,
        "created_at": quote.created_at,
        "updated_at": quote.updated_at,
    }
    if with_items:
        data["items"] = [quote_item_to_dict(i) for i in quote.items]
    return data


@quotes_bp.get("")
@action()
def list_quotes(ctx):
    return [quote_to_dict(q, with_items=False) for q in quote_service.list_quotes(ctx)]


@quotes_bp.post("")
@action(201)
def create_quote(ctx):
    quote = quote_service.create_quote(
        ctx, request.get_json(silent=True), current_app.config["APP_CONFIG"]
    )
    return quote_to_dict(quote)


@quotes_bp.get("/<int:quote_id>")
@action()
def get_quote(ctx, quote_id):
    return quote_to_dict(quote_service.get_quote(ctx, quote_id))


@quotes_bp.route("/<int:quote_id>", methods=["PUT", "PATCH"])
@action()
def update_quote(ctx, quote_id):
    quote = quote_service.update_quote(ctx, quote_id, request.get_json(silent=True))
    return quote_to_dict(quote)


@quotes_bp.delete("/<int:quote_id>")
@action()
def delete_quote(ctx, quote_id):
    quote_service.delete_quote(ctx, quote_id)
    return {"id": quote_id}


@quotes_bp.post("/<int:quote_id>/send")
@action()
def send_quote(ctx, quote_id):
    quote = quote_service.send_quote(
        ctx,
        quote_id,
        current_app.config["EMAIL_CONFIG"],
        current_app.config["APP_CONFIG"],
    )
    return quote_to_dict(quote)


@quotes_bp.post("/<int:quote_id>/status")
@action()
def update_quote_status(ctx, quote_id):
    quote = quote_service.update_quote_status(ctx, quote_id, request.get_json(silent=True))
    return quote_to_dict(quote)


@quotes_bp.get("/export")
@action()
def export(ctx):
    content = export_quotes(ctx, current_app.config["APP_CONFIG"].date_format)
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=devis.csv"},
    )
