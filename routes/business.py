"""Business settings routes."""

from flask import Blueprint, request

from routes._actions import action
from services import business as business_service

business_bp = Blueprint("business", __name__, url_prefix="/api/business")


def business_to_dict(business):
    return {
        "id": business.id,
        "name": business.name,
        "email": business.email,
        "phone": business.phone,
        "address": business.address,
        "city": business.city,
        "postal_code": business.postal_code,
        "siret": business.siret,
        "display_address": business.display_address,
    }


@business_bp.get("")
@action()
def get_business(ctx):
    return business_to_dict(business_service.get_business(ctx))


@business_bp.route("", methods=["PUT", "PATCH"])
@action()
def update_business(ctx):
    business = business_service.update_business(ctx, request.get_json(silent=True))
    return business_to_dict(business)
