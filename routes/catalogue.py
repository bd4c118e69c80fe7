"""Catalogue routes: services and packages."""

from flask import Blueprint, request

from routes._actions import action
from services import catalogue
from services.pricing import PackageLine, package_pricing, package_services_description

catalogue_bp = Blueprint("catalogue", __name__, url_prefix="/api")


def service_to_dict(service):
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "price": service.price,
        "duration": service.duration,
        "category": service.category,
        "is_active": service.is_active,
        "created_at": service.created_at,
    }


def package_to_dict(package):
    components = catalogue.package_components(package)
    pricing = package_pricing(
        PackageLine(
            name=package.name,
            discount_type=package.discount_type,
            discount_value=package.discount_value,
            components=components,
        )
    )
    return {
        "id": package.id,
        "name": package.name,
        "description": package.description,
        "discount_type": package.discount_type,
        "discount_value": package.discount_value,
        "is_active": package.is_active,
        "items": [
            {
                "service_id": item.service_id,
                "service_name": item.service.name,
                "unit_price": item.service.price,
                "quantity": item.quantity,
            }
            for item in package.items
        ],
        "services_description": package_services_description(components),
        **pricing,
    }


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@catalogue_bp.get("/services")
@action()
def list_services(ctx):
    return [service_to_dict(s) for s in catalogue.list_services(ctx)]


@catalogue_bp.post("/services")
@action(201)
def create_service(ctx):
    return service_to_dict(catalogue.create_service(ctx, request.get_json(silent=True)))


@catalogue_bp.get("/services/<int:service_id>")
@action()
def get_service(ctx, service_id):
    return service_to_dict(catalogue.get_service(ctx, service_id))


@catalogue_bp.route("/services/<int:service_id>", methods=["PUT", "PATCH"])
@action()
def update_service(ctx, service_id):
    service = catalogue.update_service(ctx, service_id, request.get_json(silent=True))
    return service_to_dict(service)


@catalogue_bp.delete("/services/<int:service_id>")
@action()
def delete_service(ctx, service_id):
    return service_to_dict(catalogue.delete_service(ctx, service_id))


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

@catalogue_bp.get("/packages")
@action()
def list_packages(ctx):
    return [package_to_dict(p) for p in catalogue.list_packages(ctx)]


@catalogue_bp.post("/packages")
@action(201)
def create_package(ctx):
    return package_to_dict(catalogue.create_package(ctx, request.get_json(silent=True)))


@catalogue_bp.get("/packages/<int:package_id>")
@action()
def get_package(ctx, package_id):
    return package_to_dict(catalogue.get_package(ctx, package_id))


@catalogue_bp.route("/packages/<int:package_id>", methods=["PUT", "PATCH"])
@action()
def update_package(ctx, package_id):
    package = catalogue.update_package(ctx, package_id, request.get_json(silent=True))
    return package_to_dict(package)


@catalogue_bp.delete("/packages/<int:package_id>")
@action()
def delete_package(ctx, package_id):
    return package_to_dict(catalogue.delete_package(ctx, package_id))
