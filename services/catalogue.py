"""Catalogue business logic: services and packages.

Neither is ever hard-deleted.  "Deleting" clears ``is_active`` and stamps
``deleted_at`` so that historical quotes keep their references.
"""

from __future__ import annotations

import logging

from extensions import db
from models import DISCOUNT_PERCENTAGE, Package, PackageItem, Service
from schemas import PackageIn, PackageUpdate, ServiceIn, ServiceUpdate, parse_input
from services import audit
from services.errors import NotFoundError, ValidationError
from services.pricing import PackageComponent, PackageLine, package_services_description
from services.tenant import TenantContext, get_scoped_or_404, scoped_query, stamp_business
from utils import utc_now

logger = logging.getLogger(__name__)

SERVICE_NOT_FOUND = "Service introuvable"
PACKAGE_NOT_FOUND = "Forfait introuvable"

# NOT NULL columns: an explicit null leaves them unchanged
_REQUIRED_SERVICE_FIELDS = ("name", "price", "is_active")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def list_services(ctx: TenantContext) -> list[Service]:
    return (
        scoped_query(Service, ctx)
        .filter_by(is_active=True)
        .order_by(Service.created_at.desc(), Service.id.desc())
        .all()
    )


def get_service(ctx: TenantContext, service_id: int) -> Service:
    return get_scoped_or_404(Service, service_id, ctx, SERVICE_NOT_FOUND)


def get_active_service(ctx: TenantContext, service_id: int) -> Service:
    """Return an active service of the caller's business, else ``NotFoundError``."""
    service = get_scoped_or_404(Service, service_id, ctx, SERVICE_NOT_FOUND)
    if not service.is_active:
        raise NotFoundError(SERVICE_NOT_FOUND)
    return service


def create_service(ctx: TenantContext, data) -> Service:
    payload = parse_input(ServiceIn, data)
    service = Service(**payload.model_dump())
    stamp_business(service, ctx)
    db.session.add(service)
    db.session.commit()
    audit.record(
        audit.SERVICE_CREATED,
        audit.LEVEL_INFO,
        ctx.user_id,
        ctx.business_id,
        "Service",
        {"name": service.name, "price": service.price},
        resource_id=service.id,
    )
    return service


def update_service(ctx: TenantContext, service_id: int, data) -> Service:
    payload = parse_input(ServiceUpdate, data)
    service = get_service(ctx, service_id)
    for key in payload.model_fields_set:
        value = getattr(payload, key)
        if value is None and key in _REQUIRED_SERVICE_FIELDS:
            continue
        setattr(service, key, value)
    db.session.commit()
    return service


def delete_service(ctx: TenantContext, service_id: int) -> Service:
    service = get_service(ctx, service_id)
    service.is_active = False
    service.deleted_at = utc_now()
    db.session.commit()
    audit.record(
        audit.SERVICE_DELETED,
        audit.LEVEL_WARNING,
        ctx.user_id,
        ctx.business_id,
        "Service",
        {"name": service.name, "price": service.price},
        resource_id=service.id,
    )
    return service


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

def list_packages(ctx: TenantContext) -> list[Package]:
    return (
        scoped_query(Package, ctx)
        .filter_by(is_active=True)
        .order_by(Package.name.asc())
        .all()
    )


def get_package(ctx: TenantContext, package_id: int) -> Package:
    return get_scoped_or_404(Package, package_id, ctx, PACKAGE_NOT_FOUND)


def _build_items(ctx: TenantContext, items) -> list[PackageItem]:
    built = []
    for position, item in enumerate(items):
        service = get_active_service(ctx, item.service_id)
        package_item = PackageItem(
            service_id=service.id, quantity=item.quantity, position=position
        )
        stamp_business(package_item, ctx)
        built.append(package_item)
    return built


def create_package(ctx: TenantContext, data) -> Package:
    payload = parse_input(PackageIn, data)
    package = Package(
        name=payload.name,
        description=payload.description,
        discount_type=payload.discount_type,
        discount_value=payload.discount_value,
    )
    stamp_business(package, ctx)
    package.items.extend(_build_items(ctx, payload.items))
    db.session.add(package)
    db.session.commit()
    audit.record(
        audit.PACKAGE_CREATED,
        audit.LEVEL_INFO,
        ctx.user_id,
        ctx.business_id,
        "Package",
        {"name": package.name, "items": len(package.items)},
        resource_id=package.id,
    )
    return package


def update_package(ctx: TenantContext, package_id: int, data) -> Package:
    """Update a package; a submitted item list replaces the whole set in one commit."""
    payload = parse_input(PackageUpdate, data)
    package = get_package(ctx, package_id)
    effective_type = payload.discount_type or package.discount_type
    effective_value = (
        payload.discount_value if payload.discount_value is not None else package.discount_value
    )
    if effective_type == DISCOUNT_PERCENTAGE and effective_value > 100:
        raise ValidationError(
            "Données invalides.",
            field_errors={"discount_value": ["Le pourcentage doit être entre 0 et 100"]},
        )
    new_items = _build_items(ctx, payload.items) if payload.items is not None else None
    for key in ("name", "description", "discount_type", "discount_value"):
        if key in payload.model_fields_set and (
            getattr(payload, key) is not None or key == "description"
        ):
            setattr(package, key, getattr(payload, key))
    if new_items is not None:
        package.items.clear()
        db.session.flush()
        package.items.extend(new_items)
    db.session.commit()
    return package


def delete_package(ctx: TenantContext, package_id: int) -> Package:
    package = get_package(ctx, package_id)
    package.is_active = False
    package.deleted_at = utc_now()
    db.session.commit()
    audit.record(
        audit.PACKAGE_DELETED,
        audit.LEVEL_WARNING,
        ctx.user_id,
        ctx.business_id,
        "Package",
        {"name": package.name},
        resource_id=package.id,
    )
    return package


def package_components(package: Package) -> tuple[PackageComponent, ...]:
    return tuple(
        PackageComponent(
            name=item.service.name,
            unit_price=item.service.price,
            quantity=item.quantity,
            service_id=item.service_id,
        )
        for item in package.items
    )


def package_line(ctx: TenantContext, package_id: int) -> PackageLine:
    """Build a pricing line for an active package of the caller's business.

    Every component service is re-checked: it must still be active and
    belong to the same business.
    """
    package = get_package(ctx, package_id)
    if not package.is_active:
        raise NotFoundError(PACKAGE_NOT_FOUND)
    for item in package.items:
        if (
            item.service is None
            or not item.service.is_active
            or item.service.business_id != ctx.business_id
        ):
            logger.warning(
                "Package %s references unavailable service %s", package.id, item.service_id
            )
            raise NotFoundError(SERVICE_NOT_FOUND)
    components = package_components(package)
    return PackageLine(
        name=package.name,
        description=package_services_description(components),
        discount_type=package.discount_type,
        discount_value=package.discount_value,
        components=components,
        package_id=package.id,
    )
