"""SQLAlchemy models for businesses, catalogue, clients and quotes."""

from __future__ import annotations

from extensions import db
from utils import utc_now

# ---------------------------------------------------------------------------
# Enumerations (stored as plain strings)
# ---------------------------------------------------------------------------

QUOTE_DRAFT = "DRAFT"
QUOTE_SENT = "SENT"
QUOTE_ACCEPTED = "ACCEPTED"
QUOTE_REJECTED = "REJECTED"

DISCOUNT_NONE = "NONE"
DISCOUNT_PERCENTAGE = "PERCENTAGE"
DISCOUNT_FIXED = "FIXED"


# ---------------------------------------------------------------------------
# Business (tenant) & users
# ---------------------------------------------------------------------------

class Business(db.Model):
    """Tenant root: every other row belongs to exactly one business."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120))
    phone = db.Column(db.String(60))
    address = db.Column(db.String(255))
    city = db.Column(db.String(120))
    postal_code = db.Column(db.String(20))
    siret = db.Column(db.String(20))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    users = db.relationship("User", backref="business", cascade="all, delete-orphan")

    @property
    def display_address(self) -> str:
        city_line = " ".join(p for p in (self.postal_code, self.city) if p)
        return ", ".join(p for p in (self.address, city_line) if p)


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(120))
    business_id = db.Column(db.Integer, db.ForeignKey("business.id"), nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utc_now)


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

class Client(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("business.id"), nullable=False, index=True)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(120))
    phone = db.Column(db.String(30))
    address = db.Column(db.String(255))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

class Service(db.Model):
    """A sellable service.  Never hard-deleted: quotes keep referencing it."""
    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("business.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False)
    duration = db.Column(db.Integer)  # minutes
    category = db.Column(db.String(50))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    deleted_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        db.Index("ix_service_business_active", "business_id", "is_active"),
    )


class Package(db.Model):
    """A bundle of services sold as one line with its own discount policy."""
    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("business.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    discount_type = db.Column(db.String(20), nullable=False, default=DISCOUNT_NONE)
    discount_value = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    deleted_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    items = db.relationship(
        "PackageItem",
        backref="package",
        cascade="all, delete-orphan",
        order_by="PackageItem.position",
    )

    __table_args__ = (
        db.CheckConstraint(
            "discount_type IN ('NONE', 'PERCENTAGE', 'FIXED')",
            name="ck_package_discount_type",
        ),
    )


class PackageItem(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("business.id"), nullable=False, index=True)
    package_id = db.Column(db.Integer, db.ForeignKey("package.id"), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey("service.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    position = db.Column(db.Integer, nullable=False, default=0)

    service = db.relationship("Service")


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------

class Quote(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("business.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("client.id"), nullable=False)
    quote_number = db.Column(db.String(50), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=QUOTE_DRAFT)
    subtotal = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    package_discounts_total = db.Column(
        db.Numeric(10, 2, asdecimal=True), nullable=False, default=0
    )
    discount = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    discount_type = db.Column(db.String(20), nullable=False, default=DISCOUNT_FIXED)
    discount_amount = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    total = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False, default=0)
    valid_until = db.Column(db.Date)
    notes = db.Column(db.Text)
    sent_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    business = db.relationship("Business")
    client = db.relationship("Client")
    items = db.relationship(
        "QuoteItem",
        backref="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.position",
    )

    __table_args__ = (
        db.UniqueConstraint("business_id", "quote_number", name="uq_quote_number_business"),
        db.Index("ix_quote_status", "status"),
        db.Index("ix_quote_created_at", "created_at"),
    )

    @property
    def is_editable(self) -> bool:
        return self.status == QUOTE_DRAFT


class QuoteItem(db.Model):
    """Priced snapshot of a sold line.  Monetary fields are the source of truth."""
    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("business.id"), nullable=False, index=True)
    quote_id = db.Column(db.Integer, db.ForeignKey("quote.id"), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey("service.id"))
    package_id = db.Column(db.Integer, db.ForeignKey("package.id"))
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    total = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False)
    package_discount = db.Column(db.Numeric(10, 2, asdecimal=True))
    position = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.CheckConstraint(
            "service_id IS NOT NULL OR package_id IS NOT NULL",
            name="ck_quote_item_has_source",
        ),
    )


class NumberSequence(db.Model):
    """Monotonic quote counter per business and scope (calendar year)."""
    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("business.id"), nullable=False, index=True)
    scope_key = db.Column(db.String(20), nullable=False)
    last_value = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint("business_id", "scope_key", name="uq_number_sequence"),
    )


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

class AuditLog(db.Model):
    """Append-only record of sensitive mutations."""
    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("business.id"), index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"))
    action = db.Column(db.String(80), nullable=False)
    level = db.Column(db.String(20), nullable=False, default="info")
    resource_type = db.Column(db.String(40), nullable=False)
    resource_id = db.Column(db.Integer)
    metadata_json = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utc_now)

    __table_args__ = (
        db.Index("ix_audit_log_created_at", "created_at"),
        db.Index("ix_audit_log_resource", "resource_type", "resource_id"),
    )
