"""Input schemas for the write operations (pydantic)."""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from services.errors import ValidationError

Money = Decimal
DiscountType = Literal["NONE", "PERCENTAGE", "FIXED"]

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_FRENCH_PHONE_PATTERN = r"^(?:(?:\+|00)33|0)\s*[1-9](?:[\s.-]*\d{2}){4}$"
_MAX_AMOUNT = Decimal("999999.99")


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


def _check_percentage(discount_type, value) -> None:
    if discount_type == "PERCENTAGE" and value is not None and value > 100:
        raise ValueError("Le pourcentage doit être entre 0 et 100")


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

class ClientIn(_Input):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=120)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=5000)


class ClientUpdate(_Input):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=120)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=5000)


# ---------------------------------------------------------------------------
# Business settings
# ---------------------------------------------------------------------------

class BusinessUpdate(_Input):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN, max_length=120)
    phone: Optional[str] = Field(default=None, pattern=_FRENCH_PHONE_PATTERN, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, pattern=r"^\d{5}$")
    siret: Optional[str] = Field(default=None, pattern=r"^\d{14}$")

    @field_validator(
        "email", "phone", "address", "city", "postal_code", "siret", mode="before"
    )
    @classmethod
    def _blank_is_null(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

class ServiceIn(_Input):
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    price: Money = Field(ge=0, le=_MAX_AMOUNT, decimal_places=2)
    duration: Optional[int] = Field(default=None, ge=1, le=1440)
    category: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = True


class ServiceUpdate(_Input):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    price: Optional[Money] = Field(default=None, ge=0, le=_MAX_AMOUNT, decimal_places=2)
    duration: Optional[int] = Field(default=None, ge=1, le=1440)
    category: Optional[str] = Field(default=None, max_length=50)
    is_active: Optional[bool] = None


class PackageItemIn(_Input):
    service_id: int
    quantity: int = Field(default=1, ge=1)


class PackageIn(_Input):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Money = Field(default=Decimal("0"), ge=0, le=_MAX_AMOUNT)
    items: list[PackageItemIn] = Field(min_length=1)

    @model_validator(mode="after")
    def _percentage_range(self):
        _check_percentage(self.discount_type, self.discount_value)
        return self


class PackageUpdate(_Input):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Money] = Field(default=None, ge=0, le=_MAX_AMOUNT)
    items: Optional[list[PackageItemIn]] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _percentage_range(self):
        _check_percentage(self.discount_type, self.discount_value)
        return self


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------

class QuoteItemIn(_Input):
    """One requested line: a service (optionally repriced) or a package."""

    service_id: Optional[int] = None
    package_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1, le=9999)
    price: Optional[Money] = Field(default=None, ge=0, le=_MAX_AMOUNT, decimal_places=2)
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _one_source(self):
        if (self.service_id is None) == (self.package_id is None):
            raise ValueError("Chaque ligne doit référencer un service ou un forfait")
        return self


class QuoteIn(_Input):
    client_id: int
    items: list[QuoteItemIn] = Field(min_length=1, max_length=100)
    discount: Money = Field(default=Decimal("0"), ge=0, le=_MAX_AMOUNT, decimal_places=2)
    discount_type: DiscountType = "FIXED"
    valid_until: Optional[datetime.date] = None
    notes: Optional[str] = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def _percentage_range(self):
        _check_percentage(self.discount_type, self.discount)
        return self


class QuoteUpdate(_Input):
    client_id: Optional[int] = None
    items: Optional[list[QuoteItemIn]] = Field(default=None, min_length=1, max_length=100)
    discount: Optional[Money] = Field(default=None, ge=0, le=_MAX_AMOUNT, decimal_places=2)
    discount_type: Optional[DiscountType] = None
    valid_until: Optional[datetime.date] = None
    notes: Optional[str] = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def _percentage_range(self):
        _check_percentage(self.discount_type, self.discount)
        return self


class QuoteStatusIn(_Input):
    status: Literal["ACCEPTED", "REJECTED"]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_input(schema: type[BaseModel], payload) -> BaseModel:
    """Validate *payload* against *schema* or raise a field-level ``ValidationError``."""
    if isinstance(payload, schema):
        return payload
    if not isinstance(payload, dict):
        raise ValidationError("Données invalides.")
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        field_errors: dict[str, list[str]] = {}
        for error in exc.errors():
            key = ".".join(str(part) for part in error["loc"]) or "__root__"
            field_errors.setdefault(key, []).append(error["msg"])
        raise ValidationError("Données invalides.", field_errors=field_errors) from exc
