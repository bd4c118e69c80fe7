"""Quote pricing engine.

Pure computation, no database access.  A quote is a sequence of lines, each
either a :class:`ServiceLine` or a :class:`PackageLine`:

1. service line total = unit price x quantity
2. package line total = sum(service price x item quantity); quantity is
   always 1 and the package discount is tracked beside the line
3. subtotal = sum of line totals
4. package discounts total = sum of package discounts
5. subtotal after package discounts = (3) - (4)
6. global discount = (5) x value / 100 for PERCENTAGE, the value for FIXED
7. total = (5) - (6)

All arithmetic is ``Decimal``.  Amounts are rounded to cents only when the
totals are assembled, never per line, and the total is derived from the
rounded components so that ``total == subtotal - package discounts -
discount amount`` holds exactly on the stored values.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence, Union

from models import DISCOUNT_FIXED, DISCOUNT_NONE, DISCOUNT_PERCENTAGE
from utils import quantize_money, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ServiceLine:
    name: str
    unit_price: Decimal
    quantity: int = 1
    description: Optional[str] = None
    service_id: Optional[int] = None


@dataclass(frozen=True)
class PackageComponent:
    name: str
    unit_price: Decimal
    quantity: int = 1
    service_id: Optional[int] = None


@dataclass(frozen=True)
class PackageLine:
    name: str
    discount_type: str
    discount_value: Decimal
    components: tuple[PackageComponent, ...] = ()
    description: Optional[str] = None
    package_id: Optional[int] = None

    @property
    def quantity(self) -> int:
        return 1


QuoteLine = Union[ServiceLine, PackageLine]


@dataclass(frozen=True)
class PricedLine:
    name: str
    description: Optional[str]
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    package_discount: Optional[Decimal] = None
    service_id: Optional[int] = None
    package_id: Optional[int] = None


@dataclass(frozen=True)
class QuoteTotals:
    lines: list[PricedLine] = field(default_factory=list)
    subtotal: Decimal = ZERO
    package_discounts_total: Decimal = ZERO
    subtotal_after_package_discounts: Decimal = ZERO
    discount: Decimal = ZERO
    discount_type: str = DISCOUNT_FIXED
    discount_amount: Decimal = ZERO
    total: Decimal = ZERO


# ---------------------------------------------------------------------------
# Package helpers
# ---------------------------------------------------------------------------

def package_base_price(components: Sequence[PackageComponent]) -> Decimal:
    return sum((to_decimal(c.unit_price) * c.quantity for c in components), ZERO)


def package_discount(discount_type: str, discount_value, base_price: Decimal) -> Decimal:
    value = to_decimal(discount_value)
    if discount_type == DISCOUNT_PERCENTAGE:
        return base_price * (value / HUNDRED)
    if discount_type == DISCOUNT_FIXED:
        return value
    if discount_type == DISCOUNT_NONE:
        return ZERO
    raise ValueError(f"Unknown package discount type: {discount_type!r}")


def package_services_description(components: Sequence[PackageComponent]) -> str:
    """Describe the package content, e.g. ``"Coupe × 1, Brushing × 2"``."""
    return ", ".join(f"{c.name} × {c.quantity}" for c in components)


def package_pricing(line: PackageLine) -> dict[str, Decimal]:
    """Return base price, discount and final price of a package."""
    base = package_base_price(line.components)
    discount = package_discount(line.discount_type, line.discount_value, base)
    return {
        "base_price": quantize_money(base),
        "discount": quantize_money(discount),
        "final_price": quantize_money(base - discount),
    }


# ---------------------------------------------------------------------------
# Line pricing
# ---------------------------------------------------------------------------

def price_line(line: QuoteLine) -> PricedLine:
    if isinstance(line, ServiceLine):
        unit_price = to_decimal(line.unit_price)
        return PricedLine(
            name=line.name,
            description=line.description,
            unit_price=unit_price,
            quantity=line.quantity,
            line_total=unit_price * line.quantity,
            service_id=line.service_id,
        )
    if isinstance(line, PackageLine):
        base = package_base_price(line.components)
        return PricedLine(
            name=line.name,
            description=line.description or package_services_description(line.components),
            unit_price=base,
            quantity=1,
            line_total=base,
            package_discount=package_discount(line.discount_type, line.discount_value, base),
            package_id=line.package_id,
        )
    raise TypeError(f"Unsupported quote line: {type(line).__name__}")


def edit_line(line: QuoteLine, field_name: str, value) -> QuoteLine:
    """Return *line* with one user-editable field changed.

    Price and quantity of a package line are derived from the catalogue, so
    changing them is a no-op and the same line is returned.
    """
    if field_name in ("price", "quantity") and isinstance(line, PackageLine):
        return line
    if field_name == "price":
        return dataclasses.replace(line, unit_price=to_decimal(value))
    if field_name == "quantity":
        return dataclasses.replace(line, quantity=int(value))
    if field_name in ("name", "description"):
        return dataclasses.replace(line, **{field_name: value})
    raise ValueError(f"Field {field_name!r} is not editable")


# ---------------------------------------------------------------------------
# Quote totals
# ---------------------------------------------------------------------------

def global_discount_amount(base: Decimal, discount_type: str, discount) -> Decimal:
    value = to_decimal(discount)
    if discount_type == DISCOUNT_PERCENTAGE:
        return base * (value / HUNDRED)
    if discount_type == DISCOUNT_FIXED:
        return value
    if discount_type == DISCOUNT_NONE:
        return ZERO
    raise ValueError(f"Unknown discount type: {discount_type!r}")


def compute_quote_totals(
    lines: Sequence[QuoteLine],
    discount=ZERO,
    discount_type: str = DISCOUNT_FIXED,
) -> QuoteTotals:
    """Price every line and assemble the quote totals."""
    return assemble_totals([price_line(line) for line in lines], discount, discount_type)


def assemble_totals(
    priced: Sequence[PricedLine],
    discount=ZERO,
    discount_type: str = DISCOUNT_FIXED,
) -> QuoteTotals:
    """Assemble quote totals from already priced lines.

    The total is not floored at zero: discounts larger than the subtotal
    yield a negative total, which is logged.
    """
    priced = list(priced)
    subtotal = quantize_money(sum((p.line_total for p in priced), ZERO))
    package_discounts_total = quantize_money(
        sum((p.package_discount or ZERO for p in priced), ZERO)
    )
    return discounted_totals(
        priced, subtotal, package_discounts_total, discount, discount_type
    )


def discounted_totals(
    priced: Sequence[PricedLine],
    subtotal: Decimal,
    package_discounts_total: Decimal,
    discount=ZERO,
    discount_type: str = DISCOUNT_FIXED,
) -> QuoteTotals:
    """Apply the global discount on top of already rounded line sums."""
    subtotal = to_decimal(subtotal)
    package_discounts_total = to_decimal(package_discounts_total)
    after_packages = subtotal - package_discounts_total
    discount_amount = quantize_money(
        global_discount_amount(after_packages, discount_type, discount)
    )
    total = after_packages - discount_amount
    if total < ZERO:
        logger.warning(
            "Quote total is negative (%s): discounts exceed the subtotal %s",
            total,
            subtotal,
        )

    return QuoteTotals(
        lines=list(priced),
        subtotal=subtotal,
        package_discounts_total=package_discounts_total,
        subtotal_after_package_discounts=after_packages,
        discount=to_decimal(discount),
        discount_type=discount_type,
        discount_amount=discount_amount,
        total=total,
    )
