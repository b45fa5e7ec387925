"""
Billing calculation.

The single place where cart, order and receipt totals are computed, so
terminals, the backend and printed bills can never drift apart.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, ROUND_HALF_UP
from typing import Protocol

from shared.config.constants import BAR_CATEGORY_KEYWORDS
from shared.config.settings import settings
from shared.utils.schemas import Totals


class BillableLine(Protocol):
    category: str

    @property
    def line_total_cents(self) -> int: ...


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def is_bar_category(category: str | None) -> bool:
    """True when a category routes to the bar and counts as drink revenue."""
    if not category:
        return False
    lowered = category.lower()
    return any(keyword in lowered for keyword in BAR_CATEGORY_KEYWORDS)


def compute_totals(
    lines: Iterable[BillableLine],
    *,
    tax_rate_percent: float | None = None,
    tax_inclusive: bool | None = None,
    tax_cents: int | None = None,
    service_charge_cents: int = 0,
) -> Totals:
    """
    Compute subtotal, tax and total for a set of lines.

    Each line contributes `(unit price + modifier prices) * quantity`.
    Tax defaults to `settings.tax_rate_percent` of the subtotal; an explicit
    `tax_cents` wins. With tax-inclusive pricing the menu prices already
    contain tax, so the total equals the subtotal and tax is the included
    share.
    """
    rate = Decimal(str(settings.tax_rate_percent if tax_rate_percent is None else tax_rate_percent))
    inclusive = settings.tax_inclusive_pricing if tax_inclusive is None else tax_inclusive

    subtotal = sum(line.line_total_cents for line in lines)

    if inclusive:
        if tax_cents is None:
            tax_cents = _round_cents(Decimal(subtotal) * rate / (Decimal(100) + rate))
        total = subtotal
    else:
        if tax_cents is None:
            tax_cents = _round_cents(Decimal(subtotal) * rate / Decimal(100))
        total = subtotal + tax_cents

    return Totals(
        subtotal_cents=subtotal,
        tax_cents=tax_cents,
        total_cents=total + service_charge_cents,
    )


def split_revenue(lines: Iterable[BillableLine]) -> tuple[int, int]:
    """
    Split line amounts into (food_cents, drink_cents).

    Uses the same category keywords as ticket routing.
    """
    food = 0
    drink = 0
    for line in lines:
        if is_bar_category(line.category):
            drink += line.line_total_cents
        else:
            food += line.line_total_cents
    return food, drink
