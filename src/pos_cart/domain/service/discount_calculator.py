"""Domain service: Discount Calculator.

Turns a requested discount into an amount against a subtotal.  Pure
function, no state: the same inputs always give the same amount.
"""

from __future__ import annotations

from decimal import Decimal

from pos_cart.domain.model.discount import MAX_PERCENTAGE, DiscountKind, DiscountSpec
from pos_cart.domain.model.value_objects import Money


def compute_discount(subtotal: Money, spec: DiscountSpec) -> Money:
    """Return the discount amount for *spec* applied to *subtotal*.

    - percentage: ``subtotal * clamp(value, 0, 100) / 100``
    - fixed amount: ``min(value, subtotal)``
    - complimentary: the whole subtotal

    The result is rounded half-up to the cent and always satisfies
    ``0 <= amount <= subtotal``.
    """
    if spec.kind is DiscountKind.PERCENTAGE:
        rate = min(max(spec.value, Decimal("0")), MAX_PERCENTAGE)
        amount = subtotal.percent(rate)
    elif spec.kind is DiscountKind.FIXED_AMOUNT:
        value = max(spec.value, Decimal("0"))
        amount = Money(min(value, subtotal.amount), subtotal.currency).rounded()
    else:
        amount = subtotal.rounded()

    # Rounding a fixed value or a 100% share can land a fraction of a cent
    # above an unrounded subtotal.
    if amount > subtotal:
        return subtotal
    return amount
