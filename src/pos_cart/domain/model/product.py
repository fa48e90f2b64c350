"""Product aggregate.

Products and packages live in the catalog independently of carts.  A cart
line copies the name and price at the moment it is added.
"""

from __future__ import annotations

from dataclasses import dataclass

from pos_cart.domain.model.value_objects import Money


@dataclass
class Product:
    """A sellable catalog entry.

    Packages are sold as a single line at the package price; kitchen
    routing expands them elsewhere.
    """

    id: str
    name: str
    price: Money
    is_package: bool = False
