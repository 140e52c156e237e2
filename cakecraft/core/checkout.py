"""
Multi-item cart pricing.

A cart mixes custom cakes, priced through the cake calculator, with
catalogue items (specialty cakes, slices, candy) priced from the ``cakes``
section of the pricing document. Every price is taken from the current
document; prices sent by the client are never used.
"""

import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

from .pricing import CakeConfiguration, calculate_price


CUSTOM = "custom"
CUSTOM_CAKE_NAME = "Custom Cake"

# Item type -> section of the "cakes" catalogue
CATALOGUE_SECTIONS = {
    "specialty": "specialty",
    "slice": "slices",
    "candy": "candy",
}

ITEM_TYPES = (CUSTOM,) + tuple(CATALOGUE_SECTIONS)


class CheckoutError(ValueError):
    """Raised when a cart cannot be priced."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class LineItem:
    """One requested cart line, before pricing."""
    item_type: str
    quantity: int = 1
    configuration: Optional[CakeConfiguration] = None
    catalogue_id: Optional[str] = None


@dataclass(frozen=True)
class PricedLineItem:
    """A cart line with server-side prices in cents."""
    item_type: str
    name: str
    quantity: int
    unit_price: int
    total_price: int
    configuration: Optional[CakeConfiguration] = None
    catalogue_id: Optional[str] = None
    description: Optional[str] = None


def price_line_item(item: LineItem, document: Mapping[str, Any]) -> PricedLineItem:
    """Price a single cart line against the pricing document.

    Raises:
        CheckoutError: For an unknown item, a missing configuration or a
            quantity below one
        ZeroCakeSelectionError: For a custom cake with no cakes selected
    """
    if item.quantity < 1:
        raise CheckoutError("Item quantity must be at least 1")

    if item.item_type == CUSTOM:
        if item.configuration is None:
            raise CheckoutError("Custom cake items require a cake configuration")
        unit_price = calculate_price(item.configuration, document).total_price
        return PricedLineItem(
            item_type=CUSTOM,
            name=CUSTOM_CAKE_NAME,
            quantity=item.quantity,
            unit_price=unit_price,
            total_price=unit_price * item.quantity,
            configuration=item.configuration,
        )

    entry = _catalogue_entry(document, item.item_type, item.catalogue_id)
    unit_price = _catalogue_price(entry, item.item_type, item.catalogue_id)
    description = entry.get("description")
    return PricedLineItem(
        item_type=item.item_type,
        name=str(entry.get("name") or item.catalogue_id),
        quantity=item.quantity,
        unit_price=unit_price,
        total_price=unit_price * item.quantity,
        catalogue_id=item.catalogue_id,
        description=description if isinstance(description, str) else None,
    )


def price_cart(items: Sequence[LineItem], document: Mapping[str, Any]) -> List[PricedLineItem]:
    """Price every line of a cart.

    Raises:
        CheckoutError: If the cart is empty or any line is invalid
    """
    if not items:
        raise CheckoutError("At least one item is required")
    return [price_line_item(item, document) for item in items]


def cart_total(items: Sequence[PricedLineItem]) -> int:
    return sum(item.total_price for item in items)


def _catalogue_entry(
    document: Mapping[str, Any], item_type: str, catalogue_id: Optional[str]
) -> Mapping[str, Any]:
    if item_type not in CATALOGUE_SECTIONS:
        raise CheckoutError(f"Unknown item type: {item_type}")
    if not catalogue_id:
        raise CheckoutError(f"{item_type} items require an item id")

    cakes = document.get("cakes")
    section = cakes.get(CATALOGUE_SECTIONS[item_type]) if isinstance(cakes, Mapping) else None
    entry = section.get(catalogue_id) if isinstance(section, Mapping) else None
    if not isinstance(entry, Mapping):
        raise CheckoutError(f"Unknown {item_type} item: {catalogue_id}")
    return entry


def _catalogue_price(entry: Mapping[str, Any], item_type: str, catalogue_id: Optional[str]) -> int:
    # Unlike add-ons, an unpriced catalogue item is not sold for free
    price = entry.get("price")
    if isinstance(price, bool) or not isinstance(price, (int, float)) or not math.isfinite(price):
        raise CheckoutError(f"{item_type} item {catalogue_id} has no price")
    return int(price)
