"""
Pricing calculations for custom cake orders.

Turns a cake configuration into an itemised price breakdown using the
current pricing document. All amounts are integer cents.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union


PROMOTIONAL_TEMPLATE = "fathers-day"
# Legacy identifiers the storefront still sends for the same promotion
PROMOTIONAL_TEMPLATE_ALIASES = ("fathers-day", "999", 999)

SIX_INCH = "6inch"
EIGHT_INCH = "8inch"

_WHITESPACE = re.compile(r"\s+")


class ZeroCakeSelectionError(ValueError):
    """Raised when a configuration selects no cakes at all."""

    def __init__(self, message: str = "Must select at least one cake"):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class CakeConfiguration:
    """Customer selections for a single custom cake line.

    Counts are already sanitised: never negative, never missing.
    """
    six_inch_cakes: int = 0
    eight_inch_cakes: int = 0
    layers: int = 1
    shape: str = "round"
    flavors: List[str] = field(default_factory=list)
    icing_type: str = "butter"
    decorations: List[str] = field(default_factory=list)
    dietary_restrictions: List[str] = field(default_factory=list)
    template: Optional[Union[str, int]] = None
    message: Optional[str] = None

    @property
    def total_cakes(self) -> int:
        """Number of cakes across both sizes."""
        return self.six_inch_cakes + self.eight_inch_cakes

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CakeConfiguration":
        """Build a configuration from a loosely typed JSON body.

        Missing or unparseable numbers become 0 and negative counts clamp
        to 0. Only ``layers`` defaults to 1 when absent.

        Args:
            payload: Request body using the storefront's camelCase keys

        Returns:
            Sanitised CakeConfiguration
        """
        return cls(
            six_inch_cakes=_to_count(payload.get("sixInchCakes", 0)),
            eight_inch_cakes=_to_count(payload.get("eightInchCakes", 0)),
            layers=_to_count(payload.get("layers", 1)),
            shape=str(payload.get("shape") or "round"),
            flavors=_to_list(payload.get("flavors")),
            icing_type=str(payload.get("icingType") or "butter"),
            decorations=_to_list(payload.get("decorations")),
            dietary_restrictions=_to_list(payload.get("dietaryRestrictions")),
            template=payload.get("template"),
            message=payload.get("message"),
        )


@dataclass(frozen=True)
class PriceBreakdown:
    """Itemised price for a configuration, in cents."""
    base_price: int
    layer_price: int
    flavor_price: int
    shape_price: int
    decoration_total: int
    icing_price: int
    dietary_upcharge: int
    template_price: int
    cake_quantity: int
    total_price: int

    @property
    def itemized_total(self) -> int:
        """Sum of every contributing line item."""
        return (
            self.base_price
            + self.layer_price
            + self.flavor_price
            + self.shape_price
            + self.decoration_total
            + self.icing_price
            + self.dietary_upcharge
            + self.template_price
        )

    def to_dict(self) -> Dict[str, Any]:
        """Render the breakdown in the storefront's wire format."""
        return {
            "basePrice": self.base_price,
            "layerPrice": self.layer_price,
            "flavorPrice": self.flavor_price,
            "shapePrice": self.shape_price,
            "decorationTotal": self.decoration_total,
            "icingPrice": self.icing_price,
            "dietaryUpcharge": self.dietary_upcharge,
            "templatePrice": self.template_price,
            "cakeQuantity": self.cake_quantity,
            "totalPrice": self.total_price,
            "breakdown": {
                "base": self.base_price,
                "layers": self.layer_price,
                "flavors": self.flavor_price,
                "shape": self.shape_price,
                "decorations": self.decoration_total,
                "icing": self.icing_price,
                "dietary": self.dietary_upcharge,
                "template": self.template_price,
            },
        }


def is_promotional_template(template: Optional[Union[str, int]]) -> bool:
    """Check whether a template id selects the seasonal promotion."""
    if template is None or isinstance(template, bool):
        return False
    return template in PROMOTIONAL_TEMPLATE_ALIASES


def normalize_key(value: Any) -> str:
    """Normalise a selection label to its pricing key ("Gold Leaf" -> "gold-leaf")."""
    return _WHITESPACE.sub("-", str(value)).lower()


def calculate_price(config: CakeConfiguration, document: Mapping[str, Any]) -> PriceBreakdown:
    """Calculate the price of a cake configuration.

    Every per-cake charge is multiplied by the number of cakes ordered.
    Keys missing from the pricing document are priced at zero.

    Args:
        config: Sanitised cake configuration
        document: Current pricing document

    Returns:
        PriceBreakdown with every line item in cents

    Raises:
        ZeroCakeSelectionError: If no cakes are selected
    """
    total_cakes = config.total_cakes
    if total_cakes == 0:
        raise ZeroCakeSelectionError()

    base_prices = _section(document, "basePrices")
    base_price = (
        config.six_inch_cakes * _price(base_prices, SIX_INCH)
        + config.eight_inch_cakes * _price(base_prices, EIGHT_INCH)
    )

    # Seasonal promotion: base price plus a flat per-cake template charge
    if is_promotional_template(config.template):
        template_price = _price(_section(document, "templatePrices"), PROMOTIONAL_TEMPLATE) * total_cakes
        return PriceBreakdown(
            base_price=base_price,
            layer_price=0,
            flavor_price=0,
            shape_price=0,
            decoration_total=0,
            icing_price=0,
            dietary_upcharge=0,
            template_price=template_price,
            cake_quantity=total_cakes,
            total_price=base_price + template_price,
        )

    layer_price = max(0, config.layers - 1) * _price(document, "layerPrice") * total_cakes

    flavor_price = _sum_prices(_section(document, "flavorPrices"), config.flavors) * total_cakes
    shape_price = _price(_section(document, "shapePrices"), config.shape) * total_cakes
    decoration_total = _sum_prices(_section(document, "decorationPrices"), config.decorations) * total_cakes
    icing_price = _price(_section(document, "icingTypes"), normalize_key(config.icing_type)) * total_cakes
    dietary_upcharge = _sum_prices(_section(document, "dietaryPrices"), config.dietary_restrictions) * total_cakes

    total_price = (
        base_price
        + layer_price
        + flavor_price
        + shape_price
        + decoration_total
        + icing_price
        + dietary_upcharge
    )

    return PriceBreakdown(
        base_price=base_price,
        layer_price=layer_price,
        flavor_price=flavor_price,
        shape_price=shape_price,
        decoration_total=decoration_total,
        icing_price=icing_price,
        dietary_upcharge=dietary_upcharge,
        template_price=0,
        cake_quantity=total_cakes,
        total_price=total_price,
    )


def _section(document: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = document.get(name)
    return value if isinstance(value, Mapping) else {}


def _price(prices: Mapping[str, Any], key: str) -> int:
    value = prices.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)


def _sum_prices(prices: Mapping[str, Any], selections: List[str]) -> int:
    return sum(_price(prices, normalize_key(item)) for item in selections)


def _to_count(value: Any) -> int:
    """Coerce a request value to a non-negative integer (invalid -> 0)."""
    if isinstance(value, bool):
        return 0
    try:
        count = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, count)


def _to_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]
