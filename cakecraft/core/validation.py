"""
Pricing document validation.

Strict checks run before an admin update is allowed to replace the live
pricing document, so a bad edit can never reach the calculator.
"""

import math
from typing import Any, Mapping


REQUIRED_SECTIONS = (
    "basePrices",
    "layerPrice",
    "flavorPrices",
    "shapePrices",
    "icingTypes",
    "decorationPrices",
    "dietaryPrices",
)

# String leaves allowed anywhere in the document (specialty catalogue entries)
DESCRIPTIVE_FIELDS = frozenset({"name", "description", "image", "category"})


class PricingValidationError(ValueError):
    """Raised when a pricing document fails validation."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path
        self.message = message


def validate_pricing_document(document: Any) -> None:
    """Validate a complete pricing document.

    Every required section must be present and every leaf value, apart
    from descriptive text fields, must be a non-negative whole number of
    cents.

    Args:
        document: Parsed JSON pricing document

    Raises:
        PricingValidationError: Naming the first offending path
    """
    if not isinstance(document, Mapping):
        raise PricingValidationError("", "Pricing document must be a JSON object")

    for section in REQUIRED_SECTIONS:
        if section not in document:
            raise PricingValidationError(section, f"Missing required field: {section}")

    for key, value in document.items():
        _validate_node(value, str(key), str(key))


def _validate_node(value: Any, key: str, path: str) -> None:
    if isinstance(value, Mapping):
        for child_key, child in value.items():
            _validate_node(child, str(child_key), f"{path}.{child_key}")
        return

    if isinstance(value, list):
        for index, child in enumerate(value):
            _validate_node(child, key, f"{path}[{index}]")
        return

    if key in DESCRIPTIVE_FIELDS:
        if value is not None and not isinstance(value, str):
            raise PricingValidationError(path, f"{path} must be a string")
        return

    # bool is an int subclass but never a price
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PricingValidationError(path, f"{path} must be a non-negative number")
    # Prices are whole cents; inf, nan and fractions are rejected
    if isinstance(value, float) and not (math.isfinite(value) and value.is_integer()):
        raise PricingValidationError(path, f"{path} must be a non-negative number")
    if value < 0:
        raise PricingValidationError(path, f"{path} must be a non-negative number")
