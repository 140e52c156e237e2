# cakecraft/demo/seed_pricing.py

import copy
from typing import Any, Dict

from cakecraft.config.loader import AppSettings, load_settings
from cakecraft.storage.document_store import PricingDocumentStore
from cakecraft.storage.repository import initialize_schema

DEFAULT_PRICING_DOCUMENT: Dict[str, Any] = {
    "basePrices": {
        "6inch": 8000,
        "8inch": 15500,
    },
    "layerPrice": 1500,
    "flavorPrices": {
        "chocolate": 0,
        "butter": 0,
        "orange": 0,
        "lemon": 0,
        "orange-poppyseed": 500,
        "lemon-poppyseed": 500,
    },
    "shapePrices": {
        "round": 0,
        "square": 0,
        "heart": 1800,
    },
    "icingTypes": {
        "butter": 0,
        "buttercream": 1000,
        "whipped": 1000,
        "fondant": 1000,
    },
    "decorationPrices": {
        "sprinkles": 500,
        "fresh-fruit": 1200,
        "flowers": 1500,
        "gold-leaf": 1500,
        "happy-birthday": 700,
        "anniversary": 700,
    },
    "dietaryPrices": {
        "halal": 500,
        "eggless": 1000,
        "vegan": 3500,
    },
    "templatePrices": {
        "fathers-day": 0,
    },
    "cakes": {
        "specialty": {
            "burnt-cheesecake": {
                "name": "Burnt Cheesecake",
                "price": 9000,
                "category": "specialty",
                "description": "Basque-style burnt cheesecake, 6 inch",
            },
        },
        "slices": {
            "chocolate-slice": {
                "name": "Chocolate Cake Slice",
                "price": 1200,
                "category": "slices",
                "description": "A single slice of our chocolate butter cake",
            },
        },
        "candy": {
            "coconut-candy-og": {
                "name": "The OG Coconut",
                "price": 4200,
                "category": "candy",
                "description": "Original coconut candy, one jar",
            },
        },
    },
}


def default_pricing_document() -> Dict[str, Any]:
    """Return a fresh copy of the seed pricing document."""
    return copy.deepcopy(DEFAULT_PRICING_DOCUMENT)


def seed(settings: AppSettings) -> bool:
    """Create the order schema and the initial pricing document.

    Returns:
        True if a pricing document was written
    """
    initialize_schema(settings.storage.db_path)
    store = PricingDocumentStore(settings.storage.pricing_path, settings.storage.backup_dir)
    return store.ensure_document(default_pricing_document())


if __name__ == "__main__":
    created = seed(load_settings())
    print("Pricing document created" if created else "Pricing document already present")
