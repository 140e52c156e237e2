"""
Data models for storage layer.

Defines persisted orders, their line items and pricing document backups.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PricingBackup:
    """Immutable snapshot of a previous pricing document.

    Created as a side effect of every successful pricing update and
    never modified afterwards.
    """
    filename: str
    path: str
    timestamp: datetime
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "timestamp": self.timestamp.isoformat(),
            "size": self.size,
        }


@dataclass(frozen=True)
class OrderItem:
    """One line of a multi-item order.

    Custom cakes carry their configuration; catalogue items carry the
    catalogue id and description instead.
    """
    item_type: str
    item_name: str
    quantity: int
    unit_price: int
    total_price: int
    six_inch_cakes: Optional[int] = None
    eight_inch_cakes: Optional[int] = None
    layers: Optional[int] = None
    shape: Optional[str] = None
    flavors: Optional[List[str]] = None
    icing_color: Optional[str] = None
    icing_type: Optional[str] = None
    decorations: Optional[List[str]] = None
    dietary_restrictions: Optional[List[str]] = None
    message: Optional[str] = None
    catalogue_id: Optional[str] = None
    description: Optional[str] = None
    order_id: Optional[int] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "itemType": self.item_type,
            "itemName": self.item_name,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "totalPrice": self.total_price,
            "sixInchCakes": self.six_inch_cakes,
            "eightInchCakes": self.eight_inch_cakes,
            "layers": self.layers,
            "shape": self.shape,
            "flavors": self.flavors,
            "icingColor": self.icing_color,
            "icingType": self.icing_type,
            "decorations": self.decorations,
            "dietaryRestrictions": self.dietary_restrictions,
            "message": self.message,
            "specialtyId": self.catalogue_id,
            "description": self.description,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class CakeOrder:
    """A placed order.

    ``total_price`` is stamped from the price calculator at checkout and
    stored in cents. Multi-item orders list their lines in ``items``; the
    cake fields then keep their defaults.
    """
    customer_name: str
    customer_email: str
    total_price: int
    six_inch_cakes: int = 0
    eight_inch_cakes: int = 0
    layers: int = 1
    shape: str = "round"
    flavors: List[str] = field(default_factory=list)
    icing_color: str = "#FFB6C1"
    icing_type: str = "butter"
    decorations: List[str] = field(default_factory=list)
    dietary_restrictions: List[str] = field(default_factory=list)
    message: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_method: str = "pickup"
    special_instructions: Optional[str] = None
    template: Optional[str] = None
    status: str = "pending"
    order_date: Optional[datetime] = None
    id: Optional[int] = None
    items: List[OrderItem] = field(default_factory=list)

    @property
    def total_cakes(self) -> int:
        return self.six_inch_cakes + self.eight_inch_cakes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "customerPhone": self.customer_phone,
            "deliveryMethod": self.delivery_method,
            "specialInstructions": self.special_instructions,
            "sixInchCakes": self.six_inch_cakes,
            "eightInchCakes": self.eight_inch_cakes,
            "layers": self.layers,
            "shape": self.shape,
            "flavors": list(self.flavors),
            "icingColor": self.icing_color,
            "icingType": self.icing_type,
            "decorations": list(self.decorations),
            "dietaryRestrictions": list(self.dietary_restrictions),
            "message": self.message,
            "template": self.template,
            "totalPrice": self.total_price,
            "status": self.status,
            "orderDate": self.order_date.isoformat() if self.order_date else None,
            "items": [item.to_dict() for item in self.items],
        }
