"""
Request and response schemas for the HTTP API.

The storefront speaks camelCase JSON; models use snake_case attributes
with camelCase aliases.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cakecraft.core.checkout import LineItem
from cakecraft.core.pricing import CakeConfiguration


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(BaseModel):
    # Optional so a missing field is a 400, not a schema error
    username: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(CamelModel):
    success: bool
    message: str
    session_token: Optional[str] = None


class PricingUpdateResponse(BaseModel):
    message: str
    backup: str


class BackupOut(BaseModel):
    filename: str
    timestamp: str
    size: int


class CustomerDetails(CamelModel):
    customer_name: str = Field(..., min_length=1, description="Customer full name")
    customer_email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    customer_phone: Optional[str] = None
    delivery_method: Literal["pickup", "delivery"] = "pickup"
    special_instructions: Optional[str] = None


class CakeConfigIn(CamelModel):
    """Custom cake selections as sent by the cake builder."""
    six_inch_cakes: int = Field(0, ge=0)
    eight_inch_cakes: int = Field(0, ge=0)
    layers: int = Field(1, ge=1, le=3)
    shape: str = "round"
    flavors: List[str] = Field(default_factory=list)
    icing_color: str = "#FFB6C1"
    icing_type: str = "butter"
    decorations: List[str] = Field(default_factory=list)
    dietary_restrictions: List[str] = Field(default_factory=list)
    message: Optional[str] = None
    template: Optional[Union[str, int]] = None

    def to_configuration(self) -> CakeConfiguration:
        return CakeConfiguration(
            six_inch_cakes=self.six_inch_cakes,
            eight_inch_cakes=self.eight_inch_cakes,
            layers=self.layers,
            shape=self.shape,
            flavors=list(self.flavors),
            icing_type=self.icing_type,
            decorations=list(self.decorations),
            dietary_restrictions=list(self.dietary_restrictions),
            template=self.template,
            message=self.message,
        )


class OrderCreate(CustomerDetails, CakeConfigIn):
    """Checkout payload for a single custom cake order.

    The price is never taken from the client; it is computed at checkout.
    """


class CheckoutItemIn(CamelModel):
    # Client unitPrice/totalPrice fields are accepted and ignored
    item_type: Literal["custom", "specialty", "slice", "candy"] = Field(..., alias="type")
    quantity: int = Field(1, ge=1)
    cake_config: Optional[CakeConfigIn] = None
    specialty_id: Optional[str] = None

    def to_line_item(self) -> LineItem:
        return LineItem(
            item_type=self.item_type,
            quantity=self.quantity,
            configuration=self.cake_config.to_configuration() if self.cake_config else None,
            catalogue_id=self.specialty_id,
        )


class CheckoutRequest(CamelModel):
    """Multi-item checkout: customer details plus one or more cart lines."""
    customer: CustomerDetails
    items: List[CheckoutItemIn] = Field(..., min_length=1)


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)
