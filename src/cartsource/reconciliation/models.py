"""
Request and response models for the reconciler's client-facing surface.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from cartsource.events.cart import ItemKind
from cartsource.exceptions import InvalidQuantityError, InvalidRequestError
from cartsource.projections.models import Cart, CartItem


class AddItemRequest(BaseModel):
    """
    Item to add via ``CartReconciler.add_item``.

    Accepts both snake_case names and the camelCase/short names commonly
    used by HTTP clients (``itemId``, ``type``, ``price``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    item_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("item_id", "itemId"),
    )
    kind: ItemKind = Field(..., validation_alias=AliasChoices("kind", "type"))
    name: str = Field(..., min_length=1)
    unit_price: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("unit_price", "unitPrice", "price"),
    )
    quantity: int = Field(..., gt=0, strict=True)

    def to_cart_item(self) -> CartItem:
        return CartItem(
            id=self.item_id,
            kind=self.kind,
            name=self.name,
            unit_price=self.unit_price,
            quantity=self.quantity,
        )

    @classmethod
    def parse(cls, data: "AddItemRequest | dict[str, Any]") -> "AddItemRequest":
        """
        Validate raw input into an AddItemRequest.

        Raises:
            InvalidQuantityError: If the quantity is missing or not a positive integer
            InvalidRequestError: If any other field is missing or invalid
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, dict):
            raise InvalidRequestError(f"Item request must be an object, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = e.errors()
            for error in errors:
                if error["loc"] and error["loc"][0] == "quantity":
                    raise InvalidQuantityError(data.get("quantity")) from e
            first = errors[0]
            field = str(first["loc"][0]) if first["loc"] else None
            message = f"Invalid {field or 'request'}: {first['msg']}"
            raise InvalidRequestError(message, field=field) from e


class SessionCreated(BaseModel):
    """Response for a newly created experience session."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    cart: Cart
