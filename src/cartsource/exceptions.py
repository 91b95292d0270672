"""Library exceptions for the cartsource package.

Every client-facing failure is a ``CartError`` subclass bound to exactly one
``ErrorCode``. The code is the closed tag an outer layer (such as an HTTP
adapter) switches on; the offending identifiers travel as attributes rather
than being embedded only in the message text.
"""

from enum import Enum
from typing import Any, ClassVar


class ErrorCode(str, Enum):
    """Stable identifiers for every error variant."""

    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    EMPTY_CART = "EMPTY_CART"
    SESSION_COMPLETED = "SESSION_COMPLETED"
    CONTEXT_EXPIRED = "CONTEXT_EXPIRED"


class CartSourceError(Exception):
    """Base exception for cartsource library."""

    pass


class CartError(CartSourceError):
    """
    Base class for errors surfaced to cart clients.

    Attributes:
        code: The ErrorCode identifying this variant
    """

    code: ClassVar[ErrorCode]

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to a transport-friendly dictionary.

        Returns:
            Dictionary with ``error`` (the code value) and ``message`` keys
        """
        return {"error": self.code.value, "message": str(self)}


class SessionNotFoundError(CartError):
    """Raised when an experience session does not exist (or was swept)."""

    code = ErrorCode.SESSION_NOT_FOUND

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class ItemNotFoundError(CartError):
    """Raised when a cart line is not present, either in a projection or in a backend context."""

    code = ErrorCode.ITEM_NOT_FOUND

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found in cart")


class InvalidRequestError(CartError):
    """
    Raised when a request is malformed.

    Attributes:
        field: Name of the offending field, if known
    """

    code = ErrorCode.INVALID_REQUEST

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidQuantityError(InvalidRequestError):
    """Raised when a quantity is missing, non-integral or not positive."""

    code = ErrorCode.INVALID_QUANTITY

    def __init__(self, quantity: Any, message: str = "Quantity must be a positive integer") -> None:
        self.quantity = quantity
        super().__init__(message, field="quantity")


class EmptyCartError(CartError):
    """Raised when checking out a cart that has no items."""

    code = ErrorCode.EMPTY_CART

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__("Cannot checkout an empty cart")


class SessionCompletedError(CartError):
    """Raised when a mutation targets a session that has already been checked out."""

    code = ErrorCode.SESSION_COMPLETED

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} has already been checked out")


class ContextExpiredError(CartError):
    """
    Raised by a cart backend when a context handle is unknown or idle past its TTL.

    The reconciler absorbs this error by rebuilding the context. It only
    reaches callers when the single retry after a replay fails the same way.
    """

    code = ErrorCode.CONTEXT_EXPIRED

    def __init__(self, handle: str) -> None:
        self.handle = handle
        super().__init__(f"Backend context {handle} has expired")
