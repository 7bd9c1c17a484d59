import enum
from typing import Optional


class CheckoutErrorKind(str, enum.Enum):
    MISSING_IDENTITY = "missing_identity"
    EMPTY_CART = "empty_cart"
    INVALID_QUANTITY = "invalid_quantity"
    PRODUCT_NOT_FOUND = "product_not_found"
    OUT_OF_STOCK = "out_of_stock"
    INSUFFICIENT_STOCK = "insufficient_stock"
    RESERVATION_FAILED = "reservation_failed"
    PERSISTENCE_ERROR = "persistence_error"
    CONCURRENCY_VIOLATION = "concurrency_violation"
    TIMEOUT = "timeout"


class CheckoutError(Exception):
    """
    Base for every failure the checkout path can report.

    ``kind`` is fixed per subclass so callers branch on the tag instead of
    on exception types. ``message`` is safe to show to the user.
    """

    kind: CheckoutErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingIdentity(CheckoutError):
    kind = CheckoutErrorKind.MISSING_IDENTITY

    def __init__(self):
        super().__init__("user ID not found")


class EmptyCart(CheckoutError):
    kind = CheckoutErrorKind.EMPTY_CART

    def __init__(self):
        super().__init__("Cart is empty")


class InvalidQuantity(CheckoutError):
    kind = CheckoutErrorKind.INVALID_QUANTITY

    def __init__(self, product_id: int, quantity: int):
        super().__init__("quantity must be positive")
        self.product_id = product_id
        self.quantity = quantity


class ProductNotFound(CheckoutError):
    kind = CheckoutErrorKind.PRODUCT_NOT_FOUND

    def __init__(self, product_id: int):
        super().__init__(f"product {product_id} not found")
        self.product_id = product_id


class OutOfStock(CheckoutError):
    kind = CheckoutErrorKind.OUT_OF_STOCK

    def __init__(self, product_id: int, name: str):
        super().__init__(f"Product {name} is out of stock")
        self.product_id = product_id
        self.name = name


class InsufficientStock(CheckoutError):
    kind = CheckoutErrorKind.INSUFFICIENT_STOCK

    def __init__(self, product_id: int, name: str, available: int):
        super().__init__(f"Product {name} has only {available} items left")
        self.product_id = product_id
        self.name = name
        self.available = available


class ReservationFailed(CheckoutError):
    kind = CheckoutErrorKind.RESERVATION_FAILED

    def __init__(self, product_id: int):
        super().__init__(f"could not reserve stock for product {product_id}")
        self.product_id = product_id


class PersistenceError(CheckoutError):
    kind = CheckoutErrorKind.PERSISTENCE_ERROR

    def __init__(self, detail: str = ""):
        # detail is for logs only
        super().__init__("internal server error")
        self.detail = detail


class ConcurrencyViolation(CheckoutError):
    kind = CheckoutErrorKind.CONCURRENCY_VIOLATION

    def __init__(
        self, product_id: int, expected: Optional[int] = None, actual: Optional[int] = None
    ):
        super().__init__("stock changed concurrently")
        self.product_id = product_id
        self.expected = expected
        self.actual = actual


class CheckoutTimeout(CheckoutError):
    kind = CheckoutErrorKind.TIMEOUT

    def __init__(self):
        super().__init__("checkout timed out")
