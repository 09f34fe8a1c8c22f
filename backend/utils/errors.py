"""Domain errors raised by the cart, coupon and order services."""
import enum


class ErrorKind(str, enum.Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    INVALID_PRODUCT = "INVALID_PRODUCT"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    CART_NOT_FOUND = "CART_NOT_FOUND"
    CART_ITEM_NOT_FOUND = "CART_ITEM_NOT_FOUND"
    EMPTY_ORDER = "EMPTY_ORDER"
    EMPTY_CART = "EMPTY_CART"
    NO_COUPON_APPLIED = "NO_COUPON_APPLIED"
    COUPON_NOT_FOUND = "COUPON_NOT_FOUND"
    COUPON_ALREADY_EXISTS = "COUPON_ALREADY_EXISTS"
    COUPON_INACTIVE = "COUPON_INACTIVE"
    COUPON_NOT_YET_VALID = "COUPON_NOT_YET_VALID"
    COUPON_EXPIRED = "COUPON_EXPIRED"
    COUPON_EXHAUSTED = "COUPON_EXHAUSTED"
    COUPON_PER_USER_LIMIT_REACHED = "COUPON_PER_USER_LIMIT_REACHED"
    COUPON_MIN_ORDER_NOT_MET = "COUPON_MIN_ORDER_NOT_MET"
    COUPON_MAX_ORDER_EXCEEDED = "COUPON_MAX_ORDER_EXCEEDED"
    COUPON_NOT_ELIGIBLE = "COUPON_NOT_ELIGIBLE"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# HTTP status used when the error reaches the API layer
STATUS_CODES = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.VALIDATION_ERROR: 422,
    ErrorKind.PRODUCT_NOT_FOUND: 404,
    ErrorKind.INVALID_PRODUCT: 400,
    ErrorKind.INSUFFICIENT_STOCK: 409,
    ErrorKind.CART_NOT_FOUND: 404,
    ErrorKind.CART_ITEM_NOT_FOUND: 404,
    ErrorKind.EMPTY_ORDER: 400,
    ErrorKind.EMPTY_CART: 400,
    ErrorKind.NO_COUPON_APPLIED: 400,
    ErrorKind.COUPON_NOT_FOUND: 404,
    ErrorKind.COUPON_ALREADY_EXISTS: 409,
    ErrorKind.ORDER_NOT_FOUND: 404,
    ErrorKind.INVALID_STATUS_TRANSITION: 409,
    ErrorKind.INTERNAL_ERROR: 500,
}

COUPON_ERRORS = frozenset({
    ErrorKind.COUPON_INACTIVE,
    ErrorKind.COUPON_NOT_YET_VALID,
    ErrorKind.COUPON_EXPIRED,
    ErrorKind.COUPON_EXHAUSTED,
    ErrorKind.COUPON_PER_USER_LIMIT_REACHED,
    ErrorKind.COUPON_MIN_ORDER_NOT_MET,
    ErrorKind.COUPON_MAX_ORDER_EXCEEDED,
    ErrorKind.COUPON_NOT_ELIGIBLE,
})


class DomainError(Exception):
    """Business-rule failure with a machine-readable kind and a readable message."""

    def __init__(self, kind: ErrorKind, message: str, details: list | None = None):
        self.kind = ErrorKind(kind)
        self.message = message
        self.details = details or []
        super().__init__(message)

    @property
    def status_code(self) -> int:
        # Coupon rule failures are plain bad requests
        return STATUS_CODES.get(self.kind, 400)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.kind.value, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body

    def __repr__(self):
        return f"DomainError({self.kind.value}, {self.message!r})"
