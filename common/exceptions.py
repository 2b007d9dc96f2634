"""
Folio - Custom Exceptions
==========================
Business-level exceptions that can be caught and converted to HTTP responses.
Each carries an HTTP status and a machine-readable code.
"""

from fastapi import status


class FolioError(Exception):
    """Base exception for all business logic errors."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "FOLIO_ERROR"

    def __init__(self, message: str = "An unexpected error occurred."):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(FolioError):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_REQUIRED"


class AuthorizationError(FolioError):
    """Raised when user lacks permission."""
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


# ==========================================
# 404 - Not found
# ==========================================

class NotFoundError(FolioError):
    """Raised when a requested resource doesn't exist."""
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id=None):
        msg = f"Product not found: {product_id}" if product_id is not None else "Product not found"
        self.product_id = product_id
        super().__init__(msg)


class AddressNotFoundError(NotFoundError):
    code = "ADDRESS_NOT_FOUND"

    def __init__(self):
        super().__init__("Address not found")


class OrderNotFoundError(NotFoundError):
    code = "ORDER_NOT_FOUND"

    def __init__(self):
        super().__init__("Order not found")


class PaymentNotFoundError(NotFoundError):
    code = "PAYMENT_NOT_FOUND"

    def __init__(self):
        super().__init__("Payment not found")


class CartItemNotFoundError(NotFoundError):
    code = "CART_ITEM_NOT_FOUND"

    def __init__(self):
        super().__init__("Item not found in cart")


# ==========================================
# 400 - Stock
# ==========================================

class OutOfStockError(FolioError):
    """Raised when a product with no stock is added to a cart."""
    code = "OUT_OF_STOCK"

    def __init__(self, product_id=None):
        self.product_id = product_id
        super().__init__("Product is out of stock")


class InsufficientStockError(FolioError):
    """Raised when product inventory is not enough for the requested quantity."""
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str = "", product_id=None):
        msg = f"Insufficient stock for product: {product_name}" if product_name else "Insufficient stock"
        self.product_id = product_id
        super().__init__(msg)


# ==========================================
# 400 - Input shape
# ==========================================

class DuplicateProductError(FolioError):
    code = "DUPLICATE_PRODUCT"

    def __init__(self):
        super().__init__("Duplicate product in order")


class EmptyOrderError(FolioError):
    code = "EMPTY_ORDER"

    def __init__(self):
        super().__init__("No items in cart")


class InvalidQuantityError(FolioError):
    code = "INVALID_QUANTITY"

    def __init__(self, message: str = "Invalid quantity"):
        super().__init__(message)


class InvalidPriceError(FolioError):
    code = "INVALID_PRICE"


class InvalidShippingMethodError(FolioError):
    code = "INVALID_SHIPPING_METHOD"

    def __init__(self, method: str):
        super().__init__(f"Invalid shipping method: {method}")


class InvalidPaymentMethodError(FolioError):
    code = "INVALID_PAYMENT_METHOD"

    def __init__(self, method: str):
        super().__init__(f"Invalid payment method: {method}")


class InvalidStatusError(FolioError):
    code = "INVALID_STATUS"


class DuplicateError(FolioError):
    """Raised for unique constraint violations at the business level."""
    status_code = status.HTTP_409_CONFLICT
    code = "DUPLICATE"


# ==========================================
# 409 - State conflicts
# ==========================================

class OrderNotCancellableError(FolioError):
    status_code = status.HTTP_409_CONFLICT
    code = "ORDER_NOT_CANCELLABLE"

    def __init__(self, current_status: str = ""):
        msg = "Order cannot be cancelled"
        if current_status:
            msg += f" (status: {current_status})"
        super().__init__(msg)


class ShipmentClosedError(FolioError):
    status_code = status.HTTP_409_CONFLICT
    code = "SHIPMENT_CLOSED"

    def __init__(self, reason: str):
        super().__init__(f"Shipment can no longer be updated ({reason})")


class PaymentNotRefundableError(FolioError):
    code = "PAYMENT_NOT_REFUNDABLE"

    def __init__(self):
        super().__init__("Only completed payments can be refunded")


# ==========================================
# Internal - retried by the payment processor
# ==========================================

class PaymentProcessingFailedError(FolioError):
    """Raised by a gateway when a charge is declined or errors out."""
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "PAYMENT_PROCESSING_FAILED"

