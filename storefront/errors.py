"""Доменные ошибки магазина.

Каждая ошибка знает свой HTTP-статус; рендерит их обработчик в main.py.
"""


class ShopError(Exception):
    """Базовая ошибка магазина."""

    status_code = 500
    error = "InternalServerError"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ---------- 404 ----------
class NotFoundError(ShopError):
    status_code = 404
    error = "NotFound"


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User with ID {user_id} not found")


class AddressNotFoundError(NotFoundError):
    def __init__(self, address_id):
        self.address_id = address_id
        super().__init__(f"Address with ID {address_id} not found or does not belong to user")


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class NotificationNotFoundError(NotFoundError):
    def __init__(self, notification_id):
        self.notification_id = notification_id
        super().__init__(f"Notification {notification_id} not found")


# ---------- 400 ----------
class BadRequestError(ShopError):
    status_code = 400
    error = "BadRequest"


class EmptyOrderError(BadRequestError):
    def __init__(self):
        super().__init__("Order must contain at least one item")


class ProductInactiveError(BadRequestError):
    def __init__(self, product_id, name: str):
        self.product_id = product_id
        super().__init__(f"Product {name} is not available")


class MissingOrderReferenceError(BadRequestError):
    def __init__(self):
        super().__init__("Missing order reference")


class InvalidInitialStatusError(BadRequestError):
    def __init__(self, status):
        self.status = status
        super().__init__(f"Order cannot be created with status {status}")


class InvalidSignatureError(BadRequestError):
    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Invalid signature for order {order_id}")


# ---------- 409 ----------
class InsufficientStockError(ShopError):
    status_code = 409
    error = "Conflict"

    def __init__(self, product_id, name: str, available=None):
        self.product_id = product_id
        self.available = available
        msg = f"Insufficient stock for product {name}"
        if available is not None:
            msg = f"{msg}. Available: {available}"
        super().__init__(msg)


# ---------- 401 / 403 ----------
class UnauthorizedError(ShopError):
    status_code = 401
    error = "Unauthorized"


class ForbiddenError(ShopError):
    status_code = 403
    error = "Forbidden"
