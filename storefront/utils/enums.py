from enum import Enum

class UserRole(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# Статус оплаты хранится строкой: шлюз может прислать что угодно
class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"
    REVERSED = "REVERSED"
    HELD = "HELD"
    INITIATED = "INITIATED"
    EXPIRED = "EXPIRED"
    ABANDONED = "ABANDONED"
    ANTIFRAUD = "ANTIFRAUD"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"


class StockChange(str, Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
