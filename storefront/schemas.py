"""Pydantic-схемы тел запросов и сериализация ответов (camelCase, как ждёт фронт)."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.order import Order
from storefront.models.notification import Notification
from storefront.utils.enums import OrderStatus


# --- Запросы ---


class CartItemSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(..., alias="productId")
    quantity: int = Field(..., ge=1)


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., alias="userId")
    address_id: int = Field(..., alias="addressId")
    # пустой список пропускаем сюда: сервис отвечает на него 400
    items: List[CartItemSchema]
    notes: Optional[str] = None
    status: Optional[OrderStatus] = None


class UpdateOrderRequest(BaseModel):
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None


class CreatePaymentSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., alias="userId")
    address_id: int = Field(..., alias="addressId")
    items: List[CartItemSchema]
    notes: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


# --- Ответы ---


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def serialize_order(order: Order) -> dict:
    return {
        "id": order.id,
        "userId": order.user_id,
        "status": order.status.value,
        "total": float(order.total),
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
        "user": {"name": order.user.name, "email": order.user.email} if order.user else None,
        "items": [
            {
                "id": item.id,
                "productId": item.product_id,
                "quantity": item.quantity,
                "price": float(item.price),
                "product": {"id": item.product.id, "name": item.product.name} if item.product else None,
            }
            for item in order.items
        ],
        "shippingName": order.shipping_name,
        "shippingPhone": order.shipping_phone,
        "shippingAddress": order.shipping_address,
        "shippingCity": order.shipping_city,
        "shippingState": order.shipping_state,
        "shippingZip": order.shipping_zip,
        "shippingCountry": order.shipping_country,
        "shippingNotes": order.shipping_notes,
        "paymentMethod": order.payment_method,
        "paymentStatus": order.payment_status,
        "paymentReference": order.payment_reference,
        "paymentApprovalCode": order.payment_approval_code,
        "paymentResponseCode": order.payment_response_code,
        "paymentResponseMessage": order.payment_response_message,
        "paymentTransactionId": order.payment_transaction_id,
        "paymentDate": _iso(order.payment_date),
        "isTestPayment": bool(order.is_test_payment),
    }


def serialize_notification(n: Notification) -> dict:
    return {
        "id": n.id,
        "userId": n.user_id,
        "title": n.title,
        "message": n.message,
        "type": n.type,
        "link": n.link,
        "isRead": bool(n.is_read),
        "createdAt": _iso(n.created_at),
    }
