# storefront/models/order.py
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.db import Base
from storefront.utils.enums import OrderStatus


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    # === СТАТУС ЗАКАЗА ===
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=24), default=OrderStatus.PENDING, index=True
    )
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    # Снимок адреса доставки (копируем из Address, чтобы не зависеть от изменений)
    shipping_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    shipping_phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    shipping_address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    shipping_city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    shipping_state: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    shipping_zip: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    shipping_country: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    shipping_notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # === ОПЛАТА === (заполняется вебхуком шлюза)
    payment_method: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    payment_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    payment_approval_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    payment_response_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    payment_response_message: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_transaction_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_test_payment: Mapped[bool] = mapped_column(Boolean, default=False)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )
    user = relationship("User")


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), index=True)

    quantity: Mapped[int] = mapped_column(Integer, default=1)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))   # цена на момент заказа

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    product = relationship("Product")
