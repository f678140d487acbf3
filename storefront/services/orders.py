"""Заказы: оформление, смена статуса с пересчётом остатков, выборки."""
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from storefront.db import transaction
from storefront.errors import (
    AddressNotFoundError,
    EmptyOrderError,
    InsufficientStockError,
    InvalidInitialStatusError,
    OrderNotFoundError,
    ProductInactiveError,
    ProductNotFoundError,
    UserNotFoundError,
)
from storefront.models.catalog import Product
from storefront.models.order import Order, OrderItem
from storefront.models.order_status_log import OrderStatusLog
from storefront.models.user import Address, User
from storefront.services import stock
from storefront.services.notifications import notifications as default_notifications
from storefront.telegram.telegram_notify import notifier
from storefront.utils.enums import OrderStatus

logger = logging.getLogger(__name__)


class Checkout:
    """Проверенная корзина: пользователь, адрес, строки и итог."""

    def __init__(self, user: User, address: Address, lines: List[dict], total: Decimal):
        self.user = user
        self.address = address
        self.lines = lines
        self.total = total


def validate_checkout(
    db: Session,
    user_id: int,
    address_id: int,
    items: Iterable,
    require_active: bool = False,
) -> Checkout:
    """Проверки до любой записи в БД.

    items: объекты с полями product_id и quantity.
    Цена берётся из текущей цены товара и становится снимком в OrderItem.
    """
    user = db.get(User, user_id)
    if not user:
        raise UserNotFoundError(user_id)

    address = db.get(Address, address_id)
    if not address or address.user_id != user.id:
        raise AddressNotFoundError(address_id)

    items = list(items or [])
    if not items:
        raise EmptyOrderError()

    # Все товары одним запросом
    product_ids = [int(it.product_id) for it in items]
    products = db.scalars(select(Product).where(Product.id.in_(product_ids))).all()
    products_by_id = {p.id: p for p in products}

    # Одинаковый товар в нескольких строках проверяем по сумме количеств
    wanted: "OrderedDict[int, int]" = OrderedDict()
    for it in items:
        pid = int(it.product_id)
        if pid not in products_by_id:
            raise ProductNotFoundError(pid)
        wanted[pid] = wanted.get(pid, 0) + int(it.quantity)

    for pid, qty in wanted.items():
        p = products_by_id[pid]
        if require_active and not p.is_active:
            raise ProductInactiveError(p.id, p.name)
        if int(p.stock) < qty:
            raise InsufficientStockError(p.id, p.name, int(p.stock))

    lines: List[dict] = []
    total = Decimal("0")
    for it in items:
        p = products_by_id[int(it.product_id)]
        price = Decimal(str(p.price))
        qty = int(it.quantity)
        total += price * qty
        lines.append({"product_id": p.id, "product_name": p.name, "quantity": qty, "price": price})

    return Checkout(user=user, address=address, lines=lines, total=total)


def _shipping_snapshot(address: Address, notes: Optional[str]) -> dict:
    return {
        "shipping_name": address.full_name,
        "shipping_phone": address.phone,
        "shipping_address": f"{address.address_line1} {address.address_line2 or ''}".strip(),
        "shipping_city": address.city,
        "shipping_state": address.state,
        "shipping_zip": address.zip_code,
        "shipping_country": address.country,
        "shipping_notes": notes,
    }


def place_order(
    db: Session,
    checkout: Checkout,
    notes: Optional[str] = None,
    status: OrderStatus = OrderStatus.PENDING,
    payment_method: Optional[str] = None,
    payment_status: Optional[str] = None,
) -> Order:
    """Заказ + позиции + списание остатков в одной транзакции."""
    with transaction(db):
        order = Order(
            user_id=checkout.user.id,
            status=status,
            total=checkout.total,
            payment_method=payment_method,
            payment_status=payment_status,
            **_shipping_snapshot(checkout.address, notes),
        )
        for line in checkout.lines:
            order.items.append(OrderItem(
                product_id=line["product_id"],
                quantity=line["quantity"],
                price=line["price"],
            ))
        db.add(order)
        db.flush()

        for line in checkout.lines:
            stock.reserve(db, line["product_id"], line["quantity"], order.id,
                          note="order placed", name=line["product_name"])

    logger.info("Created %s order %s for user %s, total: %s",
                order.status.value, order.id, checkout.user.id, checkout.total)
    return order


def create_order(
    db: Session,
    user_id: int,
    address_id: int,
    items: Iterable,
    notes: Optional[str] = None,
    status: Optional[OrderStatus] = None,
) -> Order:
    status = status or OrderStatus.PENDING
    # отменённый заказ не держит резерв, создавать его таким нельзя
    if status == OrderStatus.CANCELLED:
        raise InvalidInitialStatusError(status.value)

    checkout = validate_checkout(db, user_id, address_id, items)
    order = place_order(db, checkout, notes=notes, status=status)

    notifier.notify_order_created(
        order_id=order.id,
        customer_name=order.shipping_name,
        phone=order.shipping_phone,
        comment=order.shipping_notes,
        items=[
            {"name": line["product_name"], "qty": line["quantity"], "price": line["price"]}
            for line in checkout.lines
        ],
    )
    return find_one(db, order.id)


# ---------- ВЫБОРКИ ----------
def _orders_query():
    return (
        select(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.product), selectinload(Order.user))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )


def find_all(db: Session) -> List[Order]:
    return list(db.scalars(_orders_query()).all())


def find_all_by_user(db: Session, user_id: int) -> List[Order]:
    return list(db.scalars(_orders_query().where(Order.user_id == user_id)).all())


def find_one(db: Session, order_id: int) -> Order:
    order = db.scalars(_orders_query().where(Order.id == order_id)).first()
    if not order:
        raise OrderNotFoundError(order_id)
    return order


# ---------- СМЕНА СТАТУСА ----------
def apply_status(db: Session, order: Order, new_status: OrderStatus, source: str,
                 note: Optional[str] = None) -> None:
    """Сменить статус внутри уже открытой транзакции.

    Остатки трогаем только на границе CANCELLED:
    вход: возврат на склад; выход: повторное списание.
    """
    old_status = order.status
    if new_status == old_status:
        return

    if new_status == OrderStatus.CANCELLED:
        stock.release_order(db, order, note=f"order cancelled ({source})")
    elif old_status == OrderStatus.CANCELLED:
        stock.reserve_order(db, order, note=f"order reactivated ({source})")

    order.status = new_status
    db.add(OrderStatusLog(
        order_id=order.id,
        old_status=old_status.value,
        new_status=new_status.value,
        source=source,
        note=note,
    ))
    logger.info("Order %s status %s -> %s (%s)", order.id, old_status.value, new_status.value, source)


def update_order(
    db: Session,
    order_id: int,
    status: Optional[OrderStatus] = None,
    notes: Optional[str] = None,
    source: str = "admin",
    notifications=None,
) -> Order:
    notifications = notifications or default_notifications
    order = find_one(db, order_id)
    old_status = order.status

    with transaction(db):
        if notes is not None:
            order.shipping_notes = notes
        if status is not None:
            apply_status(db, order, status, source, note=notes)

    if status is not None and status != old_status:
        notifier.notify_order_status_changed(
            order_id=order.id,
            new_status=status.value,
            items=[
                {"name": item.product.name, "qty": item.quantity, "price": item.price}
                for item in order.items
            ],
        )

    # Уведомление покупателю после коммита, статус уже сохранён
    if status == OrderStatus.DELIVERED and old_status != OrderStatus.DELIVERED:
        try:
            notifications.create(
                db,
                user_id=order.user_id,
                title="Pedido entregado",
                message=f"Tu pedido #{order.id} ha sido entregado.",
                type="ORDER",
                link=f"/profile/orders/{order.id}",
            )
        except Exception:
            logger.warning("Failed to notify user %s about delivered order %s",
                           order.user_id, order.id, exc_info=True)

    return find_one(db, order.id)


def remove(db: Session, order: Order) -> None:
    """Жёсткое удаление заказа администратором. Остатки не трогаем."""
    order_id = order.id
    with transaction(db):
        db.delete(order)
    logger.info("Order %s removed", order_id)
