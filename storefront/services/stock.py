"""Резерв и возврат остатков.

Списание делается одним условным UPDATE (stock >= qty), без чтения остатка
заранее, поэтому два параллельных заказа не уведут остаток в минус.
Каждое движение пишется в StockAudit.
"""
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.errors import InsufficientStockError
from storefront.models.catalog import Product
from storefront.models.order import Order
from storefront.models.stock_audit import StockAudit
from storefront.utils.enums import StockChange

logger = logging.getLogger(__name__)


def _audit(db: Session, product_id: int, change: StockChange, qty: int,
           order_id: Optional[int], note: Optional[str]) -> None:
    db.add(StockAudit(
        product_id=product_id,
        order_id=order_id,
        change_type=change.value,
        delta_units=qty,
        note=note,
    ))


def reserve(db: Session, product_id: int, qty: int, order_id: Optional[int] = None,
            note: Optional[str] = None, name: Optional[str] = None) -> None:
    """Списать qty штук. Нет остатка → InsufficientStockError."""
    result = db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= qty)
        .values(stock=Product.stock - qty)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != 1:
        product = db.get(Product, product_id)
        available = int(product.stock) if product else None
        label = name or (product.name if product else str(product_id))
        logger.info("Insufficient stock for product %s: wanted %s, available %s",
                    product_id, qty, available)
        raise InsufficientStockError(product_id, label, available)

    _audit(db, product_id, StockChange.DECREASE, qty, order_id, note)
    logger.debug("Reserved %s of product %s (order %s)", qty, product_id, order_id)


def release(db: Session, product_id: int, qty: int, order_id: Optional[int] = None,
            note: Optional[str] = None) -> None:
    """Вернуть qty штук на склад. Увеличение всегда безопасно."""
    db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + qty)
        .execution_options(synchronize_session="evaluate")
    )
    _audit(db, product_id, StockChange.INCREASE, qty, order_id, note)
    logger.debug("Released %s of product %s (order %s)", qty, product_id, order_id)


def reserve_order(db: Session, order: Order, note: Optional[str] = None) -> None:
    for item in order.items:
        name = item.product.name if item.product else None
        reserve(db, item.product_id, int(item.quantity), order.id, note, name=name)


def release_order(db: Session, order: Order, note: Optional[str] = None) -> None:
    for item in order.items:
        release(db, item.product_id, int(item.quantity), order.id, note)
    logger.info("Stock released for order %s", order.id)
