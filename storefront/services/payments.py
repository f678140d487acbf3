"""Оплата через ePayco.

Поток:
1. Фронт вызывает create_epayco_session с корзиной.
2. Мы проверяем корзину, создаём заказ PENDING, резервируем остаток
   и отдаём поля формы для страницы оплаты ePayco.
3. Покупатель платит на стороне ePayco.
4. ePayco шлёт вебхук -> handle_epayco_confirmation: сверяем подпись,
   переводим код ответа в статусы заказа, при отказе возвращаем остаток.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from storefront import config
from storefront.db import transaction
from storefront.errors import (
    InvalidSignatureError,
    MissingOrderReferenceError,
    OrderNotFoundError,
)
from storefront.models.order import Order
from storefront.models.order_status_log import OrderStatusLog
from storefront.services import orders, stock
from storefront.telegram.telegram_notify import notifier
from storefront.utils.enums import OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

PAYMENT_METHOD = "EPAYCO"

# x_cod_response -> (статус заказа, статус оплаты)
RESPONSE_CODES: Dict[str, Tuple[OrderStatus, PaymentStatus]] = {
    "1": (OrderStatus.PAID, PaymentStatus.COMPLETED),        # Aceptada
    "2": (OrderStatus.CANCELLED, PaymentStatus.REJECTED),    # Rechazada
    "3": (OrderStatus.PENDING, PaymentStatus.PENDING),       # Pendiente
    "4": (OrderStatus.CANCELLED, PaymentStatus.FAILED),      # Fallida
    "6": (OrderStatus.CANCELLED, PaymentStatus.REVERSED),    # Reversada
    "7": (OrderStatus.PENDING, PaymentStatus.HELD),          # Retenida
    "8": (OrderStatus.PENDING, PaymentStatus.INITIATED),     # Iniciada
    "9": (OrderStatus.CANCELLED, PaymentStatus.EXPIRED),     # Expirada
    "10": (OrderStatus.CANCELLED, PaymentStatus.ABANDONED),  # Abandonada
    "11": (OrderStatus.CANCELLED, PaymentStatus.CANCELLED),  # Cancelada
    "12": (OrderStatus.PENDING, PaymentStatus.ANTIFRAUD),    # Antifraude
}


@dataclass
class EpaycoConfirmation:
    """Тело вебхука ePayco. Поля, которых здесь нет, отбрасываются."""

    x_cust_id_cliente: Optional[str] = None
    x_ref_payco: Optional[str] = None
    x_id_invoice: Optional[str] = None
    x_description: Optional[str] = None
    x_amount: Optional[str] = None
    x_amount_base: Optional[str] = None
    x_tax: Optional[str] = None
    x_currency_code: Optional[str] = None
    x_bank_name: Optional[str] = None
    x_cardnumber: Optional[str] = None
    x_quotas: Optional[str] = None
    x_cod_response: Optional[str] = None
    x_response: Optional[str] = None
    x_response_reason_text: Optional[str] = None
    x_approval_code: Optional[str] = None
    x_transaction_id: Optional[str] = None
    x_transaction_date: Optional[str] = None
    x_franchise: Optional[str] = None
    x_test_request: Optional[str] = None
    x_signature: Optional[str] = None
    x_extra1: Optional[str] = None
    x_extra2: Optional[str] = None
    x_extra3: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping) -> "EpaycoConfirmation":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in payload.items():
            if key in known and value is not None:
                values[key] = str(value)
        return cls(**values)


def map_response_code(cod_response: Optional[str]) -> Tuple[OrderStatus, PaymentStatus]:
    return RESPONSE_CODES.get(
        (cod_response or "").strip(), (OrderStatus.PENDING, PaymentStatus.UNKNOWN)
    )


def compute_signature(ref_payco: str, transaction_id: str, amount: str, currency_code: str,
                      cust_id: Optional[str] = None, p_key: Optional[str] = None) -> str:
    """SHA-256 от cust_id^p_key^x_ref_payco^x_transaction_id^x_amount^x_currency_code."""
    cust_id = config.EPAYCO_CUST_ID if cust_id is None else cust_id
    p_key = config.EPAYCO_P_KEY if p_key is None else p_key
    raw = "^".join([cust_id, p_key, ref_payco, transaction_id, amount, currency_code])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def verify_signature(data: EpaycoConfirmation) -> bool:
    expected = compute_signature(
        data.x_ref_payco or "",
        data.x_transaction_id or "",
        data.x_amount or "0",
        data.x_currency_code or config.EPAYCO_CURRENCY,
    )
    logger.debug("Signature calculated: %s, received: %s", expected, data.x_signature)
    # байты: compare_digest не принимает строки с не-ASCII символами
    return hmac.compare_digest(expected.encode("utf-8"), (data.x_signature or "").encode("utf-8"))


# ---------- СЕССИЯ ОПЛАТЫ ----------
def create_epayco_session(
    db: Session,
    user_id: int,
    address_id: int,
    items: Iterable,
    notes: Optional[str] = None,
) -> dict:
    checkout = orders.validate_checkout(db, user_id, address_id, items, require_active=True)
    order = orders.place_order(
        db,
        checkout,
        notes=notes,
        status=OrderStatus.PENDING,
        payment_method=PAYMENT_METHOD,
        payment_status=PaymentStatus.PENDING.value,
    )

    user, address = checkout.user, checkout.address
    amount = f"{checkout.total:.2f}"
    invoice = str(order.id)
    description = f"Compra {config.APP_NAME} #{invoice.zfill(8)[-8:]}"

    epayco_data = {
        # данные магазина
        "p_cust_id_cliente": config.EPAYCO_CUST_ID,
        "p_key": config.EPAYCO_P_KEY,

        # транзакция
        "p_id_invoice": invoice,
        "p_description": description,
        "p_amount": amount,
        "p_amount_base": amount,
        "p_tax": "0",
        "p_currency_code": config.EPAYCO_CURRENCY,
        "p_test_request": "TRUE" if config.EPAYCO_TEST else "FALSE",

        # покупатель
        "p_customer_email": user.email,
        "p_customer_name": user.name or address.full_name,
        "p_customer_phone": address.phone,
        "p_customer_doctype": "CC",
        "p_customer_doc": "",
        "p_customer_address": address.address_line1,
        "p_customer_city": address.city,
        "p_customer_country": config.EPAYCO_COUNTRY,

        # плательщик (тот же адрес)
        "p_billing_name": address.full_name,
        "p_billing_email": user.email,
        "p_billing_phone": address.phone,
        "p_billing_address": address.address_line1,
        "p_billing_city": address.city,
        "p_billing_country": config.EPAYCO_COUNTRY,

        # адреса возврата
        "p_url_response": f"{config.BASE_URL_FRONTEND}/checkout/success?orderId={order.id}",
        "p_url_confirmation": f"{config.BASE_URL_BACKEND}/payments/epayco-confirmation",

        # по p_extra1 вебхук находит заказ
        "p_extra1": invoice,
        "p_extra2": str(user.id),
        "p_extra3": "",

        "p_confirm_method": "POST",
    }

    return {"success": True, "orderId": order.id, "epaycoData": epayco_data}


# ---------- ВЕБХУК ----------
def _lock_order(db: Session, raw_id: str) -> Order:
    try:
        order_id = int(raw_id)
    except (TypeError, ValueError):
        raise OrderNotFoundError(raw_id)
    # FOR UPDATE: параллельные вебхуки по одному заказу идут по очереди
    order = db.get(Order, order_id, with_for_update=True, populate_existing=True)
    if not order:
        raise OrderNotFoundError(raw_id)
    return order


def handle_epayco_confirmation(db: Session, data: EpaycoConfirmation) -> dict:
    logger.info("Received ePayco confirmation webhook")
    logger.debug("Webhook payload: %s", data)

    raw_id = data.x_extra1 or data.x_id_invoice
    if not raw_id:
        logger.error("Webhook missing order reference (x_extra1 or x_id_invoice)")
        raise MissingOrderReferenceError()

    if not verify_signature(data):
        logger.error("Invalid signature for order %s", raw_id)
        if config.EPAYCO_STRICT_SIGNATURE:
            raise InvalidSignatureError(raw_id)
        # Без строгого режима подпись не блокирует обработку (тестовый контур ePayco)
        logger.warning("Continuing despite invalid signature (EPAYCO_STRICT_SIGNATURE is off)")

    order_status, payment_status = map_response_code(data.x_cod_response)

    with transaction(db):
        order = _lock_order(db, raw_id)

        # Повтор уже оплаченного заказа ничего не меняет
        if order.payment_status == PaymentStatus.COMPLETED.value and order.status == OrderStatus.PAID:
            logger.info("Order %s already processed, skipping", order.id)
            return {"received": True, "message": "Order already processed"}

        old_status = order.status
        order.status = order_status
        order.payment_status = payment_status.value
        order.payment_reference = data.x_ref_payco
        order.payment_method = data.x_franchise or PAYMENT_METHOD
        order.payment_approval_code = data.x_approval_code
        order.payment_response_code = data.x_cod_response
        order.payment_response_message = data.x_response_reason_text or data.x_response
        order.payment_transaction_id = data.x_transaction_id
        order.payment_date = datetime.utcnow()
        order.is_test_payment = (data.x_test_request or "").upper() in ("1", "TRUE")

        if order_status != old_status:
            db.add(OrderStatusLog(
                order_id=order.id,
                old_status=old_status.value,
                new_status=order_status.value,
                source="epayco",
                note=f"x_cod_response={data.x_cod_response} ref={data.x_ref_payco}",
            ))

        released = order_status == OrderStatus.CANCELLED or payment_status == PaymentStatus.FAILED
        if released and old_status != OrderStatus.CANCELLED:
            stock.release_order(db, order, note=f"payment {payment_status.value.lower()}")
        elif old_status == OrderStatus.CANCELLED and order_status != OrderStatus.CANCELLED:
            logger.warning("Order %s left CANCELLED via webhook; stock is not reserved again", order.id)

    logger.info("Order %s updated: status=%s, paymentStatus=%s, ref=%s",
                order.id, order_status.value, payment_status.value, data.x_ref_payco)
    notifier.notify_payment(order.id, payment_status.value, data.x_ref_payco)

    return {"received": True, "message": f"Order {order.id} updated to {order_status.value}"}


def get_order_payment_status(db: Session, order_id: int) -> dict:
    order = db.get(Order, order_id)
    if not order:
        raise OrderNotFoundError(order_id)
    return {
        "orderId": order.id,
        "status": order.status.value,
        "paymentStatus": order.payment_status or PaymentStatus.UNKNOWN.value,
        "total": float(order.total),
        "paymentReference": order.payment_reference,
        "paymentMethod": order.payment_method,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
    }
