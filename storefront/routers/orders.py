from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.errors import ForbiddenError, OrderNotFoundError
from storefront.schemas import CreateOrderRequest, UpdateOrderRequest, serialize_order
from storefront.services import orders as orders_service
from storefront.utils.enums import OrderStatus, UserRole

router = APIRouter(prefix="/orders", tags=["orders"])


def _session_user(request: Request):
    return request.session.get("user_id"), request.session.get("role")


# ---------- СОЗДАНИЕ ----------
@router.post("", status_code=201)
def create_order(body: CreateOrderRequest, request: Request, db: Session = Depends(get_db)):
    _, role = _session_user(request)
    # начальный статус, кроме PENDING, задаёт только администратор
    if body.status not in (None, OrderStatus.PENDING) and role != UserRole.ADMIN.value:
        raise ForbiddenError("Only administrators can set the initial order status")

    order = orders_service.create_order(
        db,
        user_id=body.user_id,
        address_id=body.address_id,
        items=body.items,
        notes=body.notes,
        status=body.status,
    )
    return serialize_order(order)


# ---------- СПИСКИ ----------
@router.get("")
def list_orders(db: Session = Depends(get_db)):
    return [serialize_order(o) for o in orders_service.find_all(db)]


@router.get("/mine")
def list_my_orders(request: Request, db: Session = Depends(get_db)):
    user_id, _ = _session_user(request)
    return [serialize_order(o) for o in orders_service.find_all_by_user(db, user_id)]


@router.get("/user/{user_id}")
def list_user_orders(user_id: int, db: Session = Depends(get_db)):
    return [serialize_order(o) for o in orders_service.find_all_by_user(db, user_id)]


# ---------- ДЕТАЛИ ЗАКАЗА ----------
@router.get("/{order_id}")
def get_order(order_id: int, request: Request, db: Session = Depends(get_db)):
    order = orders_service.find_one(db, order_id)
    user_id, role = _session_user(request)
    # покупатель видит только свои заказы
    if role != UserRole.ADMIN.value and order.user_id != user_id:
        raise OrderNotFoundError(order_id)
    return serialize_order(order)


# ---------- СМЕНА СТАТУСА ----------
@router.patch("/{order_id}")
def update_order(order_id: int, body: UpdateOrderRequest, db: Session = Depends(get_db)):
    order = orders_service.update_order(db, order_id, status=body.status, notes=body.notes)
    return serialize_order(order)


# ---------- УДАЛЕНИЕ ----------
@router.delete("/{order_id}")
def remove_order(order_id: int, db: Session = Depends(get_db)):
    order = orders_service.find_one(db, order_id)
    data = serialize_order(order)
    orders_service.remove(db, order)
    return data
