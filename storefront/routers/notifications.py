from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.schemas import serialize_notification
from storefront.services.notifications import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def my_notifications(request: Request, db: Session = Depends(get_db)):
    user_id = request.session.get("user_id")
    return [serialize_notification(n) for n in notifications.find_all_by_user(db, user_id)]


@router.patch("/read-all")
def read_all(request: Request, db: Session = Depends(get_db)):
    count = notifications.mark_all_as_read(db, request.session.get("user_id"))
    return {"updated": count}


@router.patch("/{notification_id}/read")
def read_one(notification_id: int, request: Request, db: Session = Depends(get_db)):
    n = notifications.mark_as_read(db, request.session.get("user_id"), notification_id)
    return serialize_notification(n)
