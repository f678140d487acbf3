import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.schemas import CreatePaymentSessionRequest
from storefront.services import payments as payments_service
from storefront.services.payments import EpaycoConfirmation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/create-session", status_code=201)
def create_session(body: CreatePaymentSessionRequest, db: Session = Depends(get_db)):
    return payments_service.create_epayco_session(
        db,
        user_id=body.user_id,
        address_id=body.address_id,
        items=body.items,
        notes=body.notes,
    )


async def _webhook_payload(request: Request) -> dict:
    # ePayco шлёт form-urlencoded, тестовые клиенты шлют JSON
    content_type = request.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        raw = await request.body()
        try:
            data = json.loads(raw or b"{}")
        except ValueError:
            logger.warning("ePayco webhook with malformed JSON body")
            return {}
        return data if isinstance(data, dict) else {}
    form = await request.form()
    return dict(form)


# Публичный: вызывается серверами ePayco, без входа
@router.post("/epayco-confirmation")
async def epayco_confirmation(request: Request, db: Session = Depends(get_db)):
    payload = await _webhook_payload(request)
    data = EpaycoConfirmation.from_payload(payload)
    return payments_service.handle_epayco_confirmation(db, data)


@router.get("/order-status/{order_id}")
def order_status(order_id: int, db: Session = Depends(get_db)):
    return payments_service.get_order_payment_status(db, order_id)
