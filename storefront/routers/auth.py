import logging
import time

from fastapi import APIRouter, Request, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.errors import UnauthorizedError
from storefront.models.user import User
from storefront.schemas import LoginRequest
from storefront.utils.security import verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# 🔹 Rate limit config
MAX_ATTEMPTS = 5          # максимум попыток
BLOCK_TIME = 60           # блокировка на 60 секунд
login_attempts = {}       # { "ip": {"count": int, "last": timestamp} }


def check_rate_limit(ip: str) -> bool:
    """Проверка лимита по IP"""
    now = time.time()
    data = login_attempts.get(ip)

    if not data:
        return True

    # если ещё идёт блокировка
    if data["count"] >= MAX_ATTEMPTS and now - data["last"] < BLOCK_TIME:
        return False

    return True


def add_attempt(ip: str):
    """Запись попытки входа"""
    now = time.time()
    if ip not in login_attempts:
        login_attempts[ip] = {"count": 1, "last": now}
    else:
        attempts = login_attempts[ip]
        if now - attempts["last"] > BLOCK_TIME:
            # сбрасываем после блокировки
            login_attempts[ip] = {"count": 1, "last": now}
        else:
            attempts["count"] += 1
            attempts["last"] = now


def reset_attempts(ip: str):
    """Сброс после успешного логина"""
    login_attempts.pop(ip, None)


# обработка логина
@router.post("/login")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    client_ip = request.client.host if request.client else "unknown"

    if not check_rate_limit(client_ip):
        raise UnauthorizedError("Too many login attempts. Try again in a minute.")

    user = db.scalars(select(User).where(User.email == body.email.strip().lower())).first()
    if not user or not verify_password(body.password, user.password_hash):
        add_attempt(client_ip)  # фиксируем неудачную попытку
        raise UnauthorizedError("Invalid email or password")

    # Успешный вход: сброс счётчика
    reset_attempts(client_ip)

    # сохраняем в сессии
    request.session["user_id"] = user.id
    role_clean = (user.role or "").strip().lower()
    request.session["role"] = role_clean
    logger.info("Login success: %s role=%s", user.email, role_clean)

    return {"userId": user.id, "email": user.email, "name": user.name, "role": role_clean}


# выход
@router.get("/logout")
def logout(request: Request):
    request.session.clear()
    return {"ok": True}


@router.get("/whoami")
def whoami(request: Request):
    return {"userId": request.session.get("user_id"), "role": request.session.get("role")}
