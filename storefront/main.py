import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from fastapi.responses import JSONResponse

from storefront import config
from storefront.db import Base, engine
from storefront.errors import ShopError
from storefront.middleware.rbac import RBACMiddleware
from storefront.utils.responses import error_body, error_response, internal_error_response

# Импортируем все модели до create_all(),
# чтобы SQLAlchemy знал про классы и связи
import storefront.models  # noqa: F401

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# ==== FastAPI app ====
app = FastAPI(title=config.APP_NAME)

# Проверка доступа по роли
app.add_middleware(RBACMiddleware)
# Сессии (вход пользователя); добавляется последним, чтобы оборачивать RBAC
app.add_middleware(SessionMiddleware, secret_key=config.SECRET_KEY)


# ==== Ошибки ====
@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    if exc.status_code >= 500:
        logger.error("%s %s - %s", request.method, request.url.path, exc.message)
    return error_response(request, exc)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        error_body(request, exc.status_code, exc.detail, "HttpException"),
        status_code=exc.status_code,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = [
        "{0}: {1}".format(".".join(str(p) for p in err.get("loc", [])), err.get("msg"))
        for err in exc.errors()
    ]
    return JSONResponse(error_body(request, 422, messages, "ValidationError"), status_code=422)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("%s %s - Unhandled Exception: %s", request.method, request.url.path, exc,
                 exc_info=exc)
    return internal_error_response(request, exc)


# ==== Routers ====
from storefront.routers import auth as auth_router
from storefront.routers import orders as orders_router
from storefront.routers import payments as payments_router
from storefront.routers import notifications as notifications_router
app.include_router(auth_router.router)
app.include_router(orders_router.router)
app.include_router(payments_router.router)
app.include_router(notifications_router.router)


@app.on_event("startup")
def startup_event():
    # Создаём таблицы
    Base.metadata.create_all(bind=engine)
    logger.info("🚀 %s started (env=%s, ePayco test mode=%s)", config.APP_NAME, config.ENV, config.EPAYCO_TEST)
