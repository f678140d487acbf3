import re

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request

from storefront.errors import ForbiddenError, UnauthorizedError
from storefront.utils.enums import UserRole
from storefront.utils.responses import error_response


# Разделы, куда без входа нельзя
PROTECTED_PREFIXES = ["/orders", "/payments/create-session", "/notifications"]

# Только для администратора: (метод, шаблон пути)
ADMIN_ONLY = [
    ("GET", re.compile(r"^/orders/?$")),
    ("GET", re.compile(r"^/orders/user/[^/]+/?$")),
    ("PATCH", re.compile(r"^/orders/[^/]+/?$")),
    ("DELETE", re.compile(r"^/orders/[^/]+/?$")),
]


def _is_admin_only(method: str, path: str) -> bool:
    return any(method == m and rx.match(path) for m, rx in ADMIN_ONLY)


class RBACMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if any(path.startswith(p) for p in PROTECTED_PREFIXES):
            role = (request.session.get("role") or "").strip().lower()

            if not role or not request.session.get("user_id"):
                return error_response(request, UnauthorizedError("Authentication required"))

            # 🔹 админ → полный доступ
            if role == UserRole.ADMIN.value:
                return await call_next(request)

            if _is_admin_only(request.method, path):
                return error_response(request, ForbiddenError("Admin role required"))

        return await call_next(request)
