# seed.py: пересоздать таблицы и залить демо-данные
from decimal import Decimal

from sqlalchemy.orm import configure_mappers

from storefront.db import Base, engine, SessionLocal
import storefront.models  # noqa: F401  подтягиваем все модели
from storefront.models.catalog import Product
from storefront.models.user import Address, User
from storefront.utils.enums import UserRole
from storefront.utils.security import hash_password


def run_seed():
    # === RESET ===
    Base.metadata.drop_all(bind=engine)
    print("🗑 Все таблицы удалены")

    configure_mappers()
    Base.metadata.create_all(bind=engine)
    print("✅ Все таблицы пересозданы")

    db = SessionLocal()
    try:
        # --- Пользователи ---
        admin = User(email="admin@example.com", name="Admin",
                     password_hash=hash_password("123456"), role=UserRole.ADMIN.value)
        customer = User(email="cliente@example.com", name="Cliente Demo",
                        password_hash=hash_password("123456"), role=UserRole.CUSTOMER.value)
        db.add_all([admin, customer])
        db.flush()

        db.add(Address(
            user_id=customer.id,
            full_name="Cliente Demo",
            phone="+57 300 000 0000",
            address_line1="Calle 10 # 20-30",
            city="Bogotá",
            state="Cundinamarca",
            zip_code="110111",
            country="Colombia",
            is_default=True,
        ))

        # --- Товары ---
        for i in range(1, 11):
            db.add(Product(
                name=f"Producto {i}",
                sku=f"SKU{i:03d}",
                price=Decimal(i * 10000),
                stock=20,
                is_active=True,
            ))

        db.commit()
        print("✅ Демо-данные созданы: admin@example.com / cliente@example.com (пароль 123456)")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
