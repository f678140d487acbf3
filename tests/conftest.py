"""Pytest fixtures for storefront tests."""

import os

# До импорта storefront: без PostgreSQL и без Telegram
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TELEGRAM_TOKEN"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront import config
from storefront.db import Base, get_db
import storefront.models  # noqa: F401
from storefront.models.catalog import Product
from storefront.models.user import Address, User
from storefront.utils.enums import UserRole
from storefront.utils.security import hash_password

PASSWORD = "secret123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(autouse=True)
def epayco_settings(monkeypatch):
    """Fixed merchant credentials for signature tests."""
    monkeypatch.setattr(config, "EPAYCO_CUST_ID", "123456")
    monkeypatch.setattr(config, "EPAYCO_P_KEY", "pkey-test")
    monkeypatch.setattr(config, "EPAYCO_TEST", True)
    monkeypatch.setattr(config, "EPAYCO_STRICT_SIGNATURE", False)
    monkeypatch.setattr(config, "EPAYCO_CURRENCY", "COP")


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    """Two customers, an admin, addresses and a few products."""
    user = User(email="ana@example.com", name="Ana", password_hash=PASSWORD_HASH,
                role=UserRole.CUSTOMER.value)
    other = User(email="luis@example.com", name="Luis", password_hash=PASSWORD_HASH,
                 role=UserRole.CUSTOMER.value)
    admin = User(email="admin@example.com", name="Admin", password_hash=PASSWORD_HASH,
                 role=UserRole.ADMIN.value)
    db.add_all([user, other, admin])
    db.flush()

    address = Address(user_id=user.id, full_name="Ana Gomez", phone="3001234567",
                      address_line1="Calle 1", address_line2="Apto 2", city="Bogota",
                      state="Cundinamarca", zip_code="110111", country="Colombia")
    other_address = Address(user_id=other.id, full_name="Luis Perez", phone="3007654321",
                            address_line1="Carrera 9", city="Medellin", state="Antioquia",
                            zip_code="050001", country="Colombia")
    db.add_all([address, other_address])

    product_x = Product(name="Nevera", sku="X1", price=Decimal("100.00"), stock=5, is_active=True)
    product_y = Product(name="Compresor", sku="Y1", price=Decimal("50.00"), stock=10, is_active=True)
    inactive = Product(name="Descontinuado", sku="Z1", price=Decimal("10.00"), stock=10, is_active=False)
    db.add_all([product_x, product_y, inactive])
    db.commit()

    return SimpleNamespace(
        user=user, other=other, admin=admin,
        address=address, other_address=other_address,
        product_x=product_x, product_y=product_y, inactive=inactive,
    )


def item(product_id, quantity):
    from storefront.schemas import CartItemSchema

    return CartItemSchema(product_id=product_id, quantity=quantity)


@pytest.fixture
def make_item():
    return item


@pytest.fixture
def client(session_factory):
    from storefront.main import app
    from storefront.routers import auth

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    auth.login_attempts.clear()
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _login(client, email):
    response = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def user_client(client, seed):
    return _login(client, seed.user.email)


@pytest.fixture
def admin_client(session_factory, client, seed):
    from storefront.main import app

    admin = TestClient(app)
    return _login(admin, seed.admin.email)
