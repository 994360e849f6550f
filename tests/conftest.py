import os

# Settings are read at import time, so the test environment goes first
os.environ["DB_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Dict

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecommerce.core.db import Base
from ecommerce.core.db.engine import build_engine, get_db_util
from ecommerce.main import app
from ecommerce.modules.products.schemas import CreateProductRequest
from ecommerce.modules.products.service import ProductService
from ecommerce.modules.users.auth import AuthService
from ecommerce.modules.users.models import Role, User


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def _create_user(db: AsyncSession, username: str, role: Role) -> int:
    user = User(
        username=username,
        password=AuthService.get_password_hash("password123"),
        name=username.title(),
        role=role,
    )
    db.add(user)
    await db.commit()
    return user.id


@pytest.fixture
async def seller_id(db) -> int:
    return await _create_user(db, "seller", Role.SELLER)


@pytest.fixture
async def other_seller_id(db) -> int:
    return await _create_user(db, "other_seller", Role.SELLER)


@pytest.fixture
async def admin_id(db) -> int:
    return await _create_user(db, "admin", Role.ADMIN)


@pytest.fixture
async def customer_id(db) -> int:
    return await _create_user(db, "customer", Role.CUSTOMER)


def auth_headers(user_id: int, role: Role) -> Dict[str, str]:
    token = AuthService.create_access_token(
        {"sub": f"user-{user_id}", "user_id": user_id, "role": role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seller_headers(seller_id):
    return auth_headers(seller_id, Role.SELLER)


@pytest.fixture
def other_seller_headers(other_seller_id):
    return auth_headers(other_seller_id, Role.SELLER)


@pytest.fixture
def admin_headers(admin_id):
    return auth_headers(admin_id, Role.ADMIN)


@pytest.fixture
def customer_headers(customer_id):
    return auth_headers(customer_id, Role.CUSTOMER)


@pytest.fixture
async def client(session_factory):
    """HTTP client whose requests share the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_util] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def tshirt_payload() -> Dict[str, Any]:
    """TSHIRT-001: color {red, blue} x size {s, m}, generated variants."""
    return {
        "name": "Basic T-Shirt",
        "brand": "Acme",
        "baseSku": "TSHIRT-001",
        "categoryId": 7,
        "tags": ["summer"],
        "options": [
            {
                "name": "Color",
                "values": [
                    {"value": "Red", "displayName": "Red", "colorCode": "#FF0000"},
                    {"value": "Blue", "displayName": "Blue", "colorCode": "#0000FF"},
                ],
            },
            {
                "name": "size",
                "displayName": "Size",
                "values": [{"value": "S"}, {"value": "M"}],
            },
        ],
        "autoGenerateVariants": True,
        "defaultVariantSettings": {"price": 19.99, "stock": 10, "images": ["tshirt.jpg"]},
    }


@pytest.fixture
async def tshirt(db, seller_id, tshirt_payload):
    """The TSHIRT-001 product with its four generated variants, committed."""
    detail = await ProductService.create_product(
        db, seller_id, CreateProductRequest(**tshirt_payload)
    )
    await db.commit()
    return detail
