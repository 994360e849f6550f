import pydantic
import pytest
from sqlalchemy import update

from ecommerce.core.exceptions import (
    FORBIDDEN,
    USERNAME_EXISTS,
    ConflictError,
    ForbiddenError,
    UnauthorizedError,
)
from ecommerce.modules.users.models import Role, User
from ecommerce.modules.users.schemas import LoginRequest, RefreshTokenRequest, RegisterRequest
from ecommerce.modules.users.service import UsersService


async def test_register_seller_with_store(db):
    created = await UsersService.create(
        db,
        RegisterRequest(
            username="  Acme_Shop ",
            password="secret123",
            name="Acme",
            role=Role.SELLER,
            store_name="Acme Tees",
        ),
    )
    await db.commit()

    assert created.user.username == "acme_shop"
    assert created.user.store_name == "Acme Tees"
    assert created.user.is_active is True
    assert created.token.token_type == "bearer"


def test_only_sellers_have_a_store_name():
    with pytest.raises(pydantic.ValidationError, match="Only sellers"):
        RegisterRequest(username="buyer", password="secret123", name="B", store_name="Shop")


async def test_usernames_are_case_insensitive(db, seller_id):
    with pytest.raises(ConflictError) as exc:
        await UsersService.create(
            db, RegisterRequest(username="SELLER", password="secret123", name="Copy")
        )
    assert exc.value.error_code == USERNAME_EXISTS

    logged_in = await UsersService.login(db, LoginRequest(username=" Seller", password="password123"))
    assert logged_in.user.id == seller_id


async def test_deactivated_account_is_locked_out(db, seller_id):
    tokens = (
        await UsersService.login(db, LoginRequest(username="seller", password="password123"))
    ).token

    await db.execute(update(User).where(User.id == seller_id).values(is_active=False))
    await db.commit()

    with pytest.raises(ForbiddenError) as exc:
        await UsersService.login(db, LoginRequest(username="seller", password="password123"))
    assert exc.value.error_code == FORBIDDEN

    with pytest.raises(UnauthorizedError):
        await UsersService.refresh_token(
            db, RefreshTokenRequest(refresh_token=tokens.refresh_token)
        )
