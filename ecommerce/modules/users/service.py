"""
UsersService - registration, login and token refresh.
"""

import logging
from typing import Any, Dict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.exceptions import (
    USER_NOT_FOUND,
    USERNAME_EXISTS,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from ecommerce.modules.users.auth import AuthService
from .models import Role, User
from .schemas import (
    AuthResponse,
    LoginRequest,
    TokenResponse,
    RefreshTokenRequest,
    RegisterRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)


class UsersService:
    """
    Users service.
    All methods use async/await and single-statement lookups.
    """

    @staticmethod
    def _auth_response(user: User) -> AuthResponse:
        return AuthResponse(
            user=UserResponse.model_validate(user),
            token=UsersService._issue_tokens(user),
        )

    @staticmethod
    def _issue_tokens(user: User) -> TokenResponse:
        token_data: Dict[str, Any] = {
            "sub": user.username,
            "user_id": user.id,
            "role": user.role.value,
        }
        return TokenResponse(
            access_token=AuthService.create_access_token(token_data),
            refresh_token=AuthService.create_refresh_token(token_data),
        )

    @staticmethod
    async def create(
        db: AsyncSession, create_dto: RegisterRequest, allow_admin: bool = False
    ) -> AuthResponse:
        """
        Create a new user.

        Args:
            create_dto: Registration payload
            allow_admin: Admin accounts can only be created from trusted code
                paths (seed scripts, tests), never from public registration

        Raises:
            ForbiddenError: If an admin account is requested publicly
            ConflictError: If the username is taken
        """
        if create_dto.role == Role.ADMIN and not allow_admin:
            raise ForbiddenError("Admin accounts cannot be self-registered")

        existing_user = await db.scalar(
            select(User.id).where(User.username == create_dto.username)
        )
        if existing_user is not None:
            raise ConflictError("User already exists with this username", USERNAME_EXISTS)

        user = User(
            username=create_dto.username,
            password=AuthService.get_password_hash(create_dto.password),
            name=create_dto.name,
            role=create_dto.role,
            store_name=create_dto.store_name,
        )
        db.add(user)
        await db.flush()
        logger.info("Registered user %s with role %s", user.username, user.role.value)

        return UsersService._auth_response(user)

    @staticmethod
    async def login(db: AsyncSession, login_dto: LoginRequest) -> AuthResponse:
        """
        Login a user.

        Raises:
            UnauthorizedError: If the username is unknown or the password is wrong
            ForbiddenError: If the account was deactivated
        """
        user = await db.scalar(select(User).where(User.username == login_dto.username))
        if not user or not AuthService.verify_password(login_dto.password, user.password):
            raise UnauthorizedError("Invalid username or password")
        if not user.is_active:
            raise ForbiddenError("Account is deactivated")

        return UsersService._auth_response(user)

    @staticmethod
    async def find_me(db: AsyncSession, user_id: int) -> User:
        """
        Find current user by id.

        Raises:
            NotFoundError: If user not found
        """
        user = await db.scalar(select(User).where(User.id == user_id))

        if not user:
            raise NotFoundError("User", user_id, error_code=USER_NOT_FOUND)

        return user

    @staticmethod
    async def refresh_token(db: AsyncSession, refresh_request: RefreshTokenRequest) -> TokenResponse:
        """
        Generate new access token using refresh token.

        Args:
            db: Database session
            refresh_request: Request containing refresh token

        Returns:
            New access and refresh tokens

        Raises:
            UnauthorizedError: If refresh token is invalid
        """
        payload: Dict[str, Any] | None = AuthService.verify_refresh_token(refresh_request.refresh_token)

        if not payload:
            raise UnauthorizedError("Invalid refresh token")

        # Verify user still exists
        user: User | None = await db.scalar(select(User).where(User.id == payload.get("user_id")))
        if not user or not user.is_active:
            raise UnauthorizedError("User not found or deactivated")

        return UsersService._issue_tokens(user)
