"""
Users Router - registration, login and the current profile.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.db.engine import get_db_util
from .service import UsersService
from .schemas import (
    AuthResponse,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from .auth import get_current_user, TokenData

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register_user(
    register_dto: RegisterRequest, db: AsyncSession = Depends(get_db_util)
):
    """Register a new seller or customer account"""
    return await UsersService.create(db, register_dto)


@router.post("/login", response_model=AuthResponse)
async def login_user(login_dto: LoginRequest, db: AsyncSession = Depends(get_db_util)):
    """Login a user and receive JWT tokens"""
    return await UsersService.login(db, login_dto)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_tokens(
    refresh_request: RefreshTokenRequest, db: AsyncSession = Depends(get_db_util)
):
    """Exchange a refresh token for a new token pair"""
    return await UsersService.refresh_token(db, refresh_request)


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(get_current_user)
):
    """
    Get current user profile from JWT token.
    Requires valid authentication token in Authorization header.
    """
    return await UsersService.find_me(db, current_user.user_id)
