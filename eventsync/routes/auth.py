"""
Authentication routes for login, register, and token management.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from ..auth import get_current_user
from ..config import get_settings
from ..deps import get_identity_service
from ..limiter import limiter
from ..models.user import User
from ..schemas.auth import (
    AuthResponse,
    RefreshRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from ..services import IdentityService

settings = get_settings()

router = APIRouter(prefix="/api/auth", tags=["auth"])


def auth_response(user: User, tokens) -> AuthResponse:
    access_token, refresh_token = tokens
    return AuthResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.register_rate_limit)
def register(
    request: Request,
    user_data: UserCreate,
    identity: IdentityService = Depends(get_identity_service),
):
    """Register a new user account and sign it in."""
    user, tokens = identity.register(
        email=user_data.email,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        company_name=user_data.company_name,
    )
    return auth_response(user, tokens)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.login_rate_limit)
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    identity: IdentityService = Depends(get_identity_service),
):
    """Login with OAuth2 form (username/password)."""
    user, tokens = identity.login(form_data.username, form_data.password)
    return auth_response(user, tokens)


@router.post("/login/json", response_model=AuthResponse)
@limiter.limit(settings.login_rate_limit)
def login_json(
    request: Request,
    credentials: UserLogin,
    identity: IdentityService = Depends(get_identity_service),
):
    """Login with JSON body (email/password)."""
    user, tokens = identity.login(credentials.email, credentials.password)
    return auth_response(user, tokens)


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit(settings.refresh_rate_limit)
def refresh_tokens(
    request: Request,
    refresh_request: RefreshRequest,
    identity: IdentityService = Depends(get_identity_service),
):
    """Get new access and refresh tokens using a valid refresh token."""
    access_token, refresh_token = identity.refresh(refresh_request.refresh_token)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return current_user


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    """
    Logout the current user.

    Tokens are stateless, so the client discards them; nothing is revoked
    server side.
    """
    return {"message": "Successfully logged out"}
