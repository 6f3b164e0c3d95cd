"""Authentication and registration API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from testimonial_hub.api.dependencies import get_current_user, get_oauth_service
from testimonial_hub.database import get_db
from testimonial_hub.errors import AuthorizationError
from testimonial_hub.models.user import User
from testimonial_hub.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from testimonial_hub.services.auth import (
    create_access_token,
    create_state_token,
    create_user,
    provision_oauth_user,
    verify_credentials,
    verify_state_token,
)
from testimonial_hub.services.oauth import OAuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
register_router = APIRouter(tags=["auth"])


@register_router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Annotated[Session, Depends(get_db)],
):
    """Register a new credentials account."""
    return create_user(db, user_data.email, user_data.password, user_data.name)


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: UserLogin,
    db: Annotated[Session, Depends(get_db)],
):
    """Login with email and password."""
    user = verify_credentials(db, credentials.email, credentials.password)

    if not user:
        logger.info("Failed credentials sign-in")
        raise AuthorizationError("Incorrect email or password")

    access_token = create_access_token(user.id, user.email)

    return AuthResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user),
    )


@router.get("/oauth/{provider}/authorize")
async def oauth_authorize(
    provider: str,
    oauth: Annotated[OAuthService, Depends(get_oauth_service)],
):
    """Redirect to the provider's consent page."""
    url = oauth.authorization_url(provider, create_state_token(provider))
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/oauth/{provider}/callback", response_model=AuthResponse)
async def oauth_callback(
    provider: str,
    db: Annotated[Session, Depends(get_db)],
    oauth: Annotated[OAuthService, Depends(get_oauth_service)],
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
):
    """Complete an OAuth sign-in, provisioning the account on first sign-in."""
    oauth.get_provider(provider)
    if error:
        raise AuthorizationError(f"Sign-in with {provider} was denied")
    if not code or not state or not verify_state_token(state, provider):
        raise AuthorizationError("Invalid OAuth state")

    profile = await oauth.fetch_profile(provider, code)
    user = await run_in_threadpool(
        provision_oauth_user, db, profile.email, provider, profile.name, profile.image
    )

    return AuthResponse(
        access_token=create_access_token(user.id, user.email),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user


@router.post("/logout")
async def logout(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Logout (client should discard token)."""
    return {"message": "Logged out successfully"}
