"""FastAPI dependencies for authentication, database and services."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from testimonial_hub.config import get_settings
from testimonial_hub.database import get_db
from testimonial_hub.errors import AuthorizationError, NotFoundError
from testimonial_hub.models.user import User
from testimonial_hub.services.auth import Identity, get_user, identity_from_token
from testimonial_hub.services.media import CloudinaryUploader
from testimonial_hub.services.oauth import OAuthService
from testimonial_hub.services.testimonial_service import TestimonialService

# Missing credentials are reported by require_identity, not by the scheme
security = HTTPBearer(auto_error=False)


def get_optional_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Identity | None:
    """Resolve the request's bearer token to an identity, or None."""
    if credentials is None:
        return None
    return identity_from_token(credentials.credentials)


def require_identity(
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
) -> Identity:
    """Fail closed when the request carries no valid identity."""
    if identity is None:
        raise AuthorizationError("Invalid authentication credentials")
    return identity


def get_current_user(
    identity: Annotated[Identity, Depends(require_identity)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the user record behind the authenticated identity."""
    user = get_user(db, identity.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_media_uploader(request: Request) -> CloudinaryUploader:
    """Get the shared media uploader created at startup."""
    return request.app.state.media_uploader


def get_testimonial_service(
    db: Annotated[Session, Depends(get_db)],
    uploader: Annotated[CloudinaryUploader, Depends(get_media_uploader)],
) -> TestimonialService:
    """Get testimonial service with dependencies."""
    return TestimonialService(db, uploader, upload_attempts=get_settings().media_upload_attempts)


def get_oauth_service() -> OAuthService:
    """Get OAuth service instance."""
    return OAuthService(get_settings())
