"""Authentication service for JWT, password handling and the user directory."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from testimonial_hub.config import get_settings
from testimonial_hub.errors import ConflictError
from testimonial_hub.models.enums import AccountOrigin
from testimonial_hub.models.user import User

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class Identity:
    """Authenticated caller resolved from a bearer token."""

    user_id: int
    email: str | None = None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_access_token(user_id: int, email: str) -> str:
    """Create a JWT access token."""
    settings = get_settings()
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_expiration_minutes)
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "exp": expire,
    }
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT token."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return payload
    except JWTError:
        return None


def identity_from_token(token: str) -> Identity | None:
    """Resolve a bearer token to an identity, or None if it is invalid."""
    payload = decode_access_token(token)
    if payload is None or payload.get("purpose") is not None:
        return None

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        return None
    return Identity(user_id=user_id, email=payload.get("email"))


def create_state_token(provider: str) -> str:
    """Create a short-lived signed OAuth ``state`` value bound to a provider."""
    settings = get_settings()
    expire = datetime.now(UTC) + timedelta(minutes=settings.oauth_state_expiration_minutes)
    to_encode = {"purpose": "oauth_state", "provider": provider, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_state_token(state: str, provider: str) -> bool:
    """Check that an OAuth ``state`` value was issued by us for this provider."""
    payload = decode_access_token(state)
    if payload is None:
        return False
    return payload.get("purpose") == "oauth_state" and payload.get("provider") == provider


def verify_credentials(db: Session, email: str, password: str) -> User | None:
    """Authenticate a user by email and password.

    OAuth-provisioned accounts have no usable password and never match.
    """
    user = get_user_by_email(db, email)
    if not user:
        return None
    if not user.has_password:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email."""
    return db.query(User).filter(User.email == email).first()


def get_user(db: Session, user_id: int) -> User | None:
    """Get a user by id."""
    return db.query(User).filter(User.id == user_id).first()


def create_user(db: Session, email: str, password: str, name: str | None = None) -> User:
    """Create a credentials account.

    Raises:
        ConflictError: If the email is already registered.
    """
    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")

    hashed_password = get_password_hash(password)
    user = User(
        email=email,
        password_hash=hashed_password,
        name=name,
        origin=AccountOrigin.CREDENTIALS.value,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise ConflictError("User with this email already exists") from e
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def provision_oauth_user(
    db: Session,
    email: str,
    provider: str,
    name: str | None = None,
    image: str | None = None,
) -> User:
    """Return the user for an OAuth sign-in, creating it on first sign-in.

    Existing accounts (of any origin) are returned unchanged.
    """
    existing_user = get_user_by_email(db, email)
    if existing_user:
        return existing_user

    user = User(
        email=email,
        name=name,
        image=image,
        password_hash=None,
        origin=AccountOrigin.OAUTH.value,
        oauth_provider=provider,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing_user = get_user_by_email(db, email)
        if existing_user is None:
            raise
        return existing_user
    db.refresh(user)
    logger.info("Provisioned %s OAuth user %s", provider, user.id)
    return user
