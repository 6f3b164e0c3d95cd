"""User model."""

from sqlalchemy import Column, Integer, String

from testimonial_hub.database import Base
from testimonial_hub.models.enums import AccountOrigin
from testimonial_hub.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """User account for authentication and testimonial ownership."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)  # NULL for OAuth accounts
    name = Column(String(255), nullable=True)
    image = Column(String(1024), nullable=True)
    origin = Column(String(20), nullable=False, default=AccountOrigin.CREDENTIALS.value)
    oauth_provider = Column(String(50), nullable=True)

    @property
    def has_password(self) -> bool:
        return self.origin == AccountOrigin.CREDENTIALS and bool(self.password_hash)
