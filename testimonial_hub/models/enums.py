"""Enums for model fields."""

from enum import StrEnum


class TestimonialType(StrEnum):
    """How a testimonial's content is interpreted."""

    TEXT = "text"
    AUDIO = "audio"
    VIDEO = "video"

    @property
    def is_media(self) -> bool:
        """Check if content must be a fetchable media URL."""
        return self in (TestimonialType.AUDIO, TestimonialType.VIDEO)


class AccountOrigin(StrEnum):
    """How a user account was provisioned."""

    CREDENTIALS = "credentials"
    OAUTH = "oauth"
