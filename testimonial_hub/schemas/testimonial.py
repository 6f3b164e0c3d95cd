"""Testimonial schemas."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from testimonial_hub.models.enums import TestimonialType

UNKNOWN_USER_NAME = "Unknown User"


class TestimonialSubmission(BaseModel):
    """Text fields of a multipart testimonial submission.

    Unknown fields are rejected. The optional binary ``media`` part is handled
    separately by the ingestion pipeline.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=255)
    course: str = Field(..., min_length=1, max_length=255)
    type: TestimonialType
    date: datetime
    content: str | None = Field(None, max_length=20000)

    @field_validator("date", mode="before")
    @classmethod
    def parse_iso_date(cls, value: object) -> object:
        """Parse ISO-8601 dates and date-times; naive values are taken as UTC."""
        if isinstance(value, str):
            try:
                parsed = datetime.fromisoformat(value.strip())
            except ValueError as e:
                raise ValueError("date must be an ISO-8601 date") from e
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed
        return value


class UserProfile(BaseModel):
    """Public display fields of a testimonial's owner."""

    name: str
    image: str

    @classmethod
    def unknown(cls) -> "UserProfile":
        return cls(name=UNKNOWN_USER_NAME, image="")


class TestimonialResponse(BaseModel):
    """Testimonial response enriched with the owner's public profile."""

    id: int
    name: str
    course: str
    type: TestimonialType
    content: str
    message: str
    date: datetime
    user_id: int | None
    created_at: datetime
    updated_at: datetime
    user: UserProfile


class TestimonialPage(BaseModel):
    """One page of the public testimonial feed."""

    model_config = ConfigDict(populate_by_name=True)

    testimonials: list[TestimonialResponse]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")
