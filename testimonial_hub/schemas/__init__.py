"""Pydantic schemas for API requests and responses."""

from testimonial_hub.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from testimonial_hub.schemas.testimonial import (
    TestimonialPage,
    TestimonialResponse,
    TestimonialSubmission,
    UserProfile,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "AuthResponse",
    "UserResponse",
    "TestimonialSubmission",
    "TestimonialResponse",
    "TestimonialPage",
    "UserProfile",
]
