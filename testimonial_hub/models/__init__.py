"""SQLAlchemy models."""

from testimonial_hub.models.testimonial import Testimonial
from testimonial_hub.models.user import User

__all__ = [
    "User",
    "Testimonial",
]
