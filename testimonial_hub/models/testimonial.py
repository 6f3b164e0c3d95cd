"""Testimonial model."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from testimonial_hub.database import Base
from testimonial_hub.models.mixins import TimestampMixin


class Testimonial(Base, TimestampMixin):
    """A course review submitted by a user, as inline text or a hosted media URL."""

    __tablename__ = "testimonials"
    __table_args__ = (
        CheckConstraint("type IN ('text', 'audio', 'video')", name="ck_testimonials_type"),
        Index("ix_testimonials_created_at_id", "created_at", "id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    course = Column(String(255), nullable=False)
    type = Column(String(10), nullable=False, index=True)  # 'text', 'audio', 'video'
    content = Column(Text, nullable=False)
    message = Column(Text, nullable=False, default="")
    date = Column(DateTime(timezone=True), nullable=False)  # course completion, display only
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Untyped owner reference carried over from the legacy store until backfilled
    legacy_user_ref = Column(String(255), nullable=True)

    # Relationships
    user = relationship("User", backref="testimonials")
