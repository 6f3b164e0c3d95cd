"""Testimonial ingestion and retrieval."""

import logging
import math
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlparse

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from testimonial_hub.errors import StorageError, UpstreamError, ValidationError
from testimonial_hub.models.enums import TestimonialType
from testimonial_hub.models.testimonial import Testimonial
from testimonial_hub.models.user import User
from testimonial_hub.schemas.testimonial import (
    UNKNOWN_USER_NAME,
    TestimonialPage,
    TestimonialResponse,
    TestimonialSubmission,
    UserProfile,
)
from testimonial_hub.services.media import CloudinaryUploader

logger = logging.getLogger(__name__)

STORAGE_KEY_PREFIX = "testimonials"
MAX_KEY_STEM_LENGTH = 64


@dataclass
class MediaAttachment:
    """A binary file attached to a submission."""

    data: bytes
    filename: str | None = None
    content_type: str | None = None


def make_storage_key(filename: str | None) -> str:
    """Build a collision-free storage key for an uploaded file.

    The random component keeps keys unique under burst submission; the
    sanitised filename stem only aids humans browsing the media host.
    """
    stem = (filename or "upload").rsplit("/", 1)[-1].rsplit(".", 1)[0]
    stem = re.sub(r"[^A-Za-z0-9_-]+", "-", stem).strip("-")[:MAX_KEY_STEM_LENGTH] or "upload"
    return f"{STORAGE_KEY_PREFIX}/{uuid.uuid4().hex}-{stem}"


def _is_url(value: str) -> bool:
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def profile_for(user: User | None) -> UserProfile:
    """Public display fields for a testimonial owner, or the sentinel profile."""
    if user is None:
        return UserProfile.unknown()
    return UserProfile(name=user.name or UNKNOWN_USER_NAME, image=user.image or "")


class TestimonialService:
    """Service for submitting and reading testimonials."""

    def __init__(
        self,
        db: Session,
        uploader: CloudinaryUploader | None = None,
        upload_attempts: int = 1,
    ):
        self.db = db
        self.uploader = uploader
        self.upload_attempts = max(1, upload_attempts)

    # -- ingestion -----------------------------------------------------------

    async def submit(
        self,
        user: User,
        submission: TestimonialSubmission,
        media: MediaAttachment | None = None,
    ) -> TestimonialResponse:
        """Persist a submission from an authenticated user.

        Validation happens before the upload, and the upload before the write,
        so a failure at any step leaves no testimonial behind.

        Raises:
            ValidationError: Content is missing or not a URL where one is required
            UpstreamError: The media host failed or timed out
            StorageError: The database write failed
        """
        inline_text = self._inline_content(submission, media)

        if media is not None:
            content = await self._upload_media(media, user.id)
            message = ""
        else:
            content = inline_text
            message = inline_text

        return await run_in_threadpool(
            self._persist, user, submission, content, message, media is not None
        )

    def _inline_content(
        self, submission: TestimonialSubmission, media: MediaAttachment | None
    ) -> str:
        text = submission.content or ""
        if media is not None:
            return text
        if not text.strip():
            raise ValidationError("content is required when no media file is attached")
        if submission.type.is_media and not _is_url(text):
            raise ValidationError(
                f"{submission.type.value} testimonials require a media file or a media URL"
            )
        return text

    async def _upload_media(self, media: MediaAttachment, user_id: int) -> str:
        if self.uploader is None:
            raise UpstreamError("Media host is not configured")

        for attempt in range(1, self.upload_attempts + 1):
            # Fresh key per attempt so a retry never overwrites an earlier object
            key = make_storage_key(media.filename)
            try:
                return await self.uploader.upload(
                    media.data,
                    key,
                    filename=media.filename or "upload",
                    content_type=media.content_type,
                )
            except UpstreamError:
                logger.warning(
                    "Media upload attempt %d/%d failed for user %s",
                    attempt,
                    self.upload_attempts,
                    user_id,
                )
                if attempt == self.upload_attempts:
                    raise
        raise UpstreamError("Media upload failed")

    def _persist(
        self,
        user: User,
        submission: TestimonialSubmission,
        content: str,
        message: str,
        uploaded: bool,
    ) -> TestimonialResponse:
        # Read before commit: a rollback expires the instance
        user_id = user.id
        testimonial = Testimonial(
            name=submission.name,
            course=submission.course,
            type=submission.type.value,
            content=content,
            message=message,
            date=submission.date,
            user_id=user_id,
        )
        self.db.add(testimonial)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            if uploaded:
                # Not rolled back: the uploaded object stays on the media host
                logger.error("Orphaned media left on media host: %s", content)
            logger.error("Failed to store testimonial for user %s: %s", user_id, e)
            raise StorageError("Failed to save testimonial") from e

        self.db.refresh(testimonial)
        logger.info("Stored %s testimonial %s for user %s", submission.type, testimonial.id, user_id)
        return self._to_response(testimonial, profile_for(user))

    # -- retrieval -----------------------------------------------------------

    def list_page(
        self,
        page: int = 1,
        limit: int = 10,
        type_filter: TestimonialType | None = None,
        search: str | None = None,
    ) -> TestimonialPage:
        """Return one page of the public feed, newest first."""
        if page < 1 or limit < 1:
            raise ValidationError("page and number must be positive integers")

        query = self._feed_query(type_filter, search)
        try:
            total = query.count()
            rows = (
                self._ordered(query)
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Failed to read testimonial feed (page=%s, limit=%s): %s", page, limit, e)
            raise StorageError("Failed to read testimonials") from e

        return TestimonialPage(
            testimonials=self.enrich(rows),
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    def recent(self, limit: int = 3) -> list[TestimonialResponse]:
        """Return the most recently created testimonials."""
        if limit < 1:
            raise ValidationError("limit must be a positive integer")
        try:
            rows = self._ordered(self.db.query(Testimonial)).limit(limit).all()
        except SQLAlchemyError as e:
            logger.error("Failed to read recent testimonials: %s", e)
            raise StorageError("Failed to read testimonials") from e
        return self.enrich(rows)

    def enrich(self, testimonials: Iterable[Testimonial]) -> list[TestimonialResponse]:
        """Attach each owner's public profile, using one batched user lookup.

        Owners that no longer exist get the sentinel profile instead of
        failing the whole result.
        """
        testimonials = list(testimonials)
        user_ids = {t.user_id for t in testimonials if t.user_id is not None}

        users: dict[int, User] = {}
        if user_ids:
            users = {u.id: u for u in self.db.query(User).filter(User.id.in_(user_ids)).all()}

        result = []
        for testimonial in testimonials:
            owner = users.get(testimonial.user_id) if testimonial.user_id is not None else None
            if owner is None:
                logger.debug("Owner missing for testimonial %s", testimonial.id)
            result.append(self._to_response(testimonial, profile_for(owner)))
        return result

    def _feed_query(self, type_filter: TestimonialType | None, search: str | None) -> Query:
        query = self.db.query(Testimonial)
        if type_filter is not None:
            query = query.filter(Testimonial.type == type_filter.value)
        if search and search.strip():
            pattern = f"%{_escape_like(search.strip())}%"
            query = query.filter(
                or_(
                    Testimonial.name.ilike(pattern, escape="\\"),
                    Testimonial.course.ilike(pattern, escape="\\"),
                    Testimonial.content.ilike(pattern, escape="\\"),
                )
            )
        return query

    @staticmethod
    def _ordered(query: Query) -> Query:
        # Identifier breaks ties between rows created in the same instant
        return query.order_by(Testimonial.created_at.desc(), Testimonial.id.desc())

    @staticmethod
    def _to_response(testimonial: Testimonial, profile: UserProfile) -> TestimonialResponse:
        return TestimonialResponse(
            id=testimonial.id,
            name=testimonial.name,
            course=testimonial.course,
            type=TestimonialType(testimonial.type),
            content=testimonial.content,
            message=testimonial.message or "",
            date=testimonial.date,
            user_id=testimonial.user_id,
            created_at=testimonial.created_at,
            updated_at=testimonial.updated_at,
            user=profile,
        )
