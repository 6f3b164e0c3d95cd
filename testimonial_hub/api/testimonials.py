"""Testimonial API endpoints."""

from typing import Annotated

import pydantic
from fastapi import APIRouter, Depends, Query, Request, status
from starlette.datastructures import FormData, UploadFile

from testimonial_hub.api.dependencies import get_current_user, get_testimonial_service
from testimonial_hub.config import get_settings
from testimonial_hub.errors import ValidationError
from testimonial_hub.models.enums import TestimonialType
from testimonial_hub.models.user import User
from testimonial_hub.schemas.testimonial import (
    TestimonialPage,
    TestimonialResponse,
    TestimonialSubmission,
)
from testimonial_hub.services.testimonial_service import MediaAttachment, TestimonialService

settings = get_settings()

router = APIRouter(prefix="/testimonials", tags=["testimonials"])

MEDIA_FIELD = "media"


def _describe(error: pydantic.ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "body"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


async def parse_submission(
    form: FormData,
) -> tuple[TestimonialSubmission, MediaAttachment | None]:
    """Split a multipart form into typed fields and at most one media file.

    Raises:
        ValidationError: On unknown, repeated, missing or malformed fields.
    """
    fields: dict[str, str] = {}
    media: MediaAttachment | None = None
    media_seen = False

    for key, value in form.multi_items():
        if key == MEDIA_FIELD:
            if media_seen:
                raise ValidationError("Only one media file may be attached")
            media_seen = True
            if isinstance(value, UploadFile):
                data = await value.read()
                if len(data) > settings.max_media_bytes:
                    raise ValidationError("media file is too large")
                # Browsers send an empty part when no file was picked
                if data or value.filename:
                    media = MediaAttachment(
                        data=data, filename=value.filename, content_type=value.content_type
                    )
            elif value:
                raise ValidationError("media must be a file upload")
            continue

        if isinstance(value, UploadFile):
            raise ValidationError(f"{key} must be a text field")
        if key in fields:
            raise ValidationError(f"{key} may only be sent once")
        fields[key] = value

    if media is not None and not media.data:
        raise ValidationError("media file is empty")

    try:
        submission = TestimonialSubmission.model_validate(fields)
    except pydantic.ValidationError as e:
        raise ValidationError(_describe(e)) from e
    return submission, media


@router.post("", response_model=TestimonialResponse, status_code=status.HTTP_201_CREATED)
async def create_testimonial(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[TestimonialService, Depends(get_testimonial_service)],
):
    """Submit a text, audio or video testimonial."""
    async with request.form() as form:
        submission, media = await parse_submission(form)

    return await service.submit(current_user, submission, media)


@router.get("", response_model=TestimonialPage)
def list_testimonials(
    service: Annotated[TestimonialService, Depends(get_testimonial_service)],
    number: Annotated[int, Query(ge=1)] = settings.default_page_size,
    page: Annotated[int, Query(ge=1)] = 1,
    type: Annotated[TestimonialType | None, Query()] = None,
    q: Annotated[str | None, Query(max_length=200)] = None,
):
    """Get one page of testimonials, newest first."""
    return service.list_page(page=page, limit=number, type_filter=type, search=q)


@router.get("/recent", response_model=list[TestimonialResponse])
def recent_testimonials(
    service: Annotated[TestimonialService, Depends(get_testimonial_service)],
    limit: Annotated[int, Query(ge=1, le=20)] = 3,
):
    """Get the most recently submitted testimonials."""
    return service.recent(limit)
