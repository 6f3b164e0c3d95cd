"""Course catalogue endpoint."""

from fastapi import APIRouter

from testimonial_hub.config import get_settings

router = APIRouter(prefix="/api/v1/courses", tags=["courses"])


@router.get("", response_model=list[str])
async def get_courses():
    """Get the courses offered in the submission form.

    Submissions are not checked against this list.
    """
    return get_settings().course_catalog
