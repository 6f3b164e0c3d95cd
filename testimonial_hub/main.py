"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from testimonial_hub.api import auth, courses, testimonials
from testimonial_hub.config import get_settings
from testimonial_hub.database import Database
from testimonial_hub.errors import AppError, AuthorizationError
from testimonial_hub.services.media import CloudinaryUploader

settings = get_settings()
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the shared database handle and media client for the process lifetime."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.database = Database(settings.database_url)
    app.state.media_uploader = CloudinaryUploader.from_settings(settings)
    if not app.state.media_uploader.is_configured:
        logger.warning("Cloudinary credentials missing; media submissions will fail")
    logger.info("Testimonial API starting (environment=%s)", settings.environment)
    yield
    await app.state.media_uploader.close()
    app.state.database.dispose()


app = FastAPI(
    title="Testimonial Hub API",
    description="Course testimonials: text, audio and video reviews with a public feed",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render application errors as a stable code/detail pair."""
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.detail,
            exc_info=exc.__cause__ is not None,
        )
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.detail)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthorizationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.detail},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 rather than FastAPI's default 422."""
    parts = []
    for detail in exc.errors():
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"code": "validation_error", "detail": "; ".join(parts) or "Invalid request"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Never leak internals for unexpected failures."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"code": "internal_error", "detail": "Internal server error"},
    )


# Register routers. Registration and the feed live at the bare public paths,
# with an undocumented alias under the versioned prefix.
app.include_router(auth.register_router)
app.include_router(testimonials.router)
app.include_router(auth.register_router, prefix=API_PREFIX, include_in_schema=False)
app.include_router(testimonials.router, prefix=API_PREFIX, include_in_schema=False)
app.include_router(auth.router)
app.include_router(courses.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
