"""Media upload adapter for the Cloudinary asset host."""

import hashlib
import logging
import time

import httpx

from testimonial_hub.config import Settings
from testimonial_hub.errors import UpstreamError

logger = logging.getLogger(__name__)


class CloudinaryUploader:
    """Uploads binary media to Cloudinary and returns its durable URL.

    Uploads are not idempotent: callers that retry must pass a fresh key on
    every attempt so an earlier attempt's object is never overwritten.
    """

    UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"

    def __init__(
        self,
        cloud_name: str | None,
        api_key: str | None,
        api_secret: str | None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "CloudinaryUploader":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            timeout=settings.media_upload_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        """Check if Cloudinary credentials are present."""
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def sign(self, params: dict[str, str]) -> str:
        """Compute the request signature Cloudinary expects for signed uploads.

        Parameters are sorted by name, joined as ``k=v`` pairs with ``&``, and
        the API secret is appended before SHA-1 hashing.
        """
        to_sign = "&".join(f"{name}={params[name]}" for name in sorted(params))
        return hashlib.sha1((to_sign + (self.api_secret or "")).encode("utf-8")).hexdigest()  # noqa: S324

    async def upload(
        self,
        payload: bytes,
        key: str,
        filename: str = "upload",
        content_type: str | None = None,
    ) -> str:
        """Upload a binary payload under ``key``.

        Args:
            payload: Raw file bytes
            key: Storage key, used as the Cloudinary public_id
            filename: Original filename sent with the multipart part
            content_type: MIME type of the payload

        Returns:
            The durable ``secure_url`` of the uploaded asset

        Raises:
            UpstreamError: On timeout, transport failure, non-2xx status, or a
                response without a URL.
        """
        if not self.is_configured:
            raise UpstreamError("Media host is not configured")

        params = {"public_id": key, "timestamp": str(int(time.time()))}
        data = {**params, "api_key": self.api_key, "signature": self.sign(params)}
        files = {"file": (filename, payload, content_type or "application/octet-stream")}
        url = self.UPLOAD_URL.format(cloud_name=self.cloud_name)

        try:
            response = await self._get_client().post(
                url, data=data, files=files, timeout=self.timeout
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            logger.error("Media upload timed out after %.1fs (key=%s)", self.timeout, key)
            raise UpstreamError("Media upload timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "Media host rejected upload (key=%s, status=%s)", key, e.response.status_code
            )
            raise UpstreamError("Media upload failed") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Media upload failed (key=%s): %s", key, e)
            raise UpstreamError("Media upload failed") from e

        secure_url = body.get("secure_url") if isinstance(body, dict) else None
        if not secure_url:
            logger.error("Media host response had no secure_url (key=%s)", key)
            raise UpstreamError("Media upload failed")

        logger.info("Uploaded media %s (%d bytes)", key, len(payload))
        return secure_url

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
