"""Certificate storage: object keys, public URLs and bucket uploads.

Uploads are single-shot (non-resumable) transfers of the rasterized PNG to
``{orgCode}/certificate_{studentId}_{courseId}.png``. Re-submitting the same
identifiers overwrites the previous object; the bucket keeps no versions.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage

from core.logger import get_logger

logger = get_logger(__name__)

CERTIFICATE_CONTENT_TYPE = "image/png"
CERTIFICATE_FILE_FORMAT = ".png"
DEFAULT_PUBLIC_BASE_URL = "https://storage.googleapis.com"


class StorageError(Exception):
    """Raised when the certificate could not be written to the bucket."""

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(str(cause) or f"failed to upload {key}")


def certificate_storage_key(org_code: int, course_id: int, student_id: int) -> str:
    """Object key for a certificate; depends only on the three identifiers."""
    return f"{org_code}/certificate_{student_id}_{course_id}{CERTIFICATE_FILE_FORMAT}"


def certificate_public_url(
    bucket: str, key: str, base_url: str = DEFAULT_PUBLIC_BASE_URL
) -> str:
    return f"{base_url.rstrip('/')}/{bucket}/{key}"


@dataclass(frozen=True)
class UploadOutcome:
    """Result of one upload attempt: exactly one of url/error is set."""

    key: str
    url: str = ""
    error: BaseException | None = None

    @property
    def finished(self) -> bool:
        return self.error is None


class CertificateUploader:
    """Streams certificate images into a bucket.

    The bucket (and the client behind it) is created by the caller and
    injected, so tests can pass a fake with the same ``blob()`` interface.
    """

    def __init__(
        self,
        bucket: storage.Bucket,
        *,
        cache_control: str = "public, max-age=30000",
        public_base_url: str = DEFAULT_PUBLIC_BASE_URL,
    ):
        self.bucket = bucket
        self.cache_control = cache_control
        self.public_base_url = public_base_url

    def _transfer(self, image_path: Path, key: str) -> UploadOutcome:
        """Blocking transfer; every transport failure becomes a failed outcome."""
        blob = self.bucket.blob(key)
        blob.cache_control = self.cache_control
        try:
            with image_path.open("rb") as stream:
                # A known size keeps the client on a single multipart request
                # instead of a resumable session.
                blob.upload_from_file(
                    stream,
                    size=image_path.stat().st_size,
                    content_type=CERTIFICATE_CONTENT_TYPE,
                    rewind=True,
                )
        except (GoogleAPIError, GoogleAuthError, OSError) as e:
            return UploadOutcome(key=key, error=e)

        url = certificate_public_url(self.bucket.name, key, self.public_base_url)
        return UploadOutcome(key=key, url=url)

    async def upload(self, image_path: Path, key: str) -> str:
        """Upload ``image_path`` to ``key`` and return its public URL.

        Raises:
            StorageError: If the transfer fails. Nothing is retried.
        """
        outcome = await asyncio.to_thread(self._transfer, image_path, key)

        if outcome.error is not None:
            logger.error(
                "certificate.upload.failed",
                key=key,
                bucket=self.bucket.name,
                error=str(outcome.error),
                error_type=type(outcome.error).__name__,
            )
            raise StorageError(key, outcome.error) from outcome.error

        logger.info("certificate.uploaded", key=key, bucket=self.bucket.name)
        return outcome.url

    def _delete(self, key: str) -> None:
        try:
            self.bucket.blob(key).delete()
        except NotFound:
            return
        except (GoogleAPIError, GoogleAuthError, OSError) as e:
            logger.error(
                "certificate.discard.failed",
                key=key,
                bucket=self.bucket.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        logger.info("certificate.discarded", key=key, bucket=self.bucket.name)

    async def discard(self, key: str) -> None:
        """Delete ``key`` after an upload that the caller already gave up on.

        A missing object is not an error. A failed delete is logged, not
        raised, so the original failure still reaches the caller.
        """
        await asyncio.to_thread(self._delete, key)
