"""Certificate generation for the certificate image service.

This module handles the generation pipeline:
- Request validation and default filling
- Template rendering (delegating to rendering module)
- PNG rasterization into a per-request temporary file
- Upload to the configured bucket

Steps run strictly in sequence; the first failure aborts the rest and
propagates to the route, which maps it to an HTTP response. Nothing is
retried.
"""

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from core.config import Settings, get_settings
from core.logger import get_logger
from core.wide_event import set_wide_event_fields
from rendering.certificates import (
    RenderError,
    TemplateNotFoundError,
    certificate_image_file,
    rasterize_markup,
    render_certificate_markup,
)
from schemas import CertificateLocation, ValidationFailure
from services.certificate_request_service import (
    normalize_certificate_request,
    validate_certificate_request,
)
from services.storage_service import (
    CertificateUploader,
    StorageError,
    certificate_storage_key,
)

logger = get_logger(__name__)

T = TypeVar("T")


class CertificateValidationError(Exception):
    """Raised when the request body is missing or has invalid fields."""

    def __init__(self, failure: ValidationFailure):
        self.failure = failure
        super().__init__(failure.message)


class CertificateTimeoutError(Exception):
    """Raised when a generation step exceeds its configured time limit."""

    def __init__(self, step: str, seconds: float, *, completed_late: bool = False):
        self.step = step
        self.seconds = seconds
        # The abandoned step went on to succeed after the limit
        self.completed_late = completed_late
        super().__init__(f"certificate {step} timed out after {seconds:g}s")


# Server-side failures; all reported to the caller as HTTP 500
GENERATION_ERRORS = (
    TemplateNotFoundError,
    RenderError,
    StorageError,
    CertificateTimeoutError,
)


@dataclass(frozen=True)
class GeneratedCertificate:
    key: str
    url: str

    def location(self) -> CertificateLocation:
        return CertificateLocation(key=self.key, url=self.url)


async def _settle(task: asyncio.Future[Any]) -> bool:
    """Wait for an abandoned step; True when it finished without raising."""
    (result,) = await asyncio.gather(task, return_exceptions=True)
    return not isinstance(result, BaseException)


async def _bounded(step: str, seconds: float, work: Awaitable[T]) -> T:
    """Await ``work`` for at most ``seconds``.

    Worker threads cannot be cancelled, so a step that runs past its limit is
    left to finish before the error is raised. Callers hold the temporary
    image open around this call, and it must outlive any thread that still
    writes or reads it.

    Raises:
        CertificateTimeoutError: If ``work`` did not finish in time
    """
    task = asyncio.ensure_future(work)
    try:
        async with asyncio.timeout(seconds):
            return await asyncio.shield(task)
    except TimeoutError:
        pass
    except asyncio.CancelledError:
        await _settle(task)
        raise

    completed_late = await _settle(task)
    logger.warning(
        "certificate.step.timed_out",
        step=step,
        limit_seconds=seconds,
        completed_late=completed_late,
    )
    raise CertificateTimeoutError(step, seconds, completed_late=completed_late)


async def generate_certificate(
    data: Mapping[str, Any],
    uploader: CertificateUploader,
    settings: Settings | None = None,
) -> GeneratedCertificate:
    """Validate, render, rasterize and upload one certificate.

    Args:
        data: Raw request record (camelCase keys)
        uploader: Uploader bound to the destination bucket
        settings: Defaults to the process-wide settings

    Returns:
        Storage key and public URL of the uploaded image

    Raises:
        CertificateValidationError: If the request is rejected
        TemplateNotFoundError: If the requested layout does not exist
        RenderError: If the layout or the rasterizer fails
        StorageError: If the upload fails
        CertificateTimeoutError: If a step exceeds its time limit
    """
    settings = settings or get_settings()

    failure = validate_certificate_request(data)
    if failure is not None:
        logger.info("certificate.validation_failed", message=failure.message)
        raise CertificateValidationError(failure)

    certificate = normalize_certificate_request(data)
    key = certificate_storage_key(
        certificate.org_code, certificate.course_id, certificate.student_id
    )
    set_wide_event_fields(
        certificate_template=certificate.template_name,
        certificate_key=key,
        org_code=certificate.org_code,
    )

    markup = await _bounded(
        "render",
        settings.render_timeout_seconds,
        asyncio.to_thread(
            render_certificate_markup,
            settings.templates_dir_path,
            certificate.template_name,
            certificate.template_context(),
        ),
    )

    with certificate_image_file(settings.output_dir_path) as image_path:
        logger.info(
            "certificate.rasterize.started", template=certificate.template_name
        )
        await _bounded(
            "rasterize",
            settings.render_timeout_seconds,
            asyncio.to_thread(
                rasterize_markup, markup, image_path, scale=settings.raster_scale
            ),
        )
        try:
            url = await _bounded(
                "upload",
                settings.upload_timeout_seconds,
                uploader.upload(image_path, key),
            )
        except CertificateTimeoutError as e:
            # The caller is told the upload failed, so no object may remain
            if e.completed_late:
                await uploader.discard(key)
            raise

    logger.info("certificate.generated", key=key, url=url)
    return GeneratedCertificate(key=key, url=url)
