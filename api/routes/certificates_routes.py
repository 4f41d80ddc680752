"""Certificate generation endpoint.

``POST /api/certificates/generate`` renders a certificate from a named layout
and uploads it to the configured bucket. ``POST /generateCertificate`` is the
same handler under the path older clients call.

Responses:
    200: literal ``success`` (or JSON with the URL when RESPOND_WITH_URL=true)
    400: ``{"status": "failed", "data": {}, "message": ...}``
    500: plain-text failure message
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from core.config import get_settings
from core.logger import get_logger
from core.storage import CertificateBucket
from schemas import CertificateGeneratedResponse, ValidationFailure
from services.certificates_service import (
    GENERATION_ERRORS,
    CertificateValidationError,
    generate_certificate,
)
from services.storage_service import CertificateUploader

logger = get_logger(__name__)

router = APIRouter(prefix="/api/certificates", tags=["certificates"])
legacy_router = APIRouter(tags=["certificates"])

SUCCESS_MARKER = "success"


def get_certificate_uploader(bucket: CertificateBucket) -> CertificateUploader:
    settings = get_settings()
    return CertificateUploader(
        bucket,
        cache_control=settings.certificate_cache_control,
        public_base_url=settings.storage_public_base_url,
    )


Uploader = Annotated[CertificateUploader, Depends(get_certificate_uploader)]


async def _read_body(request: Request) -> dict[str, Any]:
    """Parse the JSON body; anything but a JSON object counts as empty."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@legacy_router.post("/generateCertificate", include_in_schema=False)
@router.post(
    "/generate",
    response_model=None,
    responses={
        200: {"description": "Certificate generated and uploaded"},
        400: {"model": ValidationFailure, "description": "Invalid request"},
        500: {"description": "Rendering or upload failed"},
    },
)
async def generate_certificate_endpoint(
    request: Request,
    uploader: Uploader,
) -> Response:
    """Render a certificate image and upload it to cloud storage."""
    data = await _read_body(request)

    try:
        result = await generate_certificate(data, uploader)
    except CertificateValidationError as e:
        return JSONResponse(status_code=400, content=e.failure.model_dump())
    except GENERATION_ERRORS as e:
        logger.error(
            "certificate.generation.failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return PlainTextResponse(str(e), status_code=500)

    if get_settings().respond_with_url:
        body = CertificateGeneratedResponse(data=result.location())
        return JSONResponse(status_code=200, content=body.model_dump())
    return PlainTextResponse(SUCCESS_MARKER)
