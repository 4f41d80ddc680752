"""Health check endpoints."""

from fastapi import APIRouter, HTTPException, Request
from starlette import status

from core.config import get_settings
from core.telemetry import SERVICE_NAME
from rendering.certificates import list_certificate_templates
from schemas import HealthResponse, ReadinessResponse

router = APIRouter(tags=["health"])


def _unavailable(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={
        503: {
            "description": "Storage client failed or still starting, or no layouts found",
            "content": {
                "application/json": {"example": {"detail": "No certificate templates"}}
            },
        }
    },
)
async def ready(request: Request) -> ReadinessResponse:
    """Readiness endpoint.

    Returns 200 only when:
    - The storage client was created at startup
    - At least one certificate layout is available
    """
    init_error = getattr(request.app.state, "init_error", None)
    if init_error:
        raise _unavailable(f"Initialization failed: {init_error}")

    if getattr(request.app.state, "storage_client", None) is None:
        raise _unavailable("Starting")

    settings = get_settings()
    templates = list_certificate_templates(settings.templates_dir_path)
    if not templates:
        raise _unavailable("No certificate templates")

    return ReadinessResponse(
        status="ready",
        service=SERVICE_NAME,
        bucket=settings.bucket,
        templates=templates,
    )
