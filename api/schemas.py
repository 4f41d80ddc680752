"""Pydantic schemas for certificate requests and API responses."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CertificateRequest(BaseModel):
    """Normalized certificate request.

    Built only after validation has passed (see
    services.certificate_request_service). Field aliases match the camelCase
    JSON sent by clients, and templates receive the record by alias.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    template_name: str
    name: str
    date: str
    course_name: str
    title: str = ""
    subtitle: str
    org_logo: str
    org_code: int = Field(ge=0)
    org_name: str = ""
    signature: str
    course_id: int = Field(ge=0)
    student_id: int = Field(ge=0)

    def template_context(self) -> dict[str, str | int]:
        """Full record with client-facing field names, for template rendering."""
        return self.model_dump(by_alias=True)


class ValidationFailure(BaseModel):
    """Body returned with HTTP 400 when a certificate request is rejected."""

    status: Literal["failed"] = "failed"
    data: dict = Field(default_factory=dict)
    message: str


class CertificateLocation(BaseModel):
    """Where a generated certificate was stored."""

    key: str
    url: str


class CertificateGeneratedResponse(BaseModel):
    """Body returned with HTTP 200 when RESPOND_WITH_URL is enabled."""

    status: Literal["success"] = "success"
    data: CertificateLocation
    message: str = ""


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


class ReadinessResponse(HealthResponse):
    """Readiness response with the layouts this instance can render."""

    bucket: str
    templates: list[str]
