"""Certificate request validation and normalization.

Validation runs every check in a fixed order and reports the message of the
LAST failing check, not the first: omitting both ``name`` and ``date``
reports ``date is required``.
"""

import re
from collections.abc import Callable, Mapping
from typing import Any

from schemas import CertificateRequest, ValidationFailure

# Older clients send the layout under its pre-Jinja2 name
LEGACY_TEMPLATE_FIELD = "ejsTemplateName"

REQUIRED_FIELDS: tuple[str, ...] = (
    "templateName",
    "name",
    "date",
    "courseName",
    "subtitle",
    "orgCode",
    "orgLogo",
    "signature",
    "courseId",
    "studentId",
)

IDENTIFIER_FIELDS: tuple[str, ...] = ("orgCode", "courseId", "studentId")

# ASCII digits only; int() alone also takes "1_000" and other scripts' digits
_IDENTIFIER_TEXT = re.compile(r"-?[0-9]+")

STRING_FIELDS: tuple[str, ...] = (
    "templateName",
    "name",
    "date",
    "courseName",
    "title",
    "subtitle",
    "orgLogo",
    "orgName",
    "signature",
)


def _template_name(data: Mapping[str, Any]) -> Any:
    return data.get("templateName") or data.get(LEGACY_TEMPLATE_FIELD)


def _field(data: Mapping[str, Any], field: str) -> Any:
    if field == "templateName":
        return _template_name(data)
    return data.get(field)


def coerce_identifier(value: Any) -> int | None:
    """Convert a JSON number or numeric string to ``int``.

    Strings must be plain ASCII decimal digits with an optional leading
    minus. Returns None when the value is not an integer (booleans,
    fractions, other strings, containers).
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        return int(text) if _IDENTIFIER_TEXT.fullmatch(text) else None
    return None


def _is_invalid_identifier(value: Any) -> bool:
    if not value:
        # Missing identifiers are reported by the required check
        return False
    number = coerce_identifier(value)
    return number is None or number < 0


def _checks() -> list[tuple[Callable[[Mapping[str, Any]], bool], str]]:
    checks: list[tuple[Callable[[Mapping[str, Any]], bool], str]] = [
        (lambda data, f=field: not _field(data, f), f"{field} is required")
        for field in REQUIRED_FIELDS
    ]
    checks.extend(
        (lambda data, f=field: _is_invalid_identifier(data.get(f)), f"invalid {field}")
        for field in IDENTIFIER_FIELDS
    )
    return checks


_CHECKS = _checks()


def validate_certificate_request(data: Mapping[str, Any]) -> ValidationFailure | None:
    """Validate a raw certificate request.

    Every check runs; a later failure overwrites the message of an earlier one.

    Returns:
        ValidationFailure carrying the last failing check's message, or None
        when the request is valid.
    """
    message = ""
    for failed, check_message in _CHECKS:
        if failed(data):
            message = check_message

    if message:
        return ValidationFailure(message=message)
    return None


def _as_text(value: Any) -> str:
    if not value:
        return ""
    return value if isinstance(value, str) else str(value)


def normalize_certificate_request(data: Mapping[str, Any]) -> CertificateRequest:
    """Fill defaults on a validated request and return the typed record.

    Absent optional text (``title``, ``orgName``) becomes ``""`` and falsy
    identifiers become ``0``. Call only after validate_certificate_request
    returned None.
    """
    values: dict[str, Any] = {field: _as_text(_field(data, field)) for field in STRING_FIELDS}
    for field in IDENTIFIER_FIELDS:
        values[field] = coerce_identifier(data.get(field) or 0) or 0
    return CertificateRequest.model_validate(values)
