"""Service layer for business logic.

Services keep routes thin and focused on HTTP handling:
- certificate_request_service: request validation and default filling
- storage_service: storage keys, public URLs and bucket uploads
- certificates_service: the generation pipeline tying them together

Layer hierarchy:
    Routes (HTTP) -> Services (Business Logic) -> Rendering / Storage clients

Services should NOT know about HTTP request/response details; they raise
exceptions that routes map to status codes.
"""
