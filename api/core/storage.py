"""Google Cloud Storage client for certificate uploads.

The client is created once at application startup (see ``main.lifespan``),
stored on ``app.state`` and handed to request handlers through the
``CertificateBucket`` dependency. Tests override that dependency with a fake
bucket instead of patching a module-level singleton.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from google.cloud import storage

from core.config import Settings, get_settings
from core.logger import get_logger

logger = get_logger(__name__)


def create_storage_client(settings: Settings | None = None) -> storage.Client:
    """Build a storage client from ambient Google credentials."""
    settings = settings or get_settings()
    client = storage.Client(project=settings.gcp_project or None)
    logger.info("storage.client.created", project=client.project)
    return client


def close_storage_client(client: storage.Client | None) -> None:
    """Release the client's HTTP session (called on application shutdown)."""
    if client is not None:
        client.close()


class StorageUnavailableError(Exception):
    """Raised when a request needs the bucket but no storage client exists.

    Happens when client creation failed at startup or has not finished yet.
    The startup error, when there is one, is part of the message.
    """

    def __init__(self, init_error: str | None):
        self.init_error = init_error
        super().__init__(
            f"storage client unavailable: {init_error or 'still starting'}"
        )


def get_certificate_bucket(request: Request) -> storage.Bucket:
    """Resolve the destination bucket from the app-wide storage client.

    Raises:
        StorageUnavailableError: If the lifespan did not create a client
    """
    client: storage.Client | None = getattr(request.app.state, "storage_client", None)
    if client is None:
        raise StorageUnavailableError(getattr(request.app.state, "init_error", None))
    return client.bucket(get_settings().bucket)


CertificateBucket = Annotated[storage.Bucket, Depends(get_certificate_bucket)]
