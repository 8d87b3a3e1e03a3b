# Backend client package.

from shadowbubble.backend.http import HttpBackendClient
from shadowbubble.backend.protocol import (
    BackendClient,
    BackendError,
    BackendResponseError,
    BackendUnavailableError,
)

__all__ = [
    "BackendClient",
    "BackendError",
    "BackendResponseError",
    "BackendUnavailableError",
    "HttpBackendClient",
]
