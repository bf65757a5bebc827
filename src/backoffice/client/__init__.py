"""Async Python client for the backoffice API: session cache and HTTP wrapper."""

from backoffice.client.http import ApiClient, ApiResponse
from backoffice.client.session import SessionManager, SessionSnapshot
from backoffice.client.storage import FileStorage, MemoryStorage

__all__ = [
    "ApiClient",
    "ApiResponse",
    "FileStorage",
    "MemoryStorage",
    "SessionManager",
    "SessionSnapshot",
]
