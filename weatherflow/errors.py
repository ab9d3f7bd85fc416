from __future__ import annotations

from typing import Optional


class ProviderError(RuntimeError):
    """Base provider error."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ClientError(ProviderError):
    """HTTP 4xx from the provider. Never retried."""


class QuotaExceeded(ClientError):
    """Raised when a provider reports a quota/usage limit issue."""


class TransientError(ProviderError):
    """Network failure, timeout or 5xx. Retried before giving up."""


class DataShapeError(TransientError):
    """Provider response is missing expected fields or is not JSON."""


class StorageUnavailable(RuntimeError):
    """The persistence medium cannot be read or written."""


class ConfigurationError(RuntimeError):
    """Settings are missing or inconsistent."""


__all__ = [
    "ProviderError",
    "ClientError",
    "QuotaExceeded",
    "TransientError",
    "DataShapeError",
    "StorageUnavailable",
    "ConfigurationError",
]
