"""Custom exception hierarchy for topicsource.

These exceptions allow hosts to tell an unusable instance (failed
initialization) apart from a single failed fetch, and to discriminate fetch
failures by kind while preserving the original cause.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class TopicSourceError(Exception):
    """Base class for all topicsource exceptions."""


class ConfigError(TopicSourceError):
    """Raised when configuration loading or validation fails."""


class RegistryError(ConfigError):
    """Raised for unknown or conflicting data source names."""


class InitializationError(TopicSourceError):
    """Raised only from `DataSource.initialize`.

    The instance must not be used afterwards.
    """


class FetchErrorKind(str, Enum):
    """Category of a fetch failure."""

    UNKNOWN = "unknown"
    TIMEOUT = "timeout"
    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"
    UNAVAILABLE = "unavailable"
    INVALID_QUERY = "invalid_query"
    NOT_INITIALIZED = "not_initialized"


class FetchError(TopicSourceError):
    """Raised when `fetch_topics`/`fetch_data` could not determine results.

    An empty result is never an error. The instance stays usable after a
    `FetchError`.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: FetchErrorKind = FetchErrorKind.UNKNOWN,
        source: Optional[str] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.source = source
        self.retry_after = retry_after

    def __str__(self) -> str:
        prefix = f"[{self.source}] " if self.source else ""
        return f"{prefix}{self.message} (kind={self.kind.value})"
