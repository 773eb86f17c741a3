"""Base interface every data source integration implements.

A host holds a collection of `DataSource` instances, one per external source,
and calls them uniformly:

1. `initialize()` before anything else, and again to reuse a closed instance.
2. `check_availability()`, `fetch_topics()` and `fetch_data()` any number of
   times, in any order, possibly concurrently on the same instance.
3. `aclose()` when the instance is discarded (or use ``async with``).

Conventions shared by all implementations:

- An empty result is an empty list, never an error. `FetchError` is reserved
  for failing to run the fetch at all.
- `fetch_data` with a topic id this instance never produced returns ``[]``.
- `check_availability` never raises; unavailability is ``False``.
- asyncio cancellation is propagated, never converted into an error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional

from topicsource.exceptions import ConfigError, FetchError, FetchErrorKind
from topicsource.models import Data, NewQuestionInput, Topic, check_int64

if TYPE_CHECKING:
    from topicsource.config import SourceConfig


class DataSource(ABC):
    """Abstract data source.

    Implementations should be safe to construct without side effects and
    should not perform network calls until `initialize` is awaited.
    """

    name: str = "base"
    description: str = ""

    def __init__(self) -> None:
        self._initialized = False
        self._closed = False

    @classmethod
    def from_config(cls, config: SourceConfig) -> DataSource:
        """Build an instance from a `SourceConfig`."""
        raise ConfigError(f"Data source '{cls.name}' cannot be built from configuration")

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the instance for use.

        Raises `InitializationError` with a human-readable cause. A second
        call after success is a no-op.
        """
        raise NotImplementedError

    @abstractmethod
    async def check_availability(self) -> bool:
        """Return True if the source can currently serve requests. Never raises."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_topics(self, count: int, question: NewQuestionInput) -> List[Topic]:
        """Return at most `count` topics relevant to `question`, best first."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_data(self, count: int, topic_id: int) -> List[Data]:
        """Return at most `count` data records for a topic from `fetch_topics`."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release resources held by the instance. Safe to call more than once.

        A closed instance may be initialized again.
        """
        self._closed = True
        self._initialized = False

    async def __aenter__(self) -> DataSource:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ----- helpers for implementations -----

    def _mark_initialized(self) -> None:
        self._initialized = True
        self._closed = False

    def _require_initialized(self) -> None:
        if not self._initialized or self._closed:
            raise FetchError(
                "Data source is not initialized" if not self._closed else "Data source is closed",
                kind=FetchErrorKind.NOT_INITIALIZED,
                source=self.name,
            )

    def _validate_count(self, count: Any) -> int:
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise FetchError(
                f"count must be a non-negative integer, got {count!r}",
                kind=FetchErrorKind.INVALID_QUERY,
                source=self.name,
            )
        return count

    def _validate_topic_id(self, topic_id: Any) -> int:
        try:
            return check_int64("topic_id", topic_id)
        except (TypeError, ValueError) as exc:
            raise FetchError(
                str(exc), kind=FetchErrorKind.INVALID_QUERY, source=self.name
            ) from exc

    def _require_question_text(self, question: NewQuestionInput) -> str:
        text = (question.question_text or "").strip()
        if not text:
            raise FetchError(
                "question_text is required by this source",
                kind=FetchErrorKind.INVALID_QUERY,
                source=self.name,
            )
        return text

    def __repr__(self) -> str:
        state: Optional[str] = None
        if self._closed:
            state = "closed"
        elif self._initialized:
            state = "ready"
        return f"<{self.__class__.__name__}(name={self.name}, state={state or 'new'})>"
