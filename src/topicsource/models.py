"""Value types exchanged between a host and its data sources.

`Topic` and `Data` are produced by sources; `NewQuestionInput` is supplied by
the host. All three are immutable once constructed.

The wire form (`to_dict`/`from_dict`) uses the contract field names
(`sourceURL`, `topicID`, `askedBy`, ...). Optional fields of
`NewQuestionInput` are omitted when absent, so that an absent `askedBy` never
turns into `0` and an absent `embedding` never turns into `[]` on the other
side of a process boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def check_int64(field_name: str, value: Any) -> int:
    """Return `value` if it is a signed 64-bit int, else raise TypeError/ValueError."""
    # bool is an int subclass but never a valid identifier
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field_name} must be an int, got {type(value).__name__}")
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"{field_name} out of 64-bit range: {value}")
    return value


def _require(data: Mapping[str, Any], key: str, record: str) -> Any:
    if key not in data or data[key] is None:
        raise ValueError(f"{record} is missing required field '{key}'")
    return data[key]


@dataclass(frozen=True, slots=True)
class Topic:
    """A high-level discoverable item returned by `fetch_topics`.

    Attributes
    ----------
    title: str
        Display text.
    source_url: str
        Canonical locator, expected to be an absolute URL.
    topic_id: int
        Opaque identifier, unique within the owning source. Passed back
        verbatim to `fetch_data` on the same instance.
    site: str
        Optional origin label; empty means unset.
    """

    title: str
    source_url: str
    topic_id: int
    site: str = ""

    def __post_init__(self) -> None:
        check_int64("topic_id", self.topic_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "sourceURL": self.source_url,
            "site": self.site,
            "topicID": self.topic_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Topic:
        return cls(
            title=str(_require(data, "title", "Topic")),
            source_url=str(_require(data, "sourceURL", "Topic")),
            topic_id=_require(data, "topicID", "Topic"),
            site=str(data.get("site") or ""),
        )


@dataclass(frozen=True, slots=True)
class Data:
    """Detailed content tied to a topic, returned by `fetch_data`."""

    text: str
    source_url: str
    answer_id: int
    site: str = ""

    def __post_init__(self) -> None:
        check_int64("answer_id", self.answer_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "sourceURL": self.source_url,
            "site": self.site,
            "answerID": self.answer_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Data:
        return cls(
            text=str(data.get("text") or ""),
            source_url=str(_require(data, "sourceURL", "Data")),
            answer_id=_require(data, "answerID", "Data"),
            site=str(data.get("site") or ""),
        )


@dataclass(frozen=True, slots=True)
class NewQuestionInput:
    """Retrieval intent passed into `fetch_topics`.

    Attributes
    ----------
    question_text: str
        The search query. Empty means "no textual query".
    tags: tuple[str, ...]
        Labels narrowing the search. Order is irrelevant, duplicates are
        tolerated.
    asked_by: int | None
        Requesting user. None means absent, which is not the same as 0.
    embedding: tuple[float, ...] | None
        Semantic vector. None means absent, which is not the same as ().
    """

    question_text: str = ""
    tags: Tuple[str, ...] = ()
    asked_by: Optional[int] = None
    embedding: Optional[Tuple[float, ...]] = None

    def __post_init__(self) -> None:
        if isinstance(self.tags, (str, bytes)):
            raise TypeError("tags must be a sequence of strings, not a single string")
        # Frozen dataclass: normalise sequences through object.__setattr__
        object.__setattr__(self, "tags", tuple(str(t) for t in self.tags))
        if self.asked_by is not None:
            check_int64("asked_by", self.asked_by)
        if self.embedding is not None:
            object.__setattr__(self, "embedding", tuple(float(v) for v in self.embedding))

    @property
    def has_asked_by(self) -> bool:
        return self.asked_by is not None

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "questionText": self.question_text,
            "tags": list(self.tags),
        }
        if self.asked_by is not None:
            out["askedBy"] = self.asked_by
        if self.embedding is not None:
            out["embedding"] = list(self.embedding)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NewQuestionInput:
        tags = data.get("tags") or ()
        if isinstance(tags, str):
            raise ValueError("NewQuestionInput.tags must be a list of strings")
        embedding = data.get("embedding")
        return cls(
            question_text=str(data.get("questionText") or ""),
            tags=tuple(str(t) for t in tags),
            asked_by=data.get("askedBy"),
            embedding=tuple(embedding) if embedding is not None else None,
        )
