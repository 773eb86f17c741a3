import asyncio
from typing import Any, Callable, List

import httpx
import pytest

from topicsource.exceptions import FetchError, FetchErrorKind, InitializationError
from topicsource.models import Data, NewQuestionInput, Topic
from topicsource.sources.http_source import HttpDataSource

# ---------- Helpers ----------


class QASource(HttpDataSource):
    """Small Q&A style source used to exercise HttpDataSource."""

    name = "qa"
    health_path = "/health"

    async def fetch_topics(self, count: int, question: NewQuestionInput) -> List[Topic]:
        count = self._validate_count(count)
        if count == 0:
            return []
        text = self._require_question_text(question)
        payload = await self._request_json("GET", "/search", params={"q": text, "limit": count})
        return [Topic.from_dict(item) for item in payload.get("items", [])][:count]

    async def fetch_data(self, count: int, topic_id: int) -> List[Data]:
        count = self._validate_count(count)
        payload = await self._request_json(
            "GET", f"/topics/{topic_id}/answers", allow_not_found=True
        )
        if payload is None:
            return []
        return [Data.from_dict(item) for item in payload.get("items", []) if item.get("text")][
            :count
        ]


def make_source(responder: Callable[[httpx.Request], Any], **kwargs: Any) -> QASource:
    return QASource(
        base_url="https://qa.example.com",
        transport=httpx.MockTransport(responder),
        **kwargs,
    )


SEARCH_PAYLOAD = {
    "items": [
        {"title": "Entropy", "sourceURL": "https://qa.example.com/t/1", "topicID": 1},
        {"title": "Heat", "sourceURL": "https://qa.example.com/t/2", "topicID": 2},
        {"title": "Work", "sourceURL": "https://qa.example.com/t/3", "topicID": 3},
    ]
}

QUESTION = NewQuestionInput(question_text="what is entropy")


def default_responder(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/health":
        return httpx.Response(200, json={"status": "ok"})
    if request.url.path == "/search":
        return httpx.Response(200, json=SEARCH_PAYLOAD)
    if request.url.path == "/topics/1/answers":
        return httpx.Response(
            200,
            json={
                "items": [
                    {"text": "Disorder.", "sourceURL": "https://qa.example.com/a/9", "answerID": 9},
                    {"text": "", "sourceURL": "https://qa.example.com/a/8", "answerID": 8},
                ]
            },
        )
    return httpx.Response(404, json={"error": "not found"})


# ---------- initialize ----------


@pytest.mark.asyncio
async def test_initialize_rejects_relative_base_url() -> None:
    source = QASource(base_url="qa.example.com")
    with pytest.raises(InitializationError):
        await source.initialize()
    assert not source.initialized


@pytest.mark.asyncio
async def test_initialize_hook_failure_becomes_initialization_error() -> None:
    class FailingSource(QASource):
        async def on_initialize(self, client: httpx.AsyncClient) -> None:
            resp = await client.get("/me")
            resp.raise_for_status()

    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "bad token"})

    source = FailingSource(
        base_url="https://qa.example.com", transport=httpx.MockTransport(responder)
    )
    with pytest.raises(InitializationError) as exc_info:
        await source.initialize()
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)
    assert await source.check_availability() is False


@pytest.mark.asyncio
async def test_initialize_hook_parse_error_becomes_initialization_error() -> None:
    class ProfileSource(QASource):
        async def on_initialize(self, client: httpx.AsyncClient) -> None:
            resp = await client.get("/me")
            self.user = resp.json()["user"]

    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    source = ProfileSource(
        base_url="https://qa.example.com", transport=httpx.MockTransport(responder)
    )
    with pytest.raises(InitializationError) as exc_info:
        await source.initialize()
    assert isinstance(exc_info.value.__cause__, KeyError)
    assert not source.initialized


@pytest.mark.asyncio
async def test_initialize_hook_errors_pass_through_unwrapped() -> None:
    own_error = InitializationError("account disabled")

    class RejectingSource(QASource):
        async def on_initialize(self, client: httpx.AsyncClient) -> None:
            raise own_error

    class CancelledSource(QASource):
        async def on_initialize(self, client: httpx.AsyncClient) -> None:
            raise asyncio.CancelledError()

    rejecting = RejectingSource(
        base_url="https://qa.example.com", transport=httpx.MockTransport(default_responder)
    )
    with pytest.raises(InitializationError) as exc_info:
        await rejecting.initialize()
    assert exc_info.value is own_error

    cancelled = CancelledSource(
        base_url="https://qa.example.com", transport=httpx.MockTransport(default_responder)
    )
    with pytest.raises(asyncio.CancelledError):
        await cancelled.initialize()
    assert not cancelled.initialized


@pytest.mark.asyncio
async def test_bearer_token_is_sent() -> None:
    seen: List[str] = []

    def responder(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization", ""))
        return default_responder(request)

    source = make_source(responder, token="secret")
    await source.initialize()
    await source.fetch_topics(1, QUESTION)
    assert seen == ["Bearer secret"]


# ---------- fetch ----------


@pytest.mark.asyncio
async def test_fetch_topics_parses_and_truncates() -> None:
    source = make_source(default_responder)
    await source.initialize()
    topics = await source.fetch_topics(2, QUESTION)
    assert [t.topic_id for t in topics] == [1, 2]
    assert await source.fetch_topics(0, QUESTION) == []


@pytest.mark.asyncio
async def test_fetch_data_unknown_topic_is_empty() -> None:
    source = make_source(default_responder)
    await source.initialize()
    assert await source.fetch_data(3, 999999999) == []
    data = await source.fetch_data(3, 1)
    assert [d.answer_id for d in data] == [9]


@pytest.mark.asyncio
async def test_fetch_before_initialize_is_guarded() -> None:
    source = make_source(default_responder)
    with pytest.raises(FetchError) as exc_info:
        await source.fetch_topics(1, QUESTION)
    assert exc_info.value.kind is FetchErrorKind.NOT_INITIALIZED


@pytest.mark.asyncio
async def test_missing_client_is_not_initialized_error() -> None:
    source = make_source(default_responder)
    # Marked ready by a subclass that never opened a client
    source._mark_initialized()
    with pytest.raises(FetchError) as exc_info:
        await source.fetch_topics(1, QUESTION)
    assert exc_info.value.kind is FetchErrorKind.NOT_INITIALIZED

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,kind",
    [
        (401, FetchErrorKind.AUTHENTICATION),
        (403, FetchErrorKind.AUTHENTICATION),
        (400, FetchErrorKind.UNKNOWN),
        (404, FetchErrorKind.UNKNOWN),
        (503, FetchErrorKind.UNAVAILABLE),
    ],
)
async def test_http_status_maps_to_error_kind(status: int, kind: FetchErrorKind) -> None:
    source = make_source(lambda request: httpx.Response(status, json={}))
    await source.initialize()
    with pytest.raises(FetchError) as exc_info:
        await source.fetch_topics(1, QUESTION)
    assert exc_info.value.kind is kind
    assert exc_info.value.source == "qa"


@pytest.mark.asyncio
async def test_rate_limit_carries_retry_after() -> None:
    source = make_source(
        lambda request: httpx.Response(429, headers={"Retry-After": "7"}, json={})
    )
    await source.initialize()
    with pytest.raises(FetchError) as exc_info:
        await source.fetch_topics(1, QUESTION)
    assert exc_info.value.kind is FetchErrorKind.RATE_LIMITED
    assert exc_info.value.retry_after == 7.0


@pytest.mark.asyncio
async def test_non_json_body_is_malformed_response() -> None:
    source = make_source(lambda request: httpx.Response(200, text="<html>oops</html>"))
    await source.initialize()
    with pytest.raises(FetchError) as exc_info:
        await source.fetch_topics(1, QUESTION)
    assert exc_info.value.kind is FetchErrorKind.MALFORMED_RESPONSE
    assert exc_info.value.__cause__ is not None


@pytest.mark.asyncio
async def test_timeout_and_connection_errors_keep_cause() -> None:
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    slow = make_source(timeout)
    await slow.initialize()
    with pytest.raises(FetchError) as exc_info:
        await slow.fetch_topics(1, QUESTION)
    assert exc_info.value.kind is FetchErrorKind.TIMEOUT
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)

    down = make_source(refused)
    await down.initialize()
    with pytest.raises(FetchError) as exc_info:
        await down.fetch_data(1, 1)
    assert exc_info.value.kind is FetchErrorKind.UNAVAILABLE


@pytest.mark.asyncio
async def test_instance_stays_usable_after_fetch_error() -> None:
    calls = {"n": 0}

    def flaky(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(502, json={})
        return default_responder(request)

    source = make_source(flaky)
    await source.initialize()
    with pytest.raises(FetchError):
        await source.fetch_topics(3, QUESTION)
    topics = await source.fetch_topics(3, QUESTION)
    assert len(topics) == 3


@pytest.mark.asyncio
async def test_concurrent_calls_share_one_client() -> None:
    source = make_source(default_responder)
    await source.initialize()
    results = await asyncio.gather(
        source.fetch_topics(3, QUESTION),
        source.fetch_data(3, 1),
        source.check_availability(),
        source.fetch_data(3, 42),
    )
    assert len(results[0]) == 3
    assert [d.answer_id for d in results[1]] == [9]
    assert results[2] is True
    assert results[3] == []


# ---------- availability & close ----------


@pytest.mark.asyncio
async def test_check_availability_never_raises() -> None:
    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    assert await make_source(default_responder).check_availability() is False

    up = make_source(default_responder)
    await up.initialize()
    assert await up.check_availability() is True

    failing = make_source(lambda request: httpx.Response(500))
    await failing.initialize()
    assert await failing.check_availability() is False

    down = make_source(broken)
    await down.initialize()
    assert await down.check_availability() is False


@pytest.mark.asyncio
async def test_aclose_is_idempotent_and_blocks_further_fetches() -> None:
    source = make_source(default_responder)
    async with source:
        assert await source.check_availability() is True
    await source.aclose()
    assert await source.check_availability() is False
    with pytest.raises(FetchError) as exc_info:
        await source.fetch_topics(1, QUESTION)
    assert exc_info.value.kind is FetchErrorKind.NOT_INITIALIZED
