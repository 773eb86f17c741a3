"""Behavioural checks for `DataSource` implementations.

Run against an initialized instance, for example from a plugin's own test
suite::

    async with MySource(...) as source:
        report = await verify_source(source)
        assert report.ok, report.failures

The checker never raises because of a misbehaving source; every problem is
reported as a failed `ContractFinding`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional
from urllib.parse import urlparse

from topicsource.models import Data, NewQuestionInput, Topic
from topicsource.sources.base import DataSource


@dataclass(slots=True)
class ContractFinding:
    """Outcome of a single check."""

    check: str
    passed: bool
    detail: str = ""


@dataclass(slots=True)
class ContractReport:
    """All findings for one source."""

    source: str
    findings: List[ContractFinding] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(f.passed for f in self.findings)

    @property
    def failures(self) -> List[ContractFinding]:
        return [f for f in self.findings if not f.passed]

    def add(self, check: str, passed: bool, detail: str = "") -> None:
        self.findings.append(ContractFinding(check=check, passed=passed, detail=detail))


def _is_absolute_url(url: str) -> bool:
    parsed = urlparse(url or "")
    return bool(parsed.scheme and parsed.netloc)


async def _run(
    report: ContractReport, check: str, call: Callable[[], Awaitable[Any]]
) -> Optional[Any]:
    try:
        return await call()
    except Exception as exc:
        report.add(check, False, f"raised {exc!r}")
        return None


async def verify_source(
    source: DataSource,
    *,
    question: Optional[NewQuestionInput] = None,
    count: int = 5,
    unknown_topic_id: int = 999999999,
    expect_data: bool = True,
) -> ContractReport:
    """Exercise `source` and report which behavioural rules it follows.

    With `expect_data` set (the default), at least one returned topic must
    yield data records. Pass False for sources whose topics may legitimately
    carry no data.
    """
    question = question or NewQuestionInput(question_text="what is entropy")
    report = ContractReport(source=source.name)

    # check_availability must return a bool and never raise
    available = await _run(report, "availability_never_raises", source.check_availability)
    if available is not None:
        report.add(
            "availability_never_raises",
            isinstance(available, bool),
            "" if isinstance(available, bool) else f"returned {type(available).__name__}",
        )

    zero = await _run(report, "zero_count_topics", lambda: source.fetch_topics(0, question))
    if zero is not None:
        report.add("zero_count_topics", zero == [], "" if zero == [] else f"got {len(zero)} topics")

    topics: Optional[List[Topic]] = await _run(
        report, "topics_bounded", lambda: source.fetch_topics(count, question)
    )
    if topics is None:
        return report

    report.add(
        "topics_bounded",
        len(topics) <= count,
        "" if len(topics) <= count else f"{len(topics)} topics for count={count}",
    )
    bad_urls = [t.topic_id for t in topics if not _is_absolute_url(t.source_url)]
    report.add(
        "topics_have_source_url",
        not bad_urls,
        "" if not bad_urls else f"topics without absolute sourceURL: {bad_urls}",
    )
    ids = [t.topic_id for t in topics]
    report.add(
        "topic_ids_unique",
        len(ids) == len(set(ids)),
        "" if len(ids) == len(set(ids)) else f"duplicate ids in {ids}",
    )

    again = await _run(report, "stable_ordering", lambda: source.fetch_topics(count, question))
    if again is not None:
        same = [t.topic_id for t in again] == ids
        report.add("stable_ordering", same, "" if same else "second call returned a different order")

    if unknown_topic_id not in ids:
        unknown = await _run(
            report, "unknown_topic_data", lambda: source.fetch_data(3, unknown_topic_id)
        )
        if unknown is not None:
            report.add(
                "unknown_topic_data",
                unknown == [],
                "" if unknown == [] else f"got {len(unknown)} records",
            )

    if topics:
        records: List[Data] = []
        oversize: List[int] = []
        failed = False
        for topic in topics:
            data = await _run(
                report,
                "topic_round_trip",
                lambda tid=topic.topic_id: source.fetch_data(count, tid),
            )
            if data is None:
                failed = True
                continue
            if len(data) > count:
                oversize.append(topic.topic_id)
            records.extend(data)
        if not failed:
            if oversize:
                detail = f"more than {count} records for topics {oversize}"
            elif not records and expect_data:
                detail = f"no data for any of topics {ids}"
            else:
                detail = f"{len(records)} records across {len(topics)} topics"
            report.add(
                "topic_round_trip",
                not oversize and (bool(records) or not expect_data),
                detail,
            )
        empty = [d.answer_id for d in records if not d.text]
        report.add(
            "data_text_non_empty",
            not empty,
            "" if not empty else f"records with empty text: {empty}",
        )
    return report
