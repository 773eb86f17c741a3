import asyncio
from datetime import timedelta
from typing import List

import pytest

from topicsource.models import Data, NewQuestionInput, Topic
from topicsource.sources.availability import AvailabilityMonitor, probe_availability
from topicsource.sources.base import DataSource


class ProbeSource(DataSource):
    name = "probe"

    def __init__(self, behaviour: str = "up") -> None:
        super().__init__()
        self.behaviour = behaviour

    async def initialize(self) -> None:
        self._mark_initialized()

    async def check_availability(self) -> bool:
        if self.behaviour == "raise":
            raise RuntimeError("probe exploded")
        if self.behaviour == "hang":
            await asyncio.sleep(10)
        return self.behaviour == "up"

    async def fetch_topics(self, count: int, question: NewQuestionInput) -> List[Topic]:
        return []

    async def fetch_data(self, count: int, topic_id: int) -> List[Data]:
        return []


@pytest.mark.asyncio
async def test_probe_converts_failures_to_false() -> None:
    assert await probe_availability(ProbeSource("up")) is True
    assert await probe_availability(ProbeSource("down")) is False
    assert await probe_availability(ProbeSource("raise")) is False
    assert await probe_availability(ProbeSource("hang"), timeout=0.01) is False


@pytest.mark.asyncio
async def test_monitor_refresh_tracks_transitions() -> None:
    flaky = ProbeSource("up")
    monitor = AvailabilityMonitor(
        {"a": flaky, "b": ProbeSource("raise")}, probe_timeout=0.5
    )
    assert monitor.snapshot() == {"a": False, "b": False}
    assert monitor.is_available("a") is False

    assert await monitor.refresh() == {"a": True, "b": False}
    assert monitor.is_available("a") is True

    flaky.behaviour = "down"
    await monitor.refresh()
    assert monitor.snapshot() == {"a": False, "b": False}
    assert monitor.is_available("unknown") is False


@pytest.mark.asyncio
async def test_monitor_start_and_shutdown() -> None:
    monitor = AvailabilityMonitor({"a": ProbeSource()}, interval=timedelta(seconds=60))
    monitor.start()
    monitor.start()  # second start is a no-op
    assert monitor.running
    monitor.shutdown()
    assert not monitor.running
