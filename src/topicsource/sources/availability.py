"""Availability probing and APScheduler-based periodic polling."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Dict, Mapping, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from topicsource.logging import get_logger
from topicsource.sources.base import DataSource

logger = get_logger(__name__)


async def probe_availability(source: DataSource, *, timeout: float = 2.0) -> bool:
    """Call `check_availability` under a timeout; any failure counts as unavailable."""
    try:
        return bool(await asyncio.wait_for(source.check_availability(), timeout=timeout))
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        # TimeoutError included; a misbehaving source must not break polling
        logger.warning("availability_probe_error", source=source.name, error=repr(exc))
        return False


class AvailabilityMonitor:
    """Polls `check_availability` on a set of sources and caches the result."""

    def __init__(
        self,
        sources: Mapping[str, DataSource],
        *,
        interval: timedelta = timedelta(seconds=30),
        probe_timeout: float = 2.0,
        job_id: str = "topicsource-availability",
    ) -> None:
        self._sources = dict(sources)
        self.interval = interval
        self.probe_timeout = probe_timeout
        self.job_id = job_id
        self._status: Dict[str, bool] = {}
        self._scheduler: Optional[AsyncIOScheduler] = None

    async def refresh(self) -> Dict[str, bool]:
        """Probe every source concurrently and store the snapshot."""
        keys = list(self._sources)
        results = await asyncio.gather(
            *(probe_availability(self._sources[k], timeout=self.probe_timeout) for k in keys)
        )
        for key, available in zip(keys, results):
            previous = self._status.get(key)
            if previous is not None and previous != available:
                logger.info("availability_changed", source=key, available=available)
            self._status[key] = available
        return dict(self._status)

    def is_available(self, key: str) -> bool:
        """Last known availability; False if never probed."""
        return self._status.get(key, False)

    def snapshot(self) -> Dict[str, bool]:
        return {key: self._status.get(key, False) for key in self._sources}

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        """Schedule `refresh` at the configured interval. Needs a running event loop."""
        if self._scheduler is not None:
            return
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self.refresh,
            trigger=IntervalTrigger(seconds=max(1, int(self.interval.total_seconds()))),
            id=self.job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start(paused=False)
        self._scheduler = scheduler

    def shutdown(self, *, wait: bool = False) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=wait)
            self._scheduler = None
