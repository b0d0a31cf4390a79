"""Sampling orchestrator: one tick of collection and publishing."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional

from .metrics import Metric, SampleTick
from .procfs import StatsReadError
from .publisher import publish_metric

logger = logging.getLogger(__name__)

Collector = Callable[[SampleTick], List[Metric]]


@dataclass
class CollectorResult:
    """Outcome of one collector within a tick."""

    name: str
    published: int = 0
    failed: int = 0
    error: Optional[Exception] = None


@dataclass
class TickReport:
    """Outcome of a whole tick."""

    tick: SampleTick
    results: List[CollectorResult] = field(default_factory=list)

    @property
    def published(self) -> int:
        return sum(r.published for r in self.results)

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.results)

    @property
    def failed_collectors(self) -> List[str]:
        return [r.name for r in self.results if r.error is not None]


async def _collect_and_publish(
    name: str,
    collector: Collector,
    tick: SampleTick,
    client,
    identity: str,
) -> CollectorResult:
    result = CollectorResult(name=name)

    try:
        # Kernel reads block, keep them off the event loop
        metrics = await asyncio.to_thread(collector, tick)
    except StatsReadError as e:
        result.error = e
        return result

    for metric in metrics:
        if publish_metric(client, identity, metric):
            result.published += 1
        else:
            result.failed += 1

    return result


async def run_tick(
    client,
    identity: str,
    collectors: Mapping[str, Collector],
    clock: Callable[[], int] = time.time_ns,
    strict: bool = False,
) -> TickReport:
    """
    Sample every collector concurrently and publish all resulting metrics.

    A single timestamp is captured for the whole tick. The call returns once
    every collector has finished publishing. A collector whose statistics
    cannot be read is logged and skipped for this tick.

    Args:
        client: Connected broker client
        identity: Host identity namespacing the topics
        collectors: Collector callables by name
        clock: Source of nanosecond timestamps
        strict: Re-raise the first collector failure after the tick finished

    Raises:
        StatsReadError: In strict mode, if any collector failed
    """
    tick = SampleTick.capture(clock)

    results = await asyncio.gather(*(
        _collect_and_publish(name, collector, tick, client, identity)
        for name, collector in collectors.items()
    ))
    report = TickReport(tick=tick, results=list(results))

    for result in report.results:
        if result.error is None:
            continue
        if strict:
            raise result.error
        logger.error(f"{result.name} collector failed, skipped this tick: {result.error}")

    logger.debug(
        f"stats published: {report.published} sent, {report.failed} failed "
        f"at {tick.timestamp_ns}"
    )
    return report
