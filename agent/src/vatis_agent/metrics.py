"""Metric value types shared by collectors and the publisher."""

import time
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class SampleTick:
    """One sampling pass. All metrics of a tick share its timestamp."""

    timestamp_ns: int

    @classmethod
    def capture(cls, clock: Callable[[], int] = time.time_ns) -> "SampleTick":
        return cls(timestamp_ns=clock())

    def metric(self, name: str, value) -> "Metric":
        """Build a metric stamped with this tick's timestamp."""
        return Metric(name=name, timestamp=self.timestamp_ns, value=str(value))


@dataclass(frozen=True)
class Metric:
    """A named, timestamped measurement ready for publishing."""

    name: str
    timestamp: int  # nanoseconds since the Unix epoch
    value: str
