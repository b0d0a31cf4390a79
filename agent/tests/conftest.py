"""Shared test fixtures for all test modules."""

import asyncio
from typing import Callable, List, Optional, Tuple

import pytest

from vatis_agent.transport import PublishError, TransportError

MEMINFO_SAMPLE = """\
MemTotal:        1048576 kB
MemFree:          524288 kB
MemAvailable:     786432 kB
Buffers:           10240 kB
Cached:           204800 kB
SwapCached:            0 kB
Active:           307200 kB
Inactive:         102400 kB
Active(anon):     153600 kB
Inactive(anon):     2048 kB
Active(file):     153600 kB
Inactive(file):   100352 kB
Unevictable:          16 kB
Mlocked:              16 kB
SwapTotal:       2097152 kB
SwapFree:        2097100 kB
Zswap:                 0 kB
Dirty:               128 kB
Writeback:             0 kB
AnonPages:        155648 kB
Mapped:            65536 kB
Shmem:              4096 kB
KReclaimable:      20480 kB
Slab:              40960 kB
SReclaimable:      20480 kB
SUnreclaim:        20480 kB
KernelStack:        4608 kB
PageTables:         3072 kB
NFS_Unstable:          0 kB
Bounce:                0 kB
WritebackTmp:          0 kB
CommitLimit:     2621440 kB
Committed_AS:     819200 kB
VmallocTotal:   34359738367 kB
VmallocUsed:       30720 kB
VmallocChunk:          0 kB
Percpu:             1024 kB
HardwareCorrupted:     0 kB
AnonHugePages:     43008 kB
HugePages_Total:       4
HugePages_Free:        3
HugePages_Rsvd:        1
HugePages_Surp:        0
Hugepagesize:       2048 kB
"""

TCP_SAMPLE = """\
  sl  local_address rem_address   st tx_queue rx_queue tr tm->when retrnsmt   uid  timeout inode
   0: 0100007F:0CEA 00000000:0000 0A 00000000:00000000 00:00000000 00000000   109        0 23456 1 0000000000000000 100 0 0 10 0
   3: 00000000:0016 00000000:0000 0A 00000000:00000000 00:00000000 00000000     0        0 18022 1 0000000000000000 100 0 0 10 0
   7: 0F02000A:01BB 2A01A8C0:D431 01 00000000:00000000 02:000A7D2B 00000000  1000        0 40117 2 0000000000000000 20 4 30 10 -1
"""


class FakeClient:
    """Records published messages instead of talking to a broker."""

    def __init__(
        self,
        connect_error: Optional[TransportError] = None,
        disconnect_error: Optional[TransportError] = None,
        fail_topics: Tuple[str, ...] = (),
    ):
        self.connect_error = connect_error
        self.disconnect_error = disconnect_error
        self.fail_topics = set(fail_topics)
        self.messages: List[Tuple[str, str, int]] = []
        self.attempts: List[str] = []
        self.connect_calls = 0
        self.disconnect_calls = 0

    def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error

    def publish(self, topic: str, payload: str, qos: int = 0) -> None:
        self.attempts.append(topic)
        if topic in self.fail_topics:
            raise PublishError(f"Publish to {topic} failed: simulated")
        self.messages.append((topic, payload, qos))

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.disconnect_error is not None:
            raise self.disconnect_error

    @property
    def topics(self) -> List[str]:
        return [topic for topic, _, _ in self.messages]


class ScriptedTicker:
    """Ticker that fires a fixed number of times, then calls a hook and hangs."""

    interval = 1

    def __init__(self, ticks: int, on_exhausted: Optional[Callable[[], None]] = None):
        self.remaining = ticks
        self.on_exhausted = on_exhausted
        self.count = 0

    async def wait(self) -> float:
        if self.remaining > 0:
            self.remaining -= 1
            self.count += 1
            await asyncio.sleep(0)
            return float(self.count)

        if self.on_exhausted is not None:
            self.on_exhausted()
        await asyncio.Event().wait()


@pytest.fixture
def fake_client() -> FakeClient:
    """Provide a broker client that records messages."""
    return FakeClient()


@pytest.fixture
def meminfo_path(tmp_path) -> str:
    """Provide a /proc/meminfo style file."""
    path = tmp_path / "meminfo"
    path.write_text(MEMINFO_SAMPLE)
    return str(path)


@pytest.fixture
def tcp_path(tmp_path) -> str:
    """Provide a /proc/net/tcp style file with rows at slots 0, 3 and 7."""
    path = tmp_path / "tcp"
    path.write_text(TCP_SAMPLE)
    return str(path)
