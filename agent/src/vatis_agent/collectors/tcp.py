"""TCP socket table collector."""

from typing import List

from ..metrics import Metric, SampleTick
from ..procfs import read_tcp_table


def collect_tcp(now: SampleTick, reader=read_tcp_table) -> List[Metric]:
    """
    Collect the local address of every IPv4 TCP socket.

    Metrics are named after the kernel slot number of each row, in table
    order.

    Raises:
        StatsReadError: If the socket table cannot be read
    """
    return [now.metric(f"tcp/{row.slot}/ipv4address", row.local_address) for row in reader()]
