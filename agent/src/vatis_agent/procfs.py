"""Readers for kernel statistics exposed under /proc."""

import socket
import struct
from dataclasses import dataclass
from typing import List

MEMINFO_PATH = "/proc/meminfo"
TCP_PATH = "/proc/net/tcp"


class StatsReadError(Exception):
    """A kernel statistics file could not be read or parsed."""
    pass


@dataclass(frozen=True)
class MemInfo:
    """Snapshot of /proc/meminfo. Sizes are in kB as reported by the kernel."""

    mem_total: int = 0
    mem_free: int = 0
    mem_available: int = 0
    buffers: int = 0
    cached: int = 0
    swap_cached: int = 0
    active: int = 0
    active_anon: int = 0
    active_file: int = 0
    inactive: int = 0
    inactive_anon: int = 0
    inactive_file: int = 0
    mlocked: int = 0
    unevictable: int = 0
    swap_total: int = 0
    swap_free: int = 0
    dirty: int = 0
    writeback: int = 0
    anon_pages: int = 0
    mapped: int = 0
    shmem: int = 0
    s_reclaimable: int = 0
    s_unreclaim: int = 0
    slab: int = 0
    kernel_stack: int = 0
    page_tables: int = 0
    nfs_unstable: int = 0
    bounce: int = 0
    writeback_tmp: int = 0
    commit_limit: int = 0
    committed_as: int = 0
    vmalloc_total: int = 0
    vmalloc_used: int = 0
    vmalloc_chunk: int = 0
    hardware_corrupted: int = 0
    anon_huge_pages: int = 0
    huge_pages_total: int = 0
    huge_pages_free: int = 0
    huge_pages_surp: int = 0
    huge_pages_rsvd: int = 0
    hugepagesize: int = 0
    cma_total: int = 0
    cma_free: int = 0


# /proc/meminfo key -> MemInfo field
MEMINFO_KEYS = {
    "MemTotal": "mem_total",
    "MemFree": "mem_free",
    "MemAvailable": "mem_available",
    "Buffers": "buffers",
    "Cached": "cached",
    "SwapCached": "swap_cached",
    "Active": "active",
    "Active(anon)": "active_anon",
    "Active(file)": "active_file",
    "Inactive": "inactive",
    "Inactive(anon)": "inactive_anon",
    "Inactive(file)": "inactive_file",
    "Mlocked": "mlocked",
    "Unevictable": "unevictable",
    "SwapTotal": "swap_total",
    "SwapFree": "swap_free",
    "Dirty": "dirty",
    "Writeback": "writeback",
    "AnonPages": "anon_pages",
    "Mapped": "mapped",
    "Shmem": "shmem",
    "SReclaimable": "s_reclaimable",
    "SUnreclaim": "s_unreclaim",
    "Slab": "slab",
    "KernelStack": "kernel_stack",
    "PageTables": "page_tables",
    "NFS_Unstable": "nfs_unstable",
    "Bounce": "bounce",
    "WritebackTmp": "writeback_tmp",
    "CommitLimit": "commit_limit",
    "Committed_AS": "committed_as",
    "VmallocTotal": "vmalloc_total",
    "VmallocUsed": "vmalloc_used",
    "VmallocChunk": "vmalloc_chunk",
    "HardwareCorrupted": "hardware_corrupted",
    "AnonHugePages": "anon_huge_pages",
    "HugePages_Total": "huge_pages_total",
    "HugePages_Free": "huge_pages_free",
    "HugePages_Surp": "huge_pages_surp",
    "HugePages_Rsvd": "huge_pages_rsvd",
    "Hugepagesize": "hugepagesize",
    "CmaTotal": "cma_total",
    "CmaFree": "cma_free",
}


@dataclass(frozen=True)
class TcpRow:
    """One socket row of /proc/net/tcp."""

    slot: int
    local_address: str
    remote_address: str
    state: int
    uid: int
    inode: int


def _read_text(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise StatsReadError(f"Cannot read {path}: {e}")


def read_memory_info(path: str = MEMINFO_PATH) -> MemInfo:
    """
    Parse /proc/meminfo.

    Keys the running kernel does not report are left at 0, unknown keys are
    ignored.

    Raises:
        StatsReadError: If the file is unreadable or a known key has a
            non-numeric value
    """
    values = {}

    for line in _read_text(path).splitlines():
        key, sep, rest = line.partition(":")
        if not sep:
            continue

        field = MEMINFO_KEYS.get(key.strip())
        if field is None:
            continue

        parts = rest.split()
        try:
            values[field] = int(parts[0])
        except (IndexError, ValueError):
            raise StatsReadError(f"Malformed {path} line: {line!r}")

    if "mem_total" not in values:
        raise StatsReadError(f"{path} does not report MemTotal")

    return MemInfo(**values)


def decode_ipv4_address(value: str) -> str:
    """
    Decode a /proc/net/tcp address such as ``0100007F:0CEA``.

    The kernel prints the IPv4 address as a host-order (little-endian) hex
    word and the port as big-endian hex.
    """
    host, _, port = value.partition(":")
    address = socket.inet_ntoa(struct.pack("<I", int(host, 16)))
    return f"{address}:{int(port, 16)}"


def read_tcp_table(path: str = TCP_PATH) -> List[TcpRow]:
    """
    Parse /proc/net/tcp into rows, preserving kernel order.

    Raises:
        StatsReadError: If the file is unreadable or a row is malformed
    """
    rows = []
    lines = _read_text(path).splitlines()

    # First line is the column header
    for line in lines[1:]:
        if not line.strip():
            continue

        parts = line.split()
        try:
            rows.append(TcpRow(
                slot=int(parts[0].rstrip(":")),
                local_address=decode_ipv4_address(parts[1]),
                remote_address=decode_ipv4_address(parts[2]),
                state=int(parts[3], 16),
                uid=int(parts[7]),
                inode=int(parts[9]),
            ))
        except (IndexError, ValueError, struct.error) as e:
            raise StatsReadError(f"Malformed {path} row {line.strip()!r}: {e}")

    return rows
