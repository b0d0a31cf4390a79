"""Memory statistics collector."""

from typing import List, Tuple

from ..metrics import Metric, SampleTick
from ..procfs import read_memory_info

# MemInfo field -> published metric path. Subscribers depend on these names.
MEMORY_METRICS: Tuple[Tuple[str, str], ...] = (
    ("mem_total", "memory/total"),
    ("mem_free", "memory/free"),
    ("mem_available", "memory/available"),
    ("buffers", "memory/buffers"),
    ("cached", "memory/cached"),
    ("swap_cached", "memory/swap/cached"),
    ("active", "memory/active"),
    ("active_anon", "memory/active/anon"),
    ("active_file", "memory/active/file"),
    ("inactive", "memory/inactive"),
    ("inactive_anon", "memory/inactive/anon"),
    ("inactive_file", "memory/inactive/file"),
    ("mlocked", "memory/mlocked"),
    ("unevictable", "memory/unevictable"),
    ("swap_total", "memory/swap/total"),
    ("swap_free", "memory/swap/free"),
    ("dirty", "memory/dirty"),
    ("writeback", "memory/writeback"),
    ("anon_pages", "memory/anon-pages"),
    ("mapped", "memory/mapped"),
    ("shmem", "memory/shmem"),
    ("s_reclaimable", "memory/sreclaimable"),
    ("s_unreclaim", "memory/sunreclaim"),
    ("slab", "memory/slab"),
    ("kernel_stack", "memory/kernelstack"),
    ("page_tables", "memory/pagetables"),
    ("nfs_unstable", "memory/nfs-unstable"),
    ("bounce", "memory/bounce"),
    ("writeback_tmp", "memory/writebacktmp"),
    ("commit_limit", "memory/commitlimit"),
    ("committed_as", "memory/committed-as"),
    ("vmalloc_total", "memory/vmalloc/total"),
    ("vmalloc_used", "memory/vmalloc/used"),
    ("vmalloc_chunk", "memory/vmalloc/chunk"),
    ("hardware_corrupted", "memory/hardware-corrupted"),
    ("anon_huge_pages", "memory/hugepages/anon"),
    ("huge_pages_total", "memory/hugepages/total"),
    ("huge_pages_free", "memory/hugepages/free"),
    ("huge_pages_surp", "memory/hugepages/surp"),
    ("huge_pages_rsvd", "memory/hugepages/rsvd"),
    ("hugepagesize", "memory/hugepagesize"),
    ("cma_total", "memory/cma/total"),
    ("cma_free", "memory/cma/free"),
)


def collect_memory(now: SampleTick, reader=read_memory_info) -> List[Metric]:
    """
    Collect one metric per MEMORY_METRICS entry from a meminfo snapshot.

    Args:
        now: Tick whose timestamp every metric carries
        reader: Callable returning a MemInfo snapshot

    Raises:
        StatsReadError: If the snapshot cannot be read
    """
    mem_info = reader()

    return [now.metric(name, getattr(mem_info, field)) for field, name in MEMORY_METRICS]
