"""Metrics collectors for system monitoring."""

from .identity import IdentityError, describe_host, resolve_identity
from .memory import MEMORY_METRICS, collect_memory
from .tcp import collect_tcp

# Collectors sampled on every tick, by name
DEFAULT_COLLECTORS = {
    "memory": collect_memory,
    "tcp": collect_tcp,
}

__all__ = [
    "DEFAULT_COLLECTORS",
    "IdentityError",
    "MEMORY_METRICS",
    "collect_memory",
    "collect_tcp",
    "describe_host",
    "resolve_identity",
]
