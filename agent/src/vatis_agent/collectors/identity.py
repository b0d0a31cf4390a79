"""Host identity collector."""

import logging
import platform
import socket
from typing import Dict, Any

import distro
import psutil

LOOPBACK_INTERFACE = "lo"

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """No usable hardware address was found on this host."""
    pass


def resolve_identity() -> str:
    """
    Resolve the host identity used to namespace published metrics.

    Returns the hardware (MAC) address of the first non-loopback interface,
    in the order the system enumerates them. The order is not guaranteed
    to survive hardware changes, so the identity is best-effort.

    Raises:
        IdentityError: If no non-loopback interface exists or it has no
            hardware address
    """
    addrs = psutil.net_if_addrs()
    logger.debug(f"available interfaces: {list(addrs)}")

    candidates = [name for name in addrs if name != LOOPBACK_INTERFACE]
    if not candidates:
        raise IdentityError("No network interface besides loopback found")

    iface = candidates[0]
    for addr in addrs[iface]:
        if addr.family == psutil.AF_LINK and addr.address:
            mac = addr.address.strip()
            logger.info(f"MAC address of {iface}: {mac}")
            return mac

    raise IdentityError(f"Cannot read hardware address of interface {iface}")


def describe_host() -> Dict[str, Any]:
    """Describe the host for startup logs and `--info`."""
    return {
        "hostname": socket.getfqdn(),
        "os": {
            "name": distro.name() or platform.system(),
            "version": distro.version() or platform.release(),
        },
        "kernel": platform.release(),
    }
