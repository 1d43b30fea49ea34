"""Network discovery for WLED devices.

Home networks rarely expose mDNS reliably, so discovery sweeps every host
of each local /24 with short per-host timeouts. Candidates are probed in
fixed-size batches; batches run one after another, so total latency is
roughly (candidates / batch_size) * timeout.
"""

import ipaddress
import logging
import socket
from concurrent.futures import ThreadPoolExecutor

import psutil

from core.client import WledClient
from core.config import (
    SCAN_BATCH_SIZE,
    SCAN_TIMEOUT,
    SUBNET_PRIORITY,
    UNKNOWN_DEVICE_NAME,
    WELL_KNOWN_HOSTS,
)
from models.types import FoundDevice

logger = logging.getLogger(__name__)


def get_local_subnets() -> list[str]:
    """Get /24 prefixes (e.g. '192.168.1') of active, non-loopback IPv4 interfaces.

    Returns:
        Prefixes in interface enumeration order, without duplicates
    """
    try:
        addresses = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except (OSError, psutil.Error) as e:
        logger.warning("Could not enumerate network interfaces: %s", e)
        return []

    subnets = []
    for name, addrs in addresses.items():
        iface_stats = stats.get(name)
        if iface_stats is not None and not iface_stats.isup:
            continue
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                continue
            if ip.is_loopback or ip.is_link_local:
                continue
            prefix = addr.address.rsplit('.', 1)[0]
            if prefix not in subnets:
                subnets.append(prefix)
    return subnets


def sort_subnets(subnets: list[str], priority: tuple[str, ...] = SUBNET_PRIORITY) -> list[str]:
    """Move well-known home-router prefixes to the front (stable otherwise)."""
    return sorted(subnets, key=lambda s: 0 if s in priority else 1)


def build_candidates(subnets: list[str]) -> list[str]:
    """Well-known hostnames first, then every host address of each prefix."""
    candidates = list(WELL_KNOWN_HOSTS)
    for subnet in subnets:
        candidates.extend(f"{subnet}.{i}" for i in range(1, 255))
    return candidates


def check_device(address: str, timeout: float = SCAN_TIMEOUT,
                 client: WledClient | None = None) -> FoundDevice | None:
    """Probe one candidate's identity endpoint.

    Returns:
        {'ip', 'name'} dict if a device answered, None otherwise
    """
    info = (client or WledClient()).fetch_info(address, timeout)
    if info is None:
        return None
    return {'ip': address, 'name': info.get('name') or UNKNOWN_DEVICE_NAME}


def scan_candidates(candidates: list[str], batch_size: int = SCAN_BATCH_SIZE,
                    timeout: float = SCAN_TIMEOUT, check=check_device) -> list[FoundDevice]:
    """Probe candidates in sequential batches of concurrent requests.

    Args:
        candidates: Addresses to probe, in priority order
        batch_size: Maximum probes in flight at once
        timeout: Per-probe timeout in seconds
        check: Callable(address, timeout) returning a device dict or None

    Returns:
        Devices deduplicated by address, in discovery order
    """
    if batch_size < 1:
        raise ValueError("batch_size must be positive")

    found: list[FoundDevice] = []
    seen = set()

    def safe_check(address):
        try:
            return check(address, timeout)
        except Exception as e:
            logger.debug("Probe of %s failed: %s", address, e)
            return None

    with ThreadPoolExecutor(max_workers=min(batch_size, max(len(candidates), 1)),
                            thread_name_prefix='wled-scan') as executor:
        for start in range(0, len(candidates), batch_size):
            batch = candidates[start:start + batch_size]
            # map() yields in submission order, keeping discovery order deterministic
            for device in executor.map(safe_check, batch):
                if device and device['ip'] not in seen:
                    seen.add(device['ip'])
                    found.append(device)
    return found


def scan(batch_size: int = SCAN_BATCH_SIZE, timeout: float = SCAN_TIMEOUT,
         subnets: list[str] | None = None) -> list[FoundDevice]:
    """Discover WLED devices on the local subnets.

    Args:
        batch_size: Maximum probes in flight at once
        timeout: Per-probe timeout in seconds
        subnets: /24 prefixes to sweep (default: local interfaces)

    Returns:
        Found devices; an empty list if nothing answered
    """
    if subnets is None:
        subnets = get_local_subnets()
    subnets = sort_subnets(subnets)
    candidates = build_candidates(subnets)
    logger.info("Scanning %d candidates across %d subnet(s)", len(candidates), len(subnets))

    devices = scan_candidates(candidates, batch_size=batch_size, timeout=timeout)
    logger.info("Scan found %d device(s)", len(devices))
    return devices
