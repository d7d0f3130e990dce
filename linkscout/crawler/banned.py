"""Banned address ranges and host admission checks.

A seed host is admitted only when every address it resolves to lies outside
the banned ranges. Verdicts per address are memoized for the process lifetime.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
import ipaddress
import logging
import socket
import threading
from typing import Callable, Iterable, Iterator, Sequence

from .constants import DEFAULT_BANNED_RANGES
from .types import HostAdmission


LOGGER = logging.getLogger(__name__)

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network
Resolver = Callable[[str], Sequence[str]]


class ReadWriteLock:
    """Many concurrent readers or one writer; writers are not starved."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class VerdictCache:
    """Address -> "is banned" memo shared by all concurrent checks."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._verdicts: dict[str, bool] = {}

    def get(self, address: str) -> bool | None:
        with self._lock.read():
            return self._verdicts.get(address)

    def remember(self, address: str, banned: bool) -> bool:
        """Store a verdict unless one exists; return the stored verdict."""

        with self._lock.write():
            return self._verdicts.setdefault(address, banned)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._verdicts)


def resolve_host(hostname: str) -> list[str]:
    """Resolve every address of a host, in resolver order, without duplicates."""

    infos = socket.getaddrinfo(hostname, None, proto=socket.IPPROTO_TCP)
    addresses: list[str] = []
    for info in infos:
        address = str(info[4][0])
        if address not in addresses:
            addresses.append(address)
    return addresses


class BannedRangeFilter:
    """Answer whether a resolved address, or a whole host, is disallowed."""

    def __init__(
        self,
        ranges: Iterable[str] = DEFAULT_BANNED_RANGES,
        *,
        cache: VerdictCache | None = None,
        resolver: Resolver = resolve_host,
    ) -> None:
        self._raw_ranges = tuple(ranges)
        self._networks: tuple[IPNetwork, ...] | None = None
        self._networks_lock = threading.Lock()

        self.cache = cache or VerdictCache()
        self._resolver = resolver

    @property
    def networks(self) -> tuple[IPNetwork, ...]:
        """Parsed ranges; parsed once, on first use."""

        if self._networks is None:
            with self._networks_lock:
                if self._networks is None:
                    self._networks = self._parse_ranges(self._raw_ranges)
        return self._networks

    @staticmethod
    def _parse_ranges(raw_ranges: Iterable[str]) -> tuple[IPNetwork, ...]:
        parsed: list[IPNetwork] = []
        for raw in raw_ranges:
            try:
                parsed.append(ipaddress.ip_network(str(raw).strip(), strict=False))
            except ValueError as exc:
                LOGGER.warning("Skipping unparsable banned range %r: %s", raw, exc)
        return tuple(parsed)

    def is_banned(self, address: str) -> bool:
        cached = self.cache.get(address)
        if cached is not None:
            return cached

        banned = self._match(address)
        return self.cache.remember(address, banned)

    def _match(self, address: str) -> bool:
        try:
            ip = ipaddress.ip_address(address)
        except ValueError:
            LOGGER.warning("[BANNED] %s is not a valid IP address; treating as banned", address)
            return True

        for network in self.networks:
            if ip.version == network.version and ip in network:
                LOGGER.info("[BANNED] %s falls in banned range %s", address, network)
                return True
        return False

    def admit_host(self, hostname: str) -> HostAdmission:
        """Resolve a host and check all of its addresses concurrently."""

        try:
            addresses = list(self._resolver(hostname))
        except (OSError, UnicodeError) as exc:
            LOGGER.info("[DNS FAILURE] Unable to resolve host %s: %s", hostname, exc)
            return HostAdmission.DNS_FAILURE

        if not addresses:
            LOGGER.info("[DNS FAILURE] No addresses found for host %s", hostname)
            return HostAdmission.DNS_FAILURE

        with ThreadPoolExecutor(
            max_workers=len(addresses),
            thread_name_prefix="banned-check",
        ) as pool:
            verdicts = list(pool.map(self.is_banned, addresses))

        if any(verdicts):
            return HostAdmission.BANNED
        return HostAdmission.ADMITTED

    def should_process_host(self, hostname: str) -> bool:
        return self.admit_host(hostname) == HostAdmission.ADMITTED


__all__ = [
    "BannedRangeFilter",
    "ReadWriteLock",
    "VerdictCache",
    "resolve_host",
]
