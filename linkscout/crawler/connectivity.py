"""Blocking gate on outbound network reachability."""

from __future__ import annotations

import logging
import random
import socket
import time
from typing import Callable, Iterable, Sequence

import psutil

from .constants import (
    CONNECTIVITY_POOL_RETRY_SECONDS,
    CONNECTIVITY_RECHECK_SECONDS,
    DNS_RESOLVERS,
)


LOGGER = logging.getLogger(__name__)


def local_ipv4_addresses() -> list[str]:
    """Return IPv4 addresses bound to non-loopback interfaces."""

    addresses: list[str] = []
    for snics in psutil.net_if_addrs().values():
        for snic in snics:
            if snic.family != socket.AF_INET:
                continue
            if snic.address.startswith("127."):
                continue
            addresses.append(snic.address)
    return addresses


def reverse_lookup(address: str) -> None:
    """Reverse-resolve a resolver address; raises OSError on failure."""

    socket.gethostbyaddr(address)


class ConnectivityWatchdog:
    """Decide whether this machine can currently reach the internet.

    The check never gives up while an interface is present: when every
    resolver in the pool fails it sleeps and tries the whole pool again. It is
    meant for startup and pre-flight checks, not hot paths.
    """

    def __init__(
        self,
        resolvers: Sequence[str] = DNS_RESOLVERS,
        *,
        interface_lister: Callable[[], Iterable[str]] = local_ipv4_addresses,
        lookup: Callable[[str], object] = reverse_lookup,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        pool_retry_seconds: float = CONNECTIVITY_POOL_RETRY_SECONDS,
        recheck_seconds: float = CONNECTIVITY_RECHECK_SECONDS,
    ) -> None:
        if not resolvers:
            raise ValueError("resolvers cannot be empty")

        self.resolvers = tuple(resolvers)
        self._interface_lister = interface_lister
        self._lookup = lookup
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.pool_retry_seconds = pool_retry_seconds
        self.recheck_seconds = recheck_seconds

    def shuffled_resolvers(self) -> list[str]:
        pool = list(self.resolvers)
        self._rng.shuffle(pool)
        return pool

    def is_internet_connected(self) -> bool:
        try:
            interfaces = list(self._interface_lister())
        except OSError as exc:
            LOGGER.error("[INTERNET CHECK ERROR]: %s", exc)
            return False

        if not interfaces:
            LOGGER.warning("No non-loopback IPv4 interface found")
            return False

        while True:
            for resolver in self.shuffled_resolvers():
                try:
                    self._lookup(resolver)
                except OSError as exc:
                    LOGGER.debug("Lookup against %s failed: %s", resolver, exc)
                    continue
                LOGGER.debug("Connectivity confirmed via %s", resolver)
                return True

            LOGGER.warning("Waiting for internet connection...")
            self._sleep(self.pool_retry_seconds)

    def wait_until_connected(self) -> None:
        """Block until `is_internet_connected()` reports True."""

        while not self.is_internet_connected():
            LOGGER.warning("Waiting for internet connection...")
            self._sleep(self.recheck_seconds)


__all__ = [
    "ConnectivityWatchdog",
    "local_ipv4_addresses",
    "reverse_lookup",
]
