"""Default values and fixed tables shared by crawler modules."""

from __future__ import annotations


DEFAULT_THREADS = 8
DEFAULT_MAX_DEPTH = 2
DEFAULT_MAX_SIZE_KB = -1
DEFAULT_SEED_TIMEOUT_SECONDS = -1.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 300.0
DEFAULT_PROBE_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRIES = 0
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
DEFAULT_OUTPUT_FILE = "matched_urls.txt"

DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:78.0) Gecko/20100101 Firefox/78.0"

SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
JSON_INDENT = 2

# Connectivity watchdog timings.
CONNECTIVITY_RECHECK_SECONDS = 30.0
CONNECTIVITY_POOL_RETRY_SECONDS = 2.0

# Liveness probe: attempt ceiling and fixed delay per failure class.
PROBE_MAX_ATTEMPTS = 4
PROBE_BACKOFF_SECONDS = {
    "network_error": 15.0,
    "rate_limited": 20.0,
    "server_error": 10.0,
    "unexpected_status": 5.0,
}
PROBE_SKIP_STATUS_CODES = frozenset({400, 401, 403, 404})

DNS_RESOLVERS = (
    "8.8.8.8",
    "1.1.1.1",
    "208.67.222.222",
    "9.9.9.9",
    "75.75.75.75",
    "2001:4860:4860::8888",
    "2606:4700:4700::1111",
    "2620:0:ccc::2",
    "2620:fe::9",
    "2001:558:feed::1",
    "209.244.0.3",
    "209.244.0.4",
    "8.8.4.4",
    "8.26.56.26",
    "8.20.247.20",
    "208.67.222.222",
    "208.67.220.220",
    "156.154.70.1",
    "156.154.71.1",
    "199.85.126.10",
    "199.85.127.10",
    "81.218.119.11",
    "209.88.198.133",
    "195.46.39.39",
    "195.46.39.40",
    "216.87.84.211",
    "23.90.4.6",
    "199.5.157.131",
    "208.71.35.137",
    "208.76.50.50",
    "208.76.51.51",
    "216.146.35.35",
    "216.146.36.36",
    "89.233.43.71",
    "89.104.194.142",
    "74.82.42.42",
    "109.69.8.51",
)

# Address blocks a seed host must never resolve into.
DEFAULT_BANNED_RANGES = (
    "0.0.0.0/8",
    "10.0.0.0/8",
    "100.64.0.0/10",
    "127.0.0.0/8",
    "169.254.0.0/16",
    "172.16.0.0/12",
    "192.0.0.0/24",
    "192.0.2.0/24",
    "192.88.99.0/24",
    "192.168.0.0/16",
    "198.18.0.0/15",
    "198.51.100.0/24",
    "203.0.113.0/24",
    "224.0.0.0/4",
    "240.0.0.0/4",
    "255.255.255.255/32",
    "::/128",
    "::1/128",
    "::ffff:0:0/96",
    "100::/64",
    "2001:db8::/32",
    "fc00::/7",
    "fe80::/10",
    "ff00::/8",
)


__all__ = [
    "CONNECTIVITY_POOL_RETRY_SECONDS",
    "CONNECTIVITY_RECHECK_SECONDS",
    "DEFAULT_BANNED_RANGES",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_SIZE_KB",
    "DEFAULT_OUTPUT_FILE",
    "DEFAULT_PROBE_TIMEOUT_SECONDS",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "DEFAULT_RETRIES",
    "DEFAULT_RETRY_BACKOFF_SECONDS",
    "DEFAULT_SEED_TIMEOUT_SECONDS",
    "DEFAULT_THREADS",
    "DEFAULT_USER_AGENT",
    "DNS_RESOLVERS",
    "JSON_INDENT",
    "PROBE_BACKOFF_SECONDS",
    "PROBE_MAX_ATTEMPTS",
    "PROBE_SKIP_STATUS_CODES",
    "SUPPORTED_CONFIG_SUFFIXES",
]
