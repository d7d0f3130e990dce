"""CLI entrypoint: read seed URLs from stdin and crawl them one at a time."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any, TextIO

if __package__ in {None, ""}:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

import requests

from linkscout.crawler import (
    BannedRangeFilter,
    ConnectivityWatchdog,
    CrawlConfig,
    CrawlRunner,
    KeywordFileError,
    LivenessProber,
    MatchedURLStorage,
    ResultPipeline,
    SeedSupervisor,
    StatsCollector,
    load_config_payload,
    load_keywords,
    parse_headers,
)


LOGGER = logging.getLogger("linkscout")

NO_INPUT_HINT = "No urls detected. Hint: cat urls.txt | linkscout"

# (argparse dest, config key) pairs copied onto the config when given
_CLI_OVERRIDES = (
    ("inside", "inside"),
    ("threads", "threads"),
    ("depth", "max_depth"),
    ("size", "max_size_kb"),
    ("insecure", "insecure"),
    ("subs", "subs"),
    ("json", "json_output"),
    ("show_source", "show_source"),
    ("show_where", "show_where"),
    ("unique", "unique"),
    ("proxy", "proxy"),
    ("timeout", "timeout_seconds"),
    ("disable_redirects", "disable_redirects"),
    ("keywords_file", "keywords_file"),
    ("output_file", "output_file"),
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="linkscout",
        description="Crawl seed URLs read from stdin and print every URL found.",
    )

    parser.add_argument("-i", "--inside", action="store_true", default=None, help="Only crawl inside path.")
    parser.add_argument("-t", "--threads", type=int, default=None, help="Number of threads to utilise (default 8).")
    parser.add_argument("-d", "--depth", type=int, default=None, help="Depth to crawl, 0 for unlimited (default 2).")
    parser.add_argument("--size", type=int, default=None, help="Page size limit, in KB (-1 for none).")
    parser.add_argument("--insecure", action="store_true", default=None, help="Disable TLS verification.")
    parser.add_argument("--subs", action="store_true", default=None, help="Include subdomains for crawling.")
    parser.add_argument("--json", action="store_true", default=None, help="Output as JSON.")
    parser.add_argument(
        "-s",
        "--show_source",
        action="store_true",
        default=None,
        help="Show the source of URL based on where it was found. E.g. href, form, script, etc.",
    )
    parser.add_argument(
        "-w",
        "--show_where",
        action="store_true",
        default=None,
        help="Show at which link the URL is found.",
    )
    parser.add_argument("-u", "--unique", action="store_true", default=None, help="Show only unique urls.")
    parser.add_argument("--proxy", type=str, default=None, help="Proxy URL. E.g. --proxy http://127.0.0.1:8080")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Maximum time to crawl each URL from stdin, in seconds (-1 for none).",
    )
    parser.add_argument(
        "--dr",
        "--disable_redirects",
        dest="disable_redirects",
        action="store_true",
        default=None,
        help="Disable following HTTP redirects.",
    )
    parser.add_argument(
        "-k",
        "--keywords_file",
        type=str,
        default=None,
        help="Path to a wordlist file containing keywords.",
    )
    parser.add_argument(
        "-H",
        "--headers",
        type=str,
        default=None,
        help='Custom headers separated by two semi-colons. E.g. -H "Cookie: foo=bar;;Referer: http://example.com/"',
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config. Command-line flags override it.",
    )
    parser.add_argument(
        "--output_file",
        type=str,
        default=None,
        help="File matched URLs are appended to (default matched_urls.txt).",
    )
    parser.add_argument("--log_file", type=Path, default=None, help="Also write logs to this file.")
    parser.add_argument(
        "--no_connectivity_check",
        action="store_true",
        help="Skip the internet connectivity gate.",
    )
    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON on stderr after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    payload: dict[str, Any] = {}
    if args.config is not None:
        payload = load_config_payload(args.config)

    for dest, key in _CLI_OVERRIDES:
        value = getattr(args, dest)
        if value is not None:
            payload[key] = value

    if args.headers is not None:
        payload["headers"] = parse_headers(args.headers)
    if args.no_connectivity_check:
        payload["check_connectivity"] = False

    return CrawlConfig.from_dict(payload)


def setup_logging(log_file: Path | None, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    # stdout carries results
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_probe_session(config: CrawlConfig) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": config.user_agent})
    session.verify = not config.insecure
    if config.proxy:
        session.proxies.update({"http": config.proxy, "https": config.proxy})
    return session


def print_summary(stats: dict[str, Any], *, print_stats_json: bool) -> None:
    LOGGER.info("=== Crawl Complete ===")
    for key in [
        "seeds_read",
        "seeds_invalid",
        "seeds_unreachable",
        "seeds_completed",
        "seeds_failed",
        "seeds_timed_out",
        "pages_fetched_ok",
        "pages_fetched_error",
        "links_emitted",
        "links_filtered",
        "links_persisted",
        "duration_seconds",
    ]:
        if key in stats:
            LOGGER.info("%s: %s", key, stats[key])

    if print_stats_json:
        print(json.dumps(stats, indent=2, sort_keys=True), file=sys.stderr)


def main(argv: list[str] | None = None, *, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, verbose=args.verbose)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    source = stdin if stdin is not None else sys.stdin
    if source.isatty():
        print(NO_INPUT_HINT, file=sys.stderr)
        return 1

    keywords: list[str] = []
    if config.keywords_file:
        try:
            keywords = load_keywords(config.keywords_file)
        except KeywordFileError as exc:
            print(f"Error loading keywords from file: {exc}", file=sys.stderr)
            return 1

    watchdog = ConnectivityWatchdog() if config.check_connectivity else None
    stats = StatsCollector()

    try:
        if watchdog is not None:
            watchdog.wait_until_connected()

        with MatchedURLStorage(config.output_file) as storage:
            pipeline = ResultPipeline(
                storage,
                unique=config.unique,
                capacity=config.threads,
                stream=stdout,
                stats=stats,
            )
            prober = LivenessProber(
                BannedRangeFilter(config.banned_ranges),
                watchdog=watchdog,
                session=build_probe_session(config),
            )
            runner = CrawlRunner(
                config,
                pipeline,
                prober,
                keywords=keywords,
                supervisor=SeedSupervisor(config.timeout_seconds),
                stats=stats,
            )
            LOGGER.debug("Starting crawl with config: %s", config.to_dict())
            runner.run(source)
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except OSError as exc:
        logging.error("Crawl failed: %s", exc)
        return 1

    print_summary(stats.to_json(), print_stats_json=args.print_stats_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
