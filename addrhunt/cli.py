"""
Command-line interface for addrhunt.

Usage:
    python -m addrhunt 8 found_wallets.txt
    python -m addrhunt 500 found_wallets.txt --addresses targets.txt
    python -m addrhunt 4 found.txt --progress-every 100000 --uncompressed
    python -m addrhunt 4 found.txt --dry-run
"""

import argparse
import logging
import signal
import sys

from addrhunt import __version__
from addrhunt.config import DEFAULT_ADDRESS_FILE, SearchConfig
from addrhunt.core import AddressScheme
from addrhunt.log import setup_logging
from addrhunt.matcher import load_address_set
from addrhunt.notify import build_notifier, format_startup
from addrhunt.pool import SearchPool, clamp_workers
from addrhunt.recorder import ResultRecorder
from addrhunt.stats import StatsSnapshot

log = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid worker count: {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"worker count must be positive, got {n}")
    return n


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="addrhunt",
        description="Random key search against a list of target addresses",
        epilog=(
            "Examples:\n"
            "  addrhunt 8 found_wallets.txt\n"
            "  addrhunt 500 found_wallets.txt --addresses targets.txt\n"
            "\n"
            "Telegram alerts are enabled by setting ADDRHUNT_TELEGRAM_TOKEN\n"
            "and ADDRHUNT_TELEGRAM_CHAT_ID.\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", action="version", version=f"addrhunt {__version__}"
    )
    parser.add_argument(
        "workers", type=positive_int,
        help="Number of worker processes",
    )
    parser.add_argument(
        "output", metavar="OUTPUT",
        help="File that matches are appended to",
    )
    parser.add_argument(
        "--addresses", "-a", default=DEFAULT_ADDRESS_FILE, metavar="PATH",
        help=f"Newline-delimited target addresses (default: {DEFAULT_ADDRESS_FILE})",
    )
    parser.add_argument(
        "--progress-every", type=int, default=None, metavar="N",
        help="Send a progress notification every N checks (default: 1000000)",
    )
    parser.add_argument(
        "--report-interval", type=float, default=None, metavar="SECONDS",
        help="Seconds between progress log lines (default: 30)",
    )
    parser.add_argument(
        "--throttle", type=float, default=None, metavar="SECONDS",
        help="Pause after each check per worker (default: 0.01)",
    )
    parser.add_argument(
        "--uncompressed", action="store_true",
        help="Derive addresses from uncompressed public keys",
    )
    parser.add_argument(
        "--log-level", default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file", metavar="PATH",
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Load targets and show the setup without searching",
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true",
        help="No status line or banner",
    )

    return parser


def format_time(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    elif seconds < 86400:
        return f"{seconds / 3600:.1f}h"
    else:
        return f"{seconds / 86400:.1f}d"


def format_rate(rate: float) -> str:
    if rate < 1000:
        return f"{rate:.0f}"
    elif rate < 1_000_000:
        return f"{rate / 1000:.1f}K"
    else:
        return f"{rate / 1_000_000:.2f}M"


def progress_callback(snapshot: StatsSnapshot, quiet: bool = False) -> None:
    if quiet:
        return
    sys.stderr.write(
        f"\r  Checked: {snapshot.checked:,}  |  "
        f"Found: {snapshot.found:,}  |  "
        f"Rate: {format_rate(snapshot.rate)}/sec  |  "
        f"Elapsed: {format_time(snapshot.elapsed)}  "
    )
    sys.stderr.flush()


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


def main(argv: list[str] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = SearchConfig.from_env(
            progress_every=args.progress_every,
            report_interval=args.report_interval,
            throttle=args.throttle,
            compressed=False if args.uncompressed else None,
            log_level=args.log_level,
        )
        setup_logging(config.log_level, args.log_file)
        num_workers = clamp_workers(args.workers)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        address_set, loaded = load_address_set(args.addresses)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: failed to load addresses from {args.addresses}: {e}", file=sys.stderr)
        return 1

    recorder = ResultRecorder(args.output)
    try:
        output_path = recorder.prepare()
    except OSError as e:
        print(f"Error: cannot write match log {args.output}: {e}", file=sys.stderr)
        return 1

    notifier = build_notifier(config)
    scheme = AddressScheme(compressed=config.compressed)

    if not args.quiet:
        print(f"addrhunt v{__version__}")
        print(f"  Targets:    {loaded:,} addresses ({len(address_set):,} unique)")
        print(f"  Scheme:     {scheme.describe()}")
        print(f"  Workers:    {num_workers}")
        print(f"  Output:     {output_path}")
        print(f"  Notifier:   {type(notifier).__name__}")
        print()

    if args.dry_run:
        return 0

    notifier.notify(format_startup(num_workers, loaded))

    pool = SearchPool(address_set, recorder, notifier, num_workers, config)
    pool.on_progress = lambda snap: progress_callback(snap, args.quiet)

    signal.signal(signal.SIGTERM, _raise_interrupt)

    if not args.quiet:
        print("Searching...")

    final = pool.run_blocking(poll_interval=0.5)

    if not args.quiet:
        sys.stderr.write("\n")
        print(
            f"Stopped after {final.checked:,} checks, "
            f"{final.found:,} match(es) in {format_time(final.elapsed)}"
        )
    return 0
