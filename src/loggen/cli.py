"""
Command-line interface for loggen.

Provides commands for:
- Running the generator against an ingestion endpoint (or a file)
- Showing and initializing the settings file
"""

import argparse
import dataclasses
import logging
import signal
import sys
import threading
from pathlib import Path

import yaml

from .config import Config, ConfigError, load_config, save_config
from .defaults import DEFAULT_QUEUE_SIZE, DEFAULT_SEND_INTERVAL_SECONDS, get_config_path
from .exporters.providers import TELEMETRY_MODES, init_telemetry
from .generators import GENERATOR_KINDS, create_generator
from .pipeline import Pipeline
from .senders import FileSender, HTTPSender

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _parse_label(value: str) -> tuple[str, str]:
    key, sep, val = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"label must be KEY=VALUE, got {value!r}")
    return key.strip(), val.strip()


def _mask(secret: str) -> str:
    if not secret:
        return ""
    return secret[:2] + "*" * max(0, len(secret) - 2)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="loggen",
        description="A fake log, metric and trace generator for load-testing observability backends",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Send 100 log lines per second to the configured endpoint until Ctrl-C
  loggen run

  # Metrics instead of logs, 500 samples per batch, for one minute
  loggen run --kind metrics --rate 500 --duration 60

  # OTLP/JSON traces, 20 spans per batch
  loggen run --kind traces --rate 20

  # Write batches to a file instead of sending them
  loggen run --duration 10 --output-file batches.jsonl --telemetry none

  # Show the effective settings
  loggen config show
        """,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Settings file (default: $LOGGEN_HOME/config.yaml or ~/.loggen/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Generate batches and send them")
    run_parser.add_argument(
        "--kind",
        type=str,
        default="logs",
        choices=sorted(GENERATOR_KINDS),
        help="What to generate (default: logs)",
    )
    run_parser.add_argument(
        "--rate",
        type=int,
        default=None,
        help="Items per batch (default: rate from settings)",
    )
    run_parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="Ingestion base URL (default: url from settings)",
    )
    run_parser.add_argument(
        "--label",
        dest="labels",
        type=_parse_label,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Extra label added to every batch (repeatable)",
    )
    run_parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted)",
    )
    run_parser.add_argument(
        "--interval",
        type=float,
        default=DEFAULT_SEND_INTERVAL_SECONDS,
        help=f"Seconds between sends (default: {DEFAULT_SEND_INTERVAL_SECONDS:g})",
    )
    run_parser.add_argument(
        "--queue-size",
        type=int,
        default=DEFAULT_QUEUE_SIZE,
        help=f"Batches buffered between generation and sending (default: {DEFAULT_QUEUE_SIZE})",
    )
    run_parser.add_argument(
        "--output-file",
        type=str,
        default=None,
        help="Write batches to this file instead of sending them",
    )
    run_parser.add_argument(
        "--telemetry",
        type=str,
        default="otlp",
        choices=TELEMETRY_MODES,
        help="Where loggen's own traces and metrics go (default: otlp)",
    )
    run_parser.add_argument(
        "--protocol",
        type=str,
        default="http",
        choices=["http", "grpc"],
        help="OTLP protocol for --telemetry otlp (default: http)",
    )
    run_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible content",
    )

    config_parser = subparsers.add_parser("config", help="Inspect or create the settings file")
    config_sub = config_parser.add_subparsers(dest="config_command", help="Config action")
    config_sub.add_parser("show", help="Print the effective settings (secrets masked)")
    init_parser = config_sub.add_parser("init", help="Write default settings")
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing settings file",
    )
    config_sub.add_parser("path", help="Print the settings file path")

    return parser


def _config_path(args: argparse.Namespace) -> Path:
    return Path(args.config).expanduser() if args.config else get_config_path()


def _effective_config(args: argparse.Namespace) -> Config:
    config = load_config(_config_path(args))
    overrides: dict = {}
    if getattr(args, "rate", None) is not None:
        if args.rate <= 0:
            raise ConfigError("rate must be positive")
        overrides["rate"] = args.rate
    if getattr(args, "url", None):
        overrides["url"] = args.url.rstrip("/")
    if getattr(args, "labels", None):
        overrides["labels"] = {**config.labels, **dict(args.labels)}
    return dataclasses.replace(config, **overrides) if overrides else config


def _install_signal_handlers(cancel: threading.Event) -> dict:
    """
    Route SIGINT/SIGTERM to cancel; returns the previous handlers.

    The first signal starts a graceful drain. A second one restores the
    previous handlers and raises KeyboardInterrupt, abandoning the drain.
    """
    previous = {}

    def handle_signal(signum, frame):
        if cancel.is_set():
            logger.warning("Received signal %d again, abandoning in-flight batches", signum)
            _restore_signal_handlers(previous)
            raise KeyboardInterrupt
        logger.info("Received signal %d, shutting down...", signum)
        cancel.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, handle_signal)
    return previous


def _restore_signal_handlers(previous: dict) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def cmd_run(args: argparse.Namespace):
    """Generate and send batches until interrupted or --duration elapses."""
    try:
        config = _effective_config(args)
        generator = create_generator(args.kind, config.rate, labels=config.labels, seed=args.seed)
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    if args.duration is not None and args.duration <= 0:
        print("Error: duration must be positive")
        sys.exit(1)

    print("Starting telemetry generation...")
    print(f"   Kind: {args.kind}")
    print(f"   Rate: {config.rate} per batch")
    print(f"   Interval: {args.interval:g}s")
    if args.duration is not None:
        print(f"   Duration: {args.duration:g}s")
    if args.output_file:
        sender = FileSender(args.output_file)
        print(f"   Output: {args.output_file}")
    else:
        sender = HTTPSender.for_generator(config, generator)
        print(f"   Endpoint: {sender.url}")
    print()

    telemetry = init_telemetry(config, mode=args.telemetry, protocol=args.protocol)
    cancel = threading.Event()
    previous_handlers = _install_signal_handlers(cancel)
    timer = None
    if args.duration is not None:
        timer = threading.Timer(args.duration, cancel.set)
        timer.daemon = True
        timer.start()

    try:
        pipeline = Pipeline(
            sender,
            generator,
            queue_size=args.queue_size,
            send_interval=args.interval,
        )
        pipeline.start(cancel)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nGeneration interrupted")
        sys.exit(0)
    finally:
        if timer is not None:
            timer.cancel()
        _restore_signal_handlers(previous_handlers)
        sender.close()
        telemetry.shutdown()

    snap = pipeline.snapshot()
    print()
    print(f"Sent {snap.sends} batches")
    print(f"   Lines: {snap.lines}")
    print(f"   Bytes: {snap.bytes}")
    print(f"   Errors: {snap.errors}")


def cmd_config(args: argparse.Namespace):
    """Show, initialize or locate the settings file."""
    path = _config_path(args)
    action = getattr(args, "config_command", None) or "show"

    if action == "path":
        print(path)
        return

    if action == "init":
        if path.exists() and not args.force:
            print(f"Settings file already exists: {path} (use --force to overwrite)")
            sys.exit(1)
        save_config(Config(), path)
        print(f"Wrote default settings to {path}")
        return

    try:
        config = load_config(path)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)
    data = config.to_dict()
    data["api_key"] = _mask(data["api_key"])
    data["api_secret"] = _mask(data["api_secret"])
    print(f"# {path}")
    print(yaml.safe_dump(data, sort_keys=False).rstrip())


def main(argv: list[str] | None = None):
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(level=getattr(logging, args.log_level), format=_LOG_FORMAT)

    if args.command == "run":
        cmd_run(args)
    elif args.command == "config":
        cmd_config(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
