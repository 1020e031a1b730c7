"""Command-line interface for the stats watcher."""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import replace

from .chains.tezos import TezosClient
from .config import AppConfig, load_config
from .errors import ConfigurationError
from .interfaces import BlobStorage, ErrorReporter, MetricsSink
from .logging_setup import configure_logging
from .services import Scheduler, StatsPipeline
from .sinks import (
    LoggingBlobStorage,
    LoggingMetrics,
    PrometheusMetrics,
    S3BlobStorage,
    SentryErrorReporter,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="stats-watcher",
        description="Kolibri protocol stats watcher",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Log metrics and snapshots instead of publishing them",
    )

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("run", help="Run the stats loop for every network until stopped")
    sub.add_parser("once", help="Run a single pass for every network")

    return parser


def build_sinks(config: AppConfig) -> tuple[MetricsSink, BlobStorage, ErrorReporter]:
    """Create the process-wide sinks. Test mode swaps in logging-only sinks."""
    error_reporter = SentryErrorReporter(config.sinks.error_reporting)

    if config.watcher.test_mode:
        logger.warning("!!! Running in Test Mode - Data is not logged !!!")
        return LoggingMetrics(), LoggingBlobStorage(), error_reporter

    metrics = PrometheusMetrics(config.sinks.metrics.prefix)
    metrics.serve(config.sinks.metrics.port)
    return metrics, S3BlobStorage(config.sinks.storage), error_reporter


def build_schedulers(
    config: AppConfig,
    clients: dict[str, TezosClient],
    metrics: MetricsSink,
    storage: BlobStorage,
    error_reporter: ErrorReporter,
) -> list[Scheduler]:
    schedulers: list[Scheduler] = []
    for name, network in config.networks.items():
        pipeline = StatsPipeline(network, config.watcher, clients[name], metrics, storage)
        schedulers.append(
            Scheduler(
                name,
                pipeline.run_pass,
                delay=config.watcher.loop_delay_seconds,
                error_reporter=error_reporter,
                pass_timeout=config.watcher.pass_timeout_seconds,
            )
        )
    return schedulers


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass


async def _run(command: str, config: AppConfig) -> int:
    """Execute the selected command. Returns the process exit status."""
    metrics, storage, error_reporter = build_sinks(config)
    clients = {name: TezosClient(network) for name, network in config.networks.items()}
    schedulers = build_schedulers(config, clients, metrics, storage, error_reporter)

    try:
        if command == "once":
            results = await asyncio.gather(*(s.run_once() for s in schedulers))
            return 0 if all(results) else 1

        stop = asyncio.Event()
        _install_signal_handlers(stop)
        await asyncio.gather(*(s.run_forever(stop) for s in schedulers))
        return 0
    finally:
        await asyncio.gather(*(client.close() for client in clients.values()))
        if isinstance(error_reporter, SentryErrorReporter):
            error_reporter.flush()


def main(argv: list[str] | None = None) -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.critical("Fatal: %s", e)
        sys.exit(1)

    if args.test_mode:
        config = replace(config, watcher=replace(config.watcher, test_mode=True))

    sys.exit(asyncio.run(_run(args.command, config)))
