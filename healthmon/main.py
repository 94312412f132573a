"""Main application entry point for the health monitor."""

import argparse
import asyncio
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .config.loader import ConfigLoader
from .config.models import MonitoringSystemConfig
from .reporting.report_generator import ReportGenerator
from .services.dispatcher import Dispatcher
from .services.history_store import HistoryStore
from .services.sampler import Sampler
from .services.target_registry import TargetRegistry
from .utils.logger import setup_logger
from .utils.metrics import Sample


class MonitoringApp:
    """
    Health monitoring application.

    Wires configuration, target registry, dispatcher, sampler, history
    store and report generator together, and offers the thin operations
    the CLI and interactive shell call into.
    """

    def __init__(
        self,
        config: MonitoringSystemConfig,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize monitoring application.

        Args:
            config: Validated system configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or setup_logger("healthmon")

        monitoring = config.monitoring
        self.registry = TargetRegistry(config.targets, self.logger)
        self.store = HistoryStore(monitoring.history_size, self.logger)
        self.dispatcher = Dispatcher(
            max_workers=monitoring.max_workers,
            deadline_factor=monitoring.deadline_factor,
            logger=self.logger
        )
        self.sampler = Sampler(self.registry, self.dispatcher, self.store, logger=self.logger)
        self.reporter = ReportGenerator(config.reports.output_dir, self.logger)

        self.logger.info(
            f"Application initialized: {len(self.registry)} target(s), "
            f"{monitoring.interval_seconds:g}s interval, history size {monitoring.history_size}"
        )

    @classmethod
    def from_config_file(
        cls,
        config_path: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ) -> "MonitoringApp":
        logger = logger or setup_logger("healthmon")
        config_path = ConfigLoader.resolve_path(config_path)
        logger.info(f"Loading configuration from {config_path}")
        config = ConfigLoader.load_from_file(config_path)
        logger.info("Configuration loaded successfully")
        return cls(config, logger)

    # ------------------------------------------------------------------
    # Operations used by the CLI and the shell
    # ------------------------------------------------------------------

    def start(self, interval_seconds: Optional[float] = None) -> float:
        if interval_seconds is None:
            interval_seconds = self.config.monitoring.interval_seconds
        self.sampler.start(interval_seconds)
        return interval_seconds

    def stop(self) -> None:
        self.sampler.stop()

    def set_interval(self, interval_seconds: float) -> None:
        """Apply a new interval, restarting the sampler if it is running."""
        self.config.monitoring.interval_seconds = interval_seconds
        if self.sampler.interval_seconds is not None:
            self.sampler.restart(interval_seconds)

    def latest(self) -> Optional[Sample]:
        return self.store.latest()

    def run_once(self) -> Optional[Sample]:
        """Run a single collection cycle in a fresh event loop."""
        return asyncio.run(self.sampler.run_cycle())

    def build_report(self) -> Dict:
        return self.reporter.build_report(
            self.store.snapshot(),
            self.store.statistics(),
            self.registry.snapshot(),
            interval_seconds=self.sampler.interval_seconds or self.config.monitoring.interval_seconds
        )

    def write_reports(self, formats: Optional[List[str]] = None) -> List[Path]:
        report = self.build_report()
        return [
            self.reporter.write_report(report, fmt)
            for fmt in (formats or self.config.reports.formats)
        ]


def _install_signal_handlers(app: MonitoringApp, done: threading.Event) -> None:
    def handler(signum, frame):
        signal_name = signal.Signals(signum).name
        app.logger.info(f"Received {signal_name}, initiating graceful shutdown...")
        done.set()

    signal.signal(signal.SIGTERM, handler)
    signal.signal(signal.SIGINT, handler)


def main():
    """
    CLI entry point.

    Parses command-line arguments and starts the health monitor.
    """
    parser = argparse.ArgumentParser(
        description='Scheduled health monitor for HTTP and TCP targets',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sample continuously until interrupted
  healthmon --config config/config.yaml

  # Run one cycle, print the status and exit
  healthmon --run-once

  # Interactive shell (start, stop, status, report, add-target, ...)
  healthmon --interactive

  # Sample every 10 seconds and write HTML and CSV reports on exit
  healthmon --interval 10 --report html csv
        """
    )

    parser.add_argument(
        '--config',
        default=None,
        help="Path to configuration file (default: $HEALTHMON_CONFIG or config/config.yaml)"
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--run-once',
        action='store_true',
        help='Run one collection cycle and exit'
    )
    mode.add_argument(
        '--interactive',
        action='store_true',
        help='Start the interactive command shell'
    )

    parser.add_argument(
        '--interval',
        type=float,
        default=None,
        help='Sampling interval in seconds (overrides the configuration)'
    )

    parser.add_argument(
        '--report',
        nargs='*',
        choices=list(ReportGenerator.FORMATS),
        default=None,
        help='Write reports in these formats on exit (default: configured formats)'
    )

    parser.add_argument(
        '--log-level',
        default=os.getenv('LOG_LEVEL', 'INFO'),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    args = parser.parse_args()
    logger = setup_logger("healthmon", args.log_level, sys.stderr if args.interactive else None)

    try:
        app = MonitoringApp.from_config_file(args.config, logger)
    except FileNotFoundError:
        logger.error(
            f"Configuration file not found: {ConfigLoader.resolve_path(args.config)}. "
            "Create it from config/config.example.yaml"
        )
        sys.exit(1)
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}", exc_info=True)
        sys.exit(1)

    if args.interval is not None:
        if args.interval <= 0:
            logger.error("--interval must be positive")
            sys.exit(1)
        app.config.monitoring.interval_seconds = args.interval

    if args.interactive:
        from .shell import MonitorShell
        MonitorShell(app).cmdloop()
        app.stop()
        sys.exit(0)

    if args.run_once:
        sample = app.run_once()
        if args.report is not None:
            app.write_reports(args.report or None)
        if sample is None:
            sys.exit(1)
        print(f"{sample.summary.status.to_emoji()} {sample.summary.status.value}: "
              f"{sample.summary.success_count}/{sample.summary.total} targets healthy")
        sys.exit(0)

    done = threading.Event()
    _install_signal_handlers(app, done)
    app.start()
    logger.info("Sampler running. Press Ctrl+C to exit.")
    while not done.wait(1.0):
        pass
    app.stop()

    if args.report is not None:
        for path in app.write_reports(args.report or None):
            logger.info(f"Report written to {path}")
    sys.exit(0)


if __name__ == '__main__':
    main()
