"""
CLI workflow orchestration for Image Finder.

Provides the CLIOrchestrator class that coordinates a CLI run from
argument parsing through command execution and reporting.
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from typing import Optional

from ..database import FingerprintStore
from ..errors import ImageFinderError, PathAccessError
from ..scanner import ScanPipeline
from ..search import SimilaritySearchEngine
from ..user_config import get_user_config
from ..utils.validators import (
    validate_directory,
    validate_image_file,
    validate_threshold,
    validate_workers,
)
from .arg_parser import parse_arguments
from .reporting import print_matches, print_scan_summary, print_store_stats

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) console logging
        log_file: Optional file receiving DEBUG logs regardless of verbose

    Returns:
        Configured logger instance
    """
    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))
    handlers: list[logging.Handler] = [console]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if (verbose or log_file) else logging.INFO,
        handlers=handlers,
    )
    return logging.getLogger(__name__)


class CLIOrchestrator:
    """
    Orchestrates a CLI run.

    Manages the lifecycle from argument parsing through validation,
    interrupt handling, command execution, and reporting.
    """

    def __init__(self, argv: Optional[list[str]] = None):
        """
        Initialize the orchestrator.

        Args:
            argv: Arguments to parse instead of sys.argv
        """
        self.argv = argv
        self.args = None
        self.logger = logging.getLogger(__name__)
        self.user_config = get_user_config()
        self.cancel_event = threading.Event()
        self._previous_handlers: dict[int, object] = {}

    def run(self) -> int:
        """
        Execute the CLI workflow.

        Returns:
            Exit code (0 for success, 1 for error)

        Workflow phases:
        1. Setup & argument parsing
        2. Validation
        3. Command execution (with interrupt handling)
        """
        # Phase 1: Setup
        self._setup_phase()

        # Phase 2: Validation
        exit_code = self._validate_phase()
        if exit_code != 0:
            return exit_code

        # Phase 3: Execution
        if self.args.command == 'config':
            return self._config_command()

        self._install_signal_handlers()
        try:
            if self.args.command == 'scan':
                return self._scan_command()
            if self.args.command == 'search':
                return self._search_command()
            return self._stats_command()
        except ImageFinderError as e:
            self.logger.error(str(e))
            return 1
        finally:
            self._restore_signal_handlers()

    def _setup_phase(self) -> None:
        """Phase 1: Parse arguments and setup logging."""
        self.args = parse_arguments(self.argv)
        log_file = getattr(self.args, 'log_file', None) or self.user_config.log_file
        self.logger = setup_logging(self.args.verbose, log_file)

    def _validate_phase(self) -> int:
        """
        Phase 2: Validate arguments.

        Returns:
            0 for success, 1 for validation error
        """
        args = self.args
        checks = []
        if args.command == 'scan':
            checks.append(validate_directory(args.folder))
        if args.command == 'search':
            checks.append(validate_image_file(args.image))
            if args.threshold is not None:
                checks.append(validate_threshold(args.threshold))
        if getattr(args, 'workers', None) is not None:
            checks.append(validate_workers(args.workers))

        for is_valid, error in checks:
            if not is_valid:
                self.logger.error(error)
                return 1
        return 0

    def _install_signal_handlers(self) -> None:
        """First interrupt stops launching new work; a second one aborts."""
        if threading.current_thread() is not threading.main_thread():
            return

        def _handler(signum, frame):
            if self.cancel_event.is_set():
                raise KeyboardInterrupt
            self.logger.warning("Interrupt received - finishing in-flight files (press Ctrl+C again to abort)")
            self.cancel_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[signum] = signal.signal(signum, _handler)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _open_store(self) -> FingerprintStore:
        db_path = self.args.database or self.user_config.database_file
        self.logger.debug(f"Using database {db_path}")
        return FingerprintStore(db_path)

    def _workers(self) -> int:
        return self.args.workers or self.user_config.default_workers

    def _scan_command(self) -> int:
        """Scan a folder into the store."""
        store = self._open_store()
        pipeline = ScanPipeline(
            store,
            max_workers=self._workers(),
            slot_timeout=self.user_config.slot_timeout,
            result_timeout=self.user_config.result_timeout,
            show_progress=not self.args.no_progress,
            cancel_event=self.cancel_event,
        )
        self.logger.info(
            f"Scanning {self.args.folder}"
            + (f" with prefix '{self.args.prefix}'" if self.args.prefix else "")
        )
        try:
            summary = pipeline.scan(self.args.folder, self.args.prefix, self.args.force)
        except PathAccessError as e:
            self.logger.error(str(e))
            return 1
        print_scan_summary(summary)
        return 0

    def _search_command(self) -> int:
        """Search the store for images similar to the query."""
        threshold = self.args.threshold
        if threshold is None:
            threshold = self.user_config.search_threshold
        is_valid, error = validate_threshold(threshold)
        if not is_valid:
            self.logger.error(error)
            return 1

        store = self._open_store()
        engine = SimilaritySearchEngine(
            store,
            max_workers=self._workers(),
            cancel_event=self.cancel_event,
        )
        self.logger.info(f"Searching for images similar to {self.args.image} (threshold={threshold})")
        started = time.time()
        matches = engine.search(self.args.image, threshold, self.args.prefix)
        print_matches(matches, self.args.limit, time.time() - started)
        return 0

    def _stats_command(self) -> int:
        """Show store statistics, optionally after cleanup."""
        store = self._open_store()
        if self.args.cleanup:
            removed = store.cleanup_missing()
            store.vacuum()
            self.logger.info(f"Removed {removed:,} records for missing files")
        print_store_stats(store.get_stats(self.args.prefix), self.args.prefix)
        return 0

    def _config_command(self) -> int:
        """Show the effective configuration or create an example file."""
        config = self.user_config
        if self.args.init:
            if not config.create_example_config():
                print("Failed to create configuration file.")
                return 1
            print("Created example configuration file at:")
            print(f"  {config.config_file_path}")
            return 0

        print(f"Configuration file: {config.config_file_path}")
        print("Status: " + ("found" if config.config_file_path.exists() else "not found (using defaults)"))
        print("\nCurrent settings:")
        print(f"  default_workers: {config.default_workers}")
        print(f"  search_threshold: {config.search_threshold}")
        print(f"  database_file: {config.database_file}")
        print(f"  slot_timeout: {config.slot_timeout}")
        print(f"  result_timeout: {config.result_timeout}")
        print(f"  log_file: {config.log_file}")
        return 0


__all__ = ['CLIOrchestrator', 'setup_logging']
