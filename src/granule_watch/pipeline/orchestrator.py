"""Multi-threaded granule watch orchestration.

Coordinates the watch source, the single-writer assembler thread and the
per-granule dispatch threads. Manages lifecycle, monitoring, and graceful
shutdown.
"""

import logging
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, TYPE_CHECKING

from granule_watch.errors import StageFailed
from granule_watch.granule import GranuleAccumulator, GranuleSnapshot, IdentityExtractor, StabilityDetector
from granule_watch.pipeline.assembler import GranuleAssembler
from granule_watch.pipeline.dispatcher import DispatchOutcome, Dispatcher
from granule_watch.watch import QueueSink, create_watch_source

if TYPE_CHECKING:
    from granule_watch.schemas import InternalConfig
    from granule_watch.watch import WatchSource

__all__ = ['GranuleWatchOrchestrator']

logger = logging.getLogger(__name__)


class GranuleWatchOrchestrator:
    """Manages the granule watch pipeline.

    This is the main entry point for running ``granule_watch``.

    **Pipeline Architecture:**

    1. **Watch source**: one thread per watched directory (poll modes) or the
       watchdog observer (push mode). Confirms write completion and puts a
       WatchEvent on the shared event queue.

    2. **Assembler thread**: the single owner of the pending-granule table.
       Classifies each path, merges it into its granule and releases the
       granule once complete.

    3. **Dispatch threads**: one per completed granule, running the gate check
       and the detect/fit stages. Dispatch never blocks assembly.

    **Shutdown:**

    The watch source is closed and joined first, then the assembler. In-flight
    dispatch threads are daemon threads and are not waited for; a pipeline run
    interrupted at shutdown is lost, like any other failed run.

    **Logging:**

    Console and ``<output_dir>/logs/granule_watch.log`` at the level of
    ``config.logging.level``. A status line is logged every
    ``config.orchestrator.status_interval`` seconds.

    Example usage::

        config = load_config("config.json")
        orch = GranuleWatchOrchestrator(config, setup_output_directories(config.output_dir))
        orch.start()  # Runs until Ctrl+C
    """

    def __init__(self, config: "InternalConfig", output_dirs: Optional[Dict[str, Path]] = None,
                 runner: Optional[Callable] = None,
                 watch_source: Optional["WatchSource"] = None):
        """Initialize orchestrator.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        output_dirs : dict, optional
            Output directories from `setup_output_directories()`. Without
            them, logging goes to the console only.
        runner : callable, optional
            ``subprocess.run``-compatible function for the external tools
            (for testing).
        watch_source : WatchSource, optional
            Pre-built watch source (for testing). Created from config otherwise.
        """
        self.config = config
        self.output_dirs = output_dirs or {}

        self.event_queue = queue.Queue(maxsize=config.orchestrator.max_queue_size)

        self.extractor = IdentityExtractor.from_config(config)
        self.detector = StabilityDetector(config.stability.interval)
        self.accumulator = GranuleAccumulator.from_config(config)
        self.dispatcher = Dispatcher(config, runner=runner)

        self.watch_source = watch_source
        self.assembler = GranuleAssembler(
            self.event_queue, self.extractor, self.accumulator, self.dispatch,
        )

        self._dispatch_threads: List[threading.Thread] = []
        self._stats_lock = threading.Lock()
        self.stats = {"processed": 0, "skipped": 0, "failed": 0}

        # Lifecycle state
        self._stop_event = False
        self._start_time = None
        self._max_duration = None

    def _setup_logging(self):
        """Configure root logger with console and file handlers."""
        log_level = getattr(logging, self.config.logging.level, logging.INFO)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        log_path = None
        if "logs" in self.output_dirs:
            log_dir = Path(self.output_dirs["logs"])
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / "granule_watch.log"
            fh = logging.FileHandler(log_path)
            fh.setLevel(log_level)
            fh.setFormatter(formatter)
            root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)

    def start(self, max_runtime: Optional[int] = None):
        """Start watching and run until interrupted.

        Parameters
        ----------
        max_runtime : int, optional
            Maximum runtime in minutes. If None, runs until KeyboardInterrupt.
        """
        self._setup_logging()

        logger.info("=" * 60)
        logger.info("Starting Granule Watch")
        logger.info("=" * 60)

        self._start_time = time.time()
        self._max_duration = max_runtime * 60 if max_runtime else None

        required = sorted(self.accumulator.rule.required_types)
        logger.info("Required types (%d): %s", len(required), ", ".join(required))
        if self.config.require_ancillary_flags:
            logger.info("Ancillary flags: %s", self.config.require_ancillary_flags)

        try:
            self.start_workers()
            logger.info("Watching %s in %s mode. Press Ctrl+C to stop.",
                        self.config.watch_dir, self.config.watcher.mode.upper())
            self._main_loop()
        except KeyboardInterrupt:
            logger.info("Shutdown signal received")
        finally:
            self.stop()

    def start_workers(self):
        """Start the assembler and the watch source (non-blocking)."""
        self.assembler.start()
        logger.info("✓ Assembler started")

        if self.watch_source is None:
            self.watch_source = create_watch_source(
                self.config, QueueSink(self.event_queue), self.detector, self.extractor,
            )
        self.watch_source.add_watch(self.config.watch_dir)
        logger.info("✓ Watch source started (%s)", self.config.watcher.mode)

    def _main_loop(self):
        """Main monitoring loop."""
        while True:
            if self._max_duration:
                elapsed = time.time() - self._start_time
                if elapsed > self._max_duration:
                    logger.info("Max duration reached")
                    break

            time.sleep(self.config.orchestrator.status_interval)
            self._log_status()

    # ========================================================================
    # Dispatch
    # ========================================================================

    def dispatch(self, snapshot: GranuleSnapshot) -> threading.Thread:
        """Run the pipeline for a completed granule on its own daemon thread."""
        thread = threading.Thread(
            target=self.dispatch_granule, args=(snapshot,),
            name=f"Dispatch-{snapshot.id}", daemon=True,
        )
        with self._stats_lock:
            self._dispatch_threads = [t for t in self._dispatch_threads if t.is_alive()]
            self._dispatch_threads.append(thread)
        thread.start()
        return thread

    def dispatch_granule(self, snapshot: GranuleSnapshot) -> Optional[DispatchOutcome]:
        """Dispatch one granule, logging and counting the outcome."""
        try:
            outcome = self.dispatcher.process(snapshot)
        except StageFailed as e:
            logger.error("%s\n%s", e, e.output)
            self._count("failed")
            return None
        except Exception:
            logger.exception("Dispatch of granule %s failed", snapshot.id)
            self._count("failed")
            return None
        self._count(outcome.value)
        return outcome

    def _count(self, key: str):
        with self._stats_lock:
            self.stats[key] += 1

    def in_flight(self) -> int:
        with self._stats_lock:
            return sum(1 for t in self._dispatch_threads if t.is_alive())

    def join_dispatches(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight dispatches. Returns True if none is left running."""
        with self._stats_lock:
            threads = list(self._dispatch_threads)
        deadline = time.time() + timeout if timeout is not None else None
        for t in threads:
            remaining = None if deadline is None else max(0.0, deadline - time.time())
            t.join(remaining)
        return self.in_flight() == 0

    # ========================================================================
    # Shutdown and status
    # ========================================================================

    def stop(self):
        """Stop the pipeline gracefully. Safe to call multiple times.

        1. Closes the watch source (joins its threads)
        2. Signals the assembler and waits for it
        3. Logs a summary; in-flight dispatches are left running
        """
        if self._stop_event:
            return

        self._stop_event = True
        logger.info("Stopping granule watch...")

        if self.watch_source is not None:
            logger.info("Closing watch source...")
            self.watch_source.close()

        if self.assembler.is_alive():
            logger.info("Stopping assembler...")
            self.assembler.stop()
            try:
                self.event_queue.put_nowait(None)
            except queue.Full:
                pass
            self.assembler.join(timeout=5)
            if self.assembler.is_alive():
                logger.warning("Assembler did not stop cleanly")

        elapsed = time.time() - self._start_time if self._start_time else 0
        logger.info("=" * 60)
        logger.info("Granule watch stopped. Runtime: %.1f seconds", elapsed)
        logger.info(
            "Statistics: dispatched=%d, processed=%d, skipped=%d, failed=%d, pending=%d, in-flight=%d",
            self.accumulator.dispatched_count, self.stats["processed"], self.stats["skipped"],
            self.stats["failed"], self.accumulator.pending_count, self.in_flight(),
        )
        logger.info("=" * 60)

    def _log_status(self):
        """Log current pipeline status."""
        watching = self.watch_source is not None and self.watch_source.is_alive()
        logger.info(
            "Status: W=%s A=%s Q=%d pending=%d dispatched=%d in-flight=%d",
            "✓" if watching else "✗",
            "✓" if self.assembler.is_alive() else "✗",
            self.event_queue.qsize(),
            self.accumulator.pending_count,
            self.accumulator.dispatched_count,
            self.in_flight(),
        )
