"""Two-level poll watching for a root-of-runs layout.

Processing systems drop each run into its own directory under a root,
with the products landing later in a result subdirectory::

    watch_dir/<run-name>/<subdirectory>/<file>

The root watcher spots new run directories and starts one nested poll watch
per run. A nested watch reports every stable file and retires itself once it
has seen every required file type. Nested watches share no state with each
other or with the root.
"""

import logging
import os
import threading
import time
from typing import Callable, Dict, List, Optional

from granule_watch.errors import ClassificationError
from granule_watch.granule.identity import IdentityExtractor
from granule_watch.granule.stability import StabilityDetector
from granule_watch.watch.poll import DirectoryPoller

__all__ = ['NestedRunWatch', 'RunDirectoryScanner', 'RunTreeWatchSource']

logger = logging.getLogger(__name__)


class NestedRunWatch:
    """Poll watch over one run's result subdirectory.

    Counts distinct required file types among the stable files it reports and
    stops its poller once all are seen, or when stopped externally.
    """

    def __init__(self, run_dir: str, subdirectory: str, sink: Callable[[str], None],
                 detector: StabilityDetector, extractor: IdentityExtractor,
                 period: float, clock: Optional[Callable[[], float]] = None):
        self.run_dir = str(run_dir)
        self.directory = os.path.join(self.run_dir, subdirectory)
        self.sink = sink
        self.extractor = extractor
        self.required = extractor.required_types
        self._found = set()
        self.poller = DirectoryPoller(
            self.directory, self._on_stable, detector, period,
            include_existing=True, clock=clock,
            name=f"RunWatch-{os.path.basename(os.path.normpath(self.run_dir))}",
        )

    @property
    def found(self) -> frozenset:
        return frozenset(self._found)

    @property
    def complete(self) -> bool:
        return self.required <= self._found

    def _on_stable(self, path: str) -> None:
        self.sink(path)
        try:
            type_name, _ = self.extractor.classify(path)
        except ClassificationError:
            return
        if type_name not in self.required or type_name in self._found:
            return
        self._found.add(type_name)
        logger.info("Required file %s found (%d/%d) in %s",
                    os.path.basename(path), len(self._found), len(self.required), self.directory)
        if self.complete:
            logger.info("All required files seen in %s, retiring watch", self.directory)
            self.poller.stop()

    def start(self):
        self.poller.start()

    def stop(self):
        self.poller.stop()

    def join(self, timeout: Optional[float] = None):
        self.poller.join(timeout)

    def is_alive(self) -> bool:
        return self.poller.is_alive()


class RunDirectoryScanner(threading.Thread):
    """Polls the root for new run directories and spawns a NestedRunWatch for each.

    A run directory qualifies when its name starts with ``run_prefix`` and its
    mtime is newer than the high-water mark. Each run is spawned once.
    """

    def __init__(self, root: str, spawn: Callable[[str], None], period: float,
                 run_prefix: str = "", include_existing: bool = False,
                 clock: Optional[Callable[[], float]] = None):
        super().__init__(daemon=True, name=f"RunScanner-{os.path.basename(os.path.normpath(root))}")
        self.root = str(root)
        self.spawn = spawn
        self.period = period
        self.run_prefix = run_prefix
        self._clock = clock or time.time
        self._mark = 0.0 if include_existing else self._clock()
        self._spawned = set()
        self._stop_event = threading.Event()

    def stop(self):
        self._stop_event.set()

    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def run(self):
        logger.info("Watching run root %s (poll every %.1fs)", self.root, self.period)
        while not self.stopped():
            try:
                self.scan_once()
            except Exception:
                logger.exception("Run scan failed for %s", self.root)
            self._stop_event.wait(self.period)
        logger.info("Stopped %s", self.name)

    def scan_once(self) -> List[str]:
        """Run one pass. Returns the run directories spawned."""
        pass_start = self._clock()
        try:
            entries = list(os.scandir(self.root))
        except OSError as e:
            logger.warning("Failed to read directory %s: %s", self.root, e)
            return []

        spawned = []
        for entry in sorted(entries, key=lambda e: e.name):
            if not entry.name.startswith(self.run_prefix) or entry.path in self._spawned:
                continue
            try:
                if not entry.is_dir() or entry.stat().st_mtime <= self._mark:
                    continue
            except OSError as e:
                logger.debug("Skipping %s: %s", entry.path, e)
                continue
            self._spawned.add(entry.path)
            self.spawn(entry.path)
            spawned.append(entry.path)

        self._mark = pass_start
        return spawned


class RunTreeWatchSource:
    """Watch source for the root-of-runs layout.

    Example usage::

        source = RunTreeWatchSource(QueueSink(events), detector, extractor,
                                    period=15, subdirectory="result", run_prefix="NPP")
        source.add_watch("/data")
        ...
        source.close()
    """

    def __init__(self, sink: Callable[[str], None], detector: StabilityDetector,
                 extractor: IdentityExtractor, period: float,
                 subdirectory: str = "result", run_prefix: str = "",
                 include_existing: bool = False,
                 clock: Optional[Callable[[], float]] = None):
        self.sink = sink
        self.detector = detector
        self.extractor = extractor
        self.period = period
        self.subdirectory = subdirectory
        self.run_prefix = run_prefix
        self.include_existing = include_existing
        self._clock = clock
        self._scanners: Dict[str, RunDirectoryScanner] = {}
        self._runs: List[NestedRunWatch] = []
        self._lock = threading.Lock()
        self._closed = False

    def add_watch(self, path: str) -> None:
        key = os.path.abspath(path)
        with self._lock:
            if self._closed:
                raise RuntimeError("Watch source is closed")
            if key in self._scanners:
                logger.debug("Already watching %s", key)
                return
            scanner = RunDirectoryScanner(
                key, self._spawn_run, self.period, run_prefix=self.run_prefix,
                include_existing=self.include_existing, clock=self._clock,
            )
            self._scanners[key] = scanner
        scanner.start()

    def _spawn_run(self, run_dir: str) -> Optional[NestedRunWatch]:
        run = NestedRunWatch(
            run_dir, self.subdirectory, self.sink, self.detector, self.extractor,
            self.period, clock=self._clock,
        )
        with self._lock:
            if self._closed:
                return None
            self._runs = [r for r in self._runs if r.is_alive()]
            self._runs.append(run)
        logger.info("New run %s, watching %s", os.path.basename(run_dir), run.directory)
        run.start()
        return run

    def active_runs(self) -> List[NestedRunWatch]:
        with self._lock:
            return [r for r in self._runs if r.is_alive()]

    def is_alive(self) -> bool:
        with self._lock:
            return any(s.is_alive() for s in self._scanners.values())

    def close(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            self._closed = True
            scanners = list(self._scanners.values())
            runs = list(self._runs)
        for scanner in scanners:
            scanner.stop()
        for run in runs:
            run.stop()
        for worker in [*scanners, *runs]:
            worker.join(timeout)
            if worker.is_alive():
                logger.warning("Watch thread for %s did not stop cleanly",
                               getattr(worker, "directory", getattr(worker, "root", "?")))
