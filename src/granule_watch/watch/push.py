"""Push-based watching on OS file-change notifications.

Uses a ``watchdog`` observer. Only write-completed notifications are taken:
a file closed after writing, or a file renamed into the watched directory.
Each candidate is confirmed with the stability check on a worker pool so
the observer thread never blocks on the quiescence wait.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from granule_watch.granule.stability import StabilityDetector

__all__ = ['PushWatchSource']

logger = logging.getLogger(__name__)


class _WriteCompletedHandler(FileSystemEventHandler):
    """Forwards write-completed file events to the owning watch source."""

    def __init__(self, source: "PushWatchSource"):
        self.source = source

    def on_closed(self, event):
        if event.is_directory:
            return
        self.source.submit(event.src_path)

    def on_moved(self, event):
        if event.is_directory:
            return
        self.source.submit(event.dest_path)


class PushWatchSource:
    """Watch source driven by OS notifications.

    Parameters
    ----------
    sink : callable
        Called with the path of every stable file.
    detector : StabilityDetector
        Write-stability check.
    max_checks : int, optional
        Stability checks attempted for one notification before giving up.
        A later notification for the same file starts over.
    workers : int, optional
        Size of the stability-check pool (default: 4).
    observer : watchdog observer, optional
        Observer instance (for testing). If None, uses the platform Observer.

    Notes
    -----
    Close notifications are delivered by inotify, so this source expects
    Linux. Use the poll source elsewhere.
    """

    def __init__(self, sink: Callable[[str], None], detector: StabilityDetector,
                 max_checks: int = 20, workers: int = 4, observer=None):
        self.sink = sink
        self.detector = detector
        self.max_checks = max_checks
        self._observer = observer or Observer()
        self._handler = _WriteCompletedHandler(self)
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="StabilityCheck")
        self._watches: Dict[str, object] = {}
        self._inflight = set()
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._started = False

    def add_watch(self, path: str) -> None:
        key = os.path.abspath(path)
        with self._lock:
            if self._stop_event.is_set():
                raise RuntimeError("Watch source is closed")
            if key in self._watches:
                logger.debug("Already watching %s", key)
                return
            self._watches[key] = self._observer.schedule(self._handler, key, recursive=False)
            if not self._started:
                self._observer.start()
                self._started = True
        logger.info("Watching %s (OS notifications)", key)

    def is_alive(self) -> bool:
        return self._started and self._observer.is_alive()

    def submit(self, path: str) -> Optional[object]:
        """Queue a candidate path for the stability check.

        Notifications for the watched directories themselves, for paths
        already being checked, and any arriving after close are ignored.
        """
        key = os.path.abspath(path)
        with self._lock:
            if self._stop_event.is_set() or key in self._watches or key in self._inflight:
                return None
            self._inflight.add(key)
        return self._executor.submit(self._settle, key)

    def _settle(self, path: str) -> bool:
        try:
            for _ in range(self.max_checks):
                if self._stop_event.is_set():
                    return False
                if self.detector.is_stable(path):
                    self.sink(path)
                    return True
                if not os.path.exists(path):
                    logger.debug("Vanished before settling: %s", path)
                    return False
            logger.warning("File did not settle after %d checks: %s", self.max_checks, path)
            return False
        except Exception:
            logger.exception("Stability check failed for %s", path)
            return False
        finally:
            with self._lock:
                self._inflight.discard(path)

    def close(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            if self._stop_event.is_set():
                return
            self._stop_event.set()
        if self._started:
            self._observer.stop()
            self._observer.join(timeout)
            if self._observer.is_alive():
                logger.warning("Observer did not stop cleanly")
        self._executor.shutdown(wait=True)
