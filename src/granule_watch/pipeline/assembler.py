"""Single-writer granule assembly thread.

The only code that touches the pending-granule table. Watch sources put
WatchEvents on the shared queue; this thread classifies each path, applies it
to the accumulator in arrival order, and hands completed granules off for
dispatch without waiting for them.
"""

import logging
import os
import queue
import threading
from typing import Callable, Optional

from granule_watch.contracts import ContractViolation
from granule_watch.errors import ClassificationError, DuplicateType
from granule_watch.granule.accumulator import GranuleAccumulator, GranuleSnapshot
from granule_watch.granule.identity import IdentityExtractor
from granule_watch.watch.base import WatchEvent

__all__ = ['GranuleAssembler']

logger = logging.getLogger(__name__)


class GranuleAssembler(threading.Thread):
    """Consumes WatchEvents and releases completed granules.

    Parameters
    ----------
    input_queue : queue.Queue
        Shared event queue fed by the watch sources. ``None`` signals shutdown.
    extractor : IdentityExtractor
        Filename classifier.
    accumulator : GranuleAccumulator
        Pending-granule table, owned exclusively by this thread.
    on_complete : callable
        Called with each completed GranuleSnapshot. Must not block.
    """

    def __init__(self, input_queue: queue.Queue, extractor: IdentityExtractor,
                 accumulator: GranuleAccumulator,
                 on_complete: Callable[[GranuleSnapshot], None],
                 name: str = "GranuleAssembler"):
        super().__init__(daemon=True, name=name)
        self.input_queue = input_queue
        self.extractor = extractor
        self.accumulator = accumulator
        self.on_complete = on_complete
        self._stop_event = threading.Event()
        self.events_handled = 0
        self.events_dropped = 0

    def stop(self):
        """Signal the assembler to stop."""
        self._stop_event.set()

    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def run(self):
        logger.info("Starting %s", self.name)
        while not self.stopped():
            try:
                event = self.input_queue.get(timeout=1.0)
            except queue.Empty:
                continue
            try:
                if event is None:
                    break
                self.handle_event(event)
            except Exception:
                logger.exception("Failed to handle %s", event)
            finally:
                self.input_queue.task_done()
        logger.info("Stopped %s", self.name)

    def handle_event(self, event: WatchEvent) -> Optional[GranuleSnapshot]:
        """Classify and accumulate one event. Returns the granule it completed, if any."""
        self.events_handled += 1
        path = event.path
        try:
            type_name, granule_id = self.extractor.classify(path)
        except ClassificationError as e:
            self.events_dropped += 1
            logger.warning("Ignoring %s", e)
            return None

        try:
            snapshot = self.accumulator.accept(type_name, granule_id, path)
        except DuplicateType as e:
            self.events_dropped += 1
            logger.warning("%s: %s", e, os.path.basename(path))
            return None
        except ContractViolation as e:
            self.events_dropped += 1
            logger.critical("Internal error while accumulating %s: %s", path, e)
            return None

        if snapshot is None:
            return None

        logger.info("Granule %s complete (%d types)", snapshot.id, len(snapshot.satisfied_types))
        self.on_complete(snapshot)
        return snapshot
