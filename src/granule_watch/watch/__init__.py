"""Watch sources.

- push: OS notifications (watchdog)
- poll: Directory polling with a high-water mark
- nested: Root-of-runs polling with per-run nested watches

All produce the same event contract: paths of files whose write finished.
"""

from typing import Callable, TYPE_CHECKING

from granule_watch.watch.base import QueueSink, WatchEvent, WatchSource
from granule_watch.watch.nested import NestedRunWatch, RunTreeWatchSource
from granule_watch.watch.poll import DirectoryPoller, PollWatchSource
from granule_watch.watch.push import PushWatchSource

if TYPE_CHECKING:
    from granule_watch.granule import IdentityExtractor, StabilityDetector
    from granule_watch.schemas import InternalConfig


def create_watch_source(config: "InternalConfig", sink: Callable[[str], None],
                        detector: "StabilityDetector",
                        extractor: "IdentityExtractor") -> WatchSource:
    """Build the watch source selected by ``config.watcher.mode``."""
    watcher = config.watcher
    if watcher.mode == "push":
        return PushWatchSource(sink, detector, max_checks=watcher.max_stability_checks)
    if watcher.mode == "poll":
        return PollWatchSource(sink, detector, watcher.period,
                               include_existing=watcher.include_existing)
    if watcher.mode == "poll_nested":
        return RunTreeWatchSource(
            sink, detector, extractor, watcher.period,
            subdirectory=watcher.subdirectory,
            run_prefix=watcher.run_prefix,
            include_existing=watcher.include_existing,
        )
    raise ValueError(f"Unknown watcher mode: {watcher.mode}")


__all__ = [
    "WatchEvent",
    "WatchSource",
    "QueueSink",
    "DirectoryPoller",
    "PollWatchSource",
    "PushWatchSource",
    "NestedRunWatch",
    "RunTreeWatchSource",
    "create_watch_source",
]
