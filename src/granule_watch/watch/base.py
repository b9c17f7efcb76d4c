"""Watch source contract shared by the push, poll and run-tree watchers."""

import queue
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

__all__ = ['WatchEvent', 'WatchSource', 'QueueSink']


class WatchEvent(BaseModel):
    """A file that has appeared and passed the stability check."""

    model_config = ConfigDict(frozen=True)

    path: str


@runtime_checkable
class WatchSource(Protocol):
    """Produces WatchEvents for stable files under watched paths.

    ``add_watch`` starts background work for a path and is a no-op for a path
    already watched. ``close`` signals every owned task to stop and blocks
    until they have exited. ``is_alive`` reports whether any owned task is
    still running.
    """

    def add_watch(self, path: str) -> None:
        ...

    def close(self) -> None:
        ...

    def is_alive(self) -> bool:
        ...


class QueueSink:
    """Puts WatchEvents for stable paths on the shared event queue."""

    def __init__(self, event_queue: queue.Queue):
        self.event_queue = event_queue

    def __call__(self, path) -> None:
        self.event_queue.put(WatchEvent(path=str(path)))
