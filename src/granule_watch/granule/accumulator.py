"""Per-granule accumulation and completeness detection.

Arrivals for a granule are merged into a pending record until the configured
completeness rule holds. The record then leaves the pending table in the same
step and is handed on as an immutable snapshot, so a granule can be released
for dispatch only once.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from granule_watch.contracts import require
from granule_watch.errors import DuplicateType, IdMismatch

if TYPE_CHECKING:
    from granule_watch.schemas import InternalConfig

__all__ = ['GranuleRecord', 'GranuleSnapshot', 'CompletenessRule', 'GranuleAccumulator']

logger = logging.getLogger(__name__)


class GranuleSnapshot(BaseModel):
    """Immutable view of a completed granule, handed to the dispatcher."""

    model_config = ConfigDict(frozen=True)

    id: str
    satisfied_types: frozenset[str]
    trigger_file_path: Optional[str] = None
    ancillary_flags: frozenset[str] = frozenset()


class GranuleRecord(BaseModel):
    """Mutable accumulation state of one pending granule."""

    id: str
    satisfied_types: set[str] = Field(default_factory=set)
    trigger_file_path: Optional[str] = None
    ancillary_flags: set[str] = Field(default_factory=set)

    def merge(self, other: "GranuleRecord") -> None:
        """Fold another record for the same granule into this one.

        Types and flags are unioned; the first-seen trigger path is kept.

        Raises
        ------
        IdMismatch
            If the records belong to different granules.
        """
        require(
            self.id == other.id,
            f"Cannot merge granule {other.id!r} into {self.id!r}",
            IdMismatch,
        )
        self.satisfied_types |= other.satisfied_types
        self.ancillary_flags |= other.ancillary_flags
        if self.trigger_file_path is None:
            self.trigger_file_path = other.trigger_file_path

    def snapshot(self) -> GranuleSnapshot:
        return GranuleSnapshot(
            id=self.id,
            satisfied_types=frozenset(self.satisfied_types),
            trigger_file_path=self.trigger_file_path,
            ancillary_flags=frozenset(self.ancillary_flags),
        )


class CompletenessRule:
    """When a granule is ready for dispatch.

    Supports both deployment forms:

    - a plain required-type list: complete iff every listed type was seen;
    - the list plus ancillary flags (``flag -> type``): additionally, every
      flag's type must have been seen, which sets the flag on the record.
    """

    def __init__(self, required_types: Iterable[str], ancillary_flags: Optional[Mapping[str, str]] = None):
        self.required_types = frozenset(required_types)
        self.ancillary_flags = dict(ancillary_flags or {})

    @classmethod
    def from_config(cls, config: "InternalConfig") -> "CompletenessRule":
        return cls(config.required_types, config.require_ancillary_flags)

    def flags_for(self, type_name: str) -> set:
        """Flags raised by an arrival of ``type_name``."""
        return {flag for flag, t in self.ancillary_flags.items() if t == type_name}

    def is_complete(self, record: GranuleRecord) -> bool:
        if not self.required_types <= record.satisfied_types:
            return False
        return all(flag in record.ancillary_flags for flag in self.ancillary_flags)


class GranuleAccumulator:
    """Owns the pending-granule table.

    Not thread-safe: the orchestrator drives it from a single assembler
    thread, and every other thread reaches it only by queueing events.

    Parameters
    ----------
    rule : CompletenessRule
        Completeness predicate.
    trigger_type : str
        The file type fed to stage 1; its path is recorded on the granule.
    dispatched_history : int, optional
        Number of released granule ids remembered, so late or duplicate
        arrivals cannot start a second pending record for them.
    """

    def __init__(self, rule: CompletenessRule, trigger_type: str, dispatched_history: int = 10000):
        self.rule = rule
        self.trigger_type = trigger_type
        self.dispatched_history = dispatched_history
        self._pending: Dict[str, GranuleRecord] = {}
        self._dispatched: "OrderedDict[str, None]" = OrderedDict()
        self._released = 0

    @classmethod
    def from_config(cls, config: "InternalConfig") -> "GranuleAccumulator":
        return cls(
            CompletenessRule.from_config(config),
            config.trigger_type,
            config.accumulator.dispatched_history,
        )

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def dispatched_count(self) -> int:
        """Granules released for dispatch since startup."""
        return self._released

    def pending_ids(self) -> List[str]:
        return list(self._pending)

    def get_pending(self, granule_id: str) -> Optional[GranuleSnapshot]:
        record = self._pending.get(granule_id)
        return record.snapshot() if record else None

    def discard(self, granule_id: str) -> bool:
        """Drop a pending granule without dispatching it. Returns True if it existed."""
        return self._pending.pop(granule_id, None) is not None

    def accept(self, type_name: str, granule_id: str, path: str) -> Optional[GranuleSnapshot]:
        """Apply one classified arrival.

        Parameters
        ----------
        type_name : str
            Classified file type.
        granule_id : str
            Extracted granule id.
        path : str
            Path of the arrived file.

        Returns
        -------
        GranuleSnapshot or None
            The completed granule, already removed from the pending table,
            or None while it is still pending.

        Raises
        ------
        DuplicateType
            If the type was already satisfied for this granule, or the
            granule was already released. State is unchanged.
        IdMismatch
            If routing handed the arrival to the wrong record.
        """
        if granule_id in self._dispatched:
            raise DuplicateType(granule_id, type_name, dispatched=True)

        record = self._pending.get(granule_id)
        if record is None:
            record = GranuleRecord(id=granule_id)
            self._pending[granule_id] = record
            logger.debug("New granule %s", granule_id)

        if type_name in record.satisfied_types:
            raise DuplicateType(granule_id, type_name)

        arrival = GranuleRecord(
            id=granule_id,
            satisfied_types={type_name},
            ancillary_flags=self.rule.flags_for(type_name),
            trigger_file_path=str(path) if type_name == self.trigger_type else None,
        )
        record.merge(arrival)
        logger.debug(
            "Granule %s: %s arrived (%d/%d required)",
            granule_id, type_name,
            len(record.satisfied_types & self.rule.required_types),
            len(self.rule.required_types),
        )

        if not self.rule.is_complete(record):
            return None

        del self._pending[granule_id]
        self._remember(granule_id)
        return record.snapshot()

    def _remember(self, granule_id: str) -> None:
        self._released += 1
        self._dispatched[granule_id] = None
        while len(self._dispatched) > self.dispatched_history:
            self._dispatched.popitem(last=False)
