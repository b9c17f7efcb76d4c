"""Error taxonomy for granule assembly and dispatch.

Per-file and per-granule errors are recovered locally by the thread that
observes them (logged, arrival or granule skipped). Only ConfigError is
fatal, and only at startup.
"""

from granule_watch.contracts.failure import ContractViolation


class GranuleWatchError(Exception):
    """Base class for recoverable granule_watch errors."""


class ConfigError(GranuleWatchError):
    """Malformed configuration. Fatal at startup; nothing is watched."""


class ClassificationError(GranuleWatchError):
    """A filename could not be turned into (type, granule id)."""

    def __init__(self, filename: str, message: str):
        super().__init__(f"{message}: {filename}")
        self.filename = filename


class NoPatternMatch(ClassificationError):
    """No configured file type pattern matches the filename."""

    def __init__(self, filename: str):
        super().__init__(filename, "No file type pattern matches")


class MissingIdGroup(ClassificationError):
    """A pattern matched but captured an empty granule id."""

    def __init__(self, filename: str, type_name: str):
        super().__init__(filename, f"Pattern for {type_name} captured no granule id")
        self.type_name = type_name


class DuplicateType(GranuleWatchError):
    """A file type arrived again for a granule that already has it."""

    def __init__(self, granule_id: str, type_name: str, dispatched: bool = False):
        state = "already dispatched" if dispatched else "pending"
        super().__init__(f"Duplicate {type_name} for granule {granule_id} ({state})")
        self.granule_id = granule_id
        self.type_name = type_name
        self.dispatched = dispatched


class IdMismatch(ContractViolation):
    """Two granule records with different ids were merged."""


class GateCheckFailed(GranuleWatchError):
    """The metadata inspection tool could not be run or its output not read."""


class StageFailed(GranuleWatchError):
    """An external pipeline stage failed to launch or exited non-zero."""

    def __init__(self, stage: str, granule_id: str, returncode=None, output: str = ""):
        if returncode is None:
            detail = "failed to launch"
        else:
            detail = f"exited with status {returncode}"
        super().__init__(f"Stage {stage} {detail} for granule {granule_id}")
        self.stage = stage
        self.granule_id = granule_id
        self.returncode = returncode
        self.output = output
