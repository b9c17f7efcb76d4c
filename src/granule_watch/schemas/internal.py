"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and frozen. Cross-field invariants (unique type names, compilable
patterns with an ``id`` group, known trigger and ancillary types) are checked
here, so runtime code never re-validates.
"""

import re
from typing import Literal
from pydantic import ConfigDict, Field, model_validator

from granule_watch.schemas.base import WatchBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalFileTypeConfig(WatchBaseModel):
    """Runtime file type entry."""
    name: str
    pattern: str
    required: bool


class InternalWatcherConfig(WatchBaseModel):
    """Runtime watcher configuration."""
    mode: Literal["push", "poll", "poll_nested"]
    period: float = Field(gt=0)
    subdirectory: str
    run_prefix: str
    include_existing: bool
    max_stability_checks: int = Field(ge=1)


class InternalStabilityConfig(WatchBaseModel):
    """Runtime stability configuration."""
    interval: float = Field(gt=0)


class InternalGateConfig(WatchBaseModel):
    """Runtime gate configuration."""
    enabled: bool
    attribute: str
    disqualify_value: str


class InternalProductsConfig(WatchBaseModel):
    """Runtime product naming."""
    detect_tag: str
    fit_tag: str
    version: str
    detect_args: list[str]
    fit_args: list[str]


class InternalAccumulatorConfig(WatchBaseModel):
    """Runtime accumulator settings."""
    dispatched_history: int = Field(ge=1)


class InternalOrchestratorConfig(WatchBaseModel):
    """Runtime orchestration settings."""
    max_queue_size: int = Field(ge=1)
    status_interval: float = Field(gt=0)


class InternalLoggingConfig(WatchBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(WatchBaseModel):
    """Authoritative runtime configuration.

    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.interval = config.stability.interval  # NOT .get()

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation outside this module

    Invariants
    ----------
    - File type names are unique and non-empty.
    - Every pattern compiles and defines the named group ``id``.
    - ``trigger_type`` names a configured type, and that type is required.
    - Every ancillary flag maps to a configured type.
    """

    watch_dir: str
    output_dir: str
    detect_binary: str
    fit_binary: str
    metadata_binary: str
    file_types: list[InternalFileTypeConfig] = Field(min_length=1)
    trigger_type: str
    require_ancillary_flags: dict[str, str]
    watcher: InternalWatcherConfig
    stability: InternalStabilityConfig
    gate: InternalGateConfig
    products: InternalProductsConfig
    accumulator: InternalAccumulatorConfig
    orchestrator: InternalOrchestratorConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )

    @model_validator(mode="before")
    @classmethod
    def require_trigger_type(cls, data):
        """The trigger file feeds stage 1, so its type is always required."""
        if not isinstance(data, dict):
            return data
        trigger = data.get("trigger_type")
        types = data.get("file_types") or []
        patched = []
        for ft in types:
            if isinstance(ft, dict) and ft.get("name") == trigger and not ft.get("required", True):
                ft = {**ft, "required": True}
            patched.append(ft)
        return {**data, "file_types": patched}

    @model_validator(mode="after")
    def check_type_universe(self):
        names = [ft.name for ft in self.file_types]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate file type names: {duplicates}")

        for ft in self.file_types:
            try:
                compiled = re.compile(ft.pattern)
            except re.error as e:
                raise ValueError(f"Invalid pattern for {ft.name}: {e}") from None
            if "id" not in compiled.groupindex:
                raise ValueError(f"Pattern for {ft.name} has no named group 'id'")

        if self.trigger_type not in names:
            raise ValueError(f"Trigger type {self.trigger_type!r} is not a configured file type")

        unknown = {flag: t for flag, t in self.require_ancillary_flags.items() if t not in names}
        if unknown:
            raise ValueError(f"Ancillary flags reference unknown file types: {unknown}")

        return self

    @property
    def required_types(self) -> frozenset:
        """Names of the types a granule must have before dispatch."""
        return frozenset(ft.name for ft in self.file_types if ft.required)
