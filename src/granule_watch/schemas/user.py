"""UserConfig: Forgiving, minimal user-facing configuration.

Accepts the camelCase keys of the deployment JSON files (``watchDir``,
``requiredTypes``, ``requireAncillaryFlags``, ...) as well as the snake_case
field names. Users only specify what they want to override from the expert
defaults; unknown legacy keys are ignored.
"""

from typing import Any, Literal, Optional
from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from granule_watch.schemas.base import WatchBaseModel, parse_duration


_USER_MODEL_CONFIG = ConfigDict(
    extra='ignore',
    validate_assignment=True,
    str_strip_whitespace=True,
    alias_generator=to_camel,
    populate_by_name=True,
)

_LEGACY_RENAMES = (
    ("WatchDir", "watchDir"),
    ("OutputDir", "outputDir"),
    ("DetectBinary", "detectBinary"),
    ("FitBinary", "fitBinary"),
)
_LEGACY_KEYS = ("RequireBands", "RequireGMTCO", "RequireIICMO") + tuple(legacy for legacy, _ in _LEGACY_RENAMES)


class UserFileTypeConfig(WatchBaseModel):
    """User-facing file type entry."""
    model_config = _USER_MODEL_CONFIG

    name: str
    pattern: str
    required: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v):
        """Type names are matched case-sensitively; strip stray whitespace only."""
        if isinstance(v, str):
            return v.strip()
        return v


class UserWatcherConfig(WatchBaseModel):
    """User-facing watcher config."""
    model_config = _USER_MODEL_CONFIG

    mode: Optional[str] = None
    period: Optional[float] = None
    subdirectory: Optional[str] = None
    run_prefix: Optional[str] = None
    include_existing: Optional[bool] = None
    max_stability_checks: Optional[int] = None

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        """Normalize mode names ("Poll-Nested" -> "poll_nested")."""
        if isinstance(v, str):
            return v.lower().strip().replace("-", "_")
        return v

    @field_validator("period", mode="before")
    @classmethod
    def coerce_period(cls, v):
        if v is not None:
            return parse_duration(v)
        return v


class UserStabilityConfig(WatchBaseModel):
    """User-facing stability config."""
    model_config = _USER_MODEL_CONFIG

    interval: Optional[float] = None

    @field_validator("interval", mode="before")
    @classmethod
    def coerce_interval(cls, v):
        if v is not None:
            return parse_duration(v)
        return v


class UserGateConfig(WatchBaseModel):
    """User-facing gate config."""
    model_config = _USER_MODEL_CONFIG

    enabled: Optional[bool] = None
    attribute: Optional[str] = None
    disqualify_value: Optional[str] = None


class UserProductsConfig(WatchBaseModel):
    """User-facing product naming config."""
    model_config = _USER_MODEL_CONFIG

    detect_tag: Optional[str] = None
    fit_tag: Optional[str] = None
    version: Optional[str] = None
    detect_args: Optional[list[str]] = None
    fit_args: Optional[list[str]] = None


class UserAccumulatorConfig(WatchBaseModel):
    """User-facing accumulator config."""
    model_config = _USER_MODEL_CONFIG

    dispatched_history: Optional[int] = None


class UserOrchestratorConfig(WatchBaseModel):
    """User-facing orchestration config."""
    model_config = _USER_MODEL_CONFIG

    max_queue_size: Optional[int] = None
    status_interval: Optional[float] = None

    @field_validator("status_interval", mode="before")
    @classmethod
    def coerce_status_interval(cls, v):
        if v is not None:
            return parse_duration(v)
        return v


class UserLoggingConfig(WatchBaseModel):
    """User-facing logging config."""
    model_config = _USER_MODEL_CONFIG

    level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v


class UserConfig(WatchBaseModel):
    """User-facing configuration schema.

    Mirrors the logical schema of the deployment JSON file::

        {
            "watchDir": "/data/incoming",
            "outputDir": "/data/output",
            "detectBinary": "/opt/vnf/bin/vnf_detect",
            "fitBinary": "/opt/vnf/bin/vnf_fit",
            "requiredTypes": [
                {"name": "SVM10", "pattern": "^SVM10_(?P<id>...)_", "required": true}
            ],
            "requireAncillaryFlags": {"gmtco": "GMTCO"},
            "watcher": {"mode": "poll", "period": "15s", "subdirectory": "result"}
        }

    This config is converted to internal overrides during resolution.
    """

    model_config = _USER_MODEL_CONFIG

    watch_dir: Optional[str] = None
    output_dir: Optional[str] = None
    detect_binary: Optional[str] = None
    fit_binary: Optional[str] = None
    metadata_binary: Optional[str] = None

    file_types: Optional[list[UserFileTypeConfig]] = Field(None, alias="requiredTypes")
    trigger_type: Optional[str] = None
    require_ancillary_flags: Optional[dict[str, str]] = None

    # Flat shortcuts
    mode: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    # Nested overrides
    watcher: Optional[UserWatcherConfig] = None
    stability: Optional[UserStabilityConfig] = None
    gate: Optional[UserGateConfig] = None
    products: Optional[UserProductsConfig] = None
    accumulator: Optional[UserAccumulatorConfig] = None
    orchestrator: Optional[UserOrchestratorConfig] = None
    logging: Optional[UserLoggingConfig] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any):
        """Translate the legacy ``RequireBands``/``RequireGMTCO``/``RequireIICMO`` keys.

        Older deployments listed band names and two ancillary booleans instead
        of typed patterns, and spelled directories and binaries in PascalCase.
        The bands become required types with the default VIIRS pattern; each
        true boolean becomes an ancillary flag. Without ``RequireBands`` the
        default type universe is kept and only the flags are added.
        """
        if not isinstance(data, dict) or not any(key in data for key in _LEGACY_KEYS):
            return data

        from granule_watch.schemas.param import default_pattern

        data = dict(data)
        types = None
        if "RequireBands" in data:
            bands = list(data.pop("RequireBands") or [])
            trigger = data.get("triggerType", data.get("trigger_type", "SVM10"))
            if trigger not in bands:
                bands.append(trigger)
            types = [{"name": b, "pattern": default_pattern(b), "required": True} for b in bands]

        flags = {}
        for key, product in (("RequireGMTCO", "GMTCO"), ("RequireIICMO", "IICMO")):
            if data.pop(key, False):
                if types is not None:
                    types.append({"name": product, "pattern": default_pattern(product), "required": False})
                flags[product.lower()] = product
        if types is not None:
            data.setdefault("requiredTypes", types)
        if flags:
            data.setdefault("requireAncillaryFlags", flags)

        for legacy, key in _LEGACY_RENAMES:
            if legacy in data:
                value = data.pop(legacy)
                data.setdefault(key, value)
        return data

    def to_internal_overrides(self) -> dict:
        """Convert UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = self.model_dump(
            exclude_none=True,
            exclude={"mode", "log_level", "file_types", "watcher", "stability", "gate", "products",
                     "accumulator", "orchestrator", "logging"},
        )

        if self.file_types is not None:
            overrides["file_types"] = [ft.model_dump() for ft in self.file_types]

        for section in ("watcher", "stability", "gate", "products", "accumulator", "orchestrator", "logging"):
            value = getattr(self, section)
            if value is not None:
                dumped = value.model_dump(exclude_none=True)
                if dumped:
                    overrides[section] = dumped

        if self.mode is not None:
            overrides.setdefault("watcher", {})["mode"] = self.mode.lower().replace("-", "_")

        if self.log_level is not None:
            overrides.setdefault("logging", {})["level"] = self.log_level

        return overrides
