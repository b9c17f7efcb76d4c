"""ParamConfig: Expert defaults for granule_watch.

This module defines the complete default configuration. ALL parameters must
have defaults here. No runtime code should define fallback values - this is
the single source of truth for defaults.

The default file-type universe is the VIIRS SDR product set consumed by the
nightfire detection pipeline. Every product filename has the shape
``<PRODUCT>_<sat>_d<date>_t<start>_e<end>_b<orbit>_c<created>_<origin>_<domain>.h5``
and the granule id is the four tokens following the product name.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal
from pydantic import Field, field_validator
from granule_watch.schemas.base import WatchBaseModel, parse_duration


VIIRS_PRODUCTS = (
    "GMTCO",
    "IICMO",
    "SVDNB",
    "SVM07",
    "SVM08",
    "SVM10",
    "SVM12",
    "SVM13",
    "SVM14",
    "SVM15",
    "SVM16",
)


def default_pattern(product: str) -> str:
    """Pattern keyed on the product prefix; id is the next four tokens."""
    return rf"^{product}_(?P<id>[^_]+_[^_]+_[^_]+_[^_]+)_"


# =============================================================================
# Nested Configuration Models
# =============================================================================

class FileTypeConfig(WatchBaseModel):
    """One file type of a granule."""
    name: str = Field(..., min_length=1)
    pattern: str = Field(..., min_length=1, description="Regex with a named group 'id'")
    required: bool = True


class WatcherConfig(WatchBaseModel):
    """Watch source configuration."""
    mode: Literal["push", "poll", "poll_nested"] = "push"
    period: float = Field(15.0, gt=0, description="Polling period in seconds")
    subdirectory: str = "result"
    run_prefix: str = "NPP"
    include_existing: bool = False
    max_stability_checks: int = Field(20, ge=1, description="Re-checks of an unsettled pushed file")

    @field_validator("period", mode="before")
    @classmethod
    def coerce_period(cls, v):
        """Accept seconds or duration strings ("15s", "2m")."""
        return parse_duration(v)


class StabilityConfig(WatchBaseModel):
    """Write-stability detection configuration."""
    interval: float = Field(3.0, gt=0, description="Quiescence interval in seconds")

    @field_validator("interval", mode="before")
    @classmethod
    def coerce_interval(cls, v):
        return parse_duration(v)


class GateConfig(WatchBaseModel):
    """Data-quality gate read from the trigger file metadata."""
    enabled: bool = True
    attribute: str = "Ascending/Descending_Indicator"
    disqualify_value: str = "0"


class ProductsConfig(WatchBaseModel):
    """Output product naming and stage arguments."""
    detect_tag: str = "VNFD"
    fit_tag: str = "VNFL"
    version: str = "v2.1"
    detect_args: list[str] = ["-cloud", "0"]
    fit_args: list[str] = [
        "-plot", "1", "-map", "1", "-localmax", "1", "-size", "100", "-font", "10",
    ]


class AccumulatorConfig(WatchBaseModel):
    """Granule accumulation settings."""
    dispatched_history: int = Field(10000, ge=1, description="Dispatched ids remembered")


class OrchestratorConfig(WatchBaseModel):
    """Pipeline orchestration settings."""
    max_queue_size: int = Field(1000, ge=1)
    status_interval: float = Field(30.0, gt=0)

    @field_validator("status_interval", mode="before")
    @classmethod
    def coerce_status_interval(cls, v):
        return parse_duration(v)


class LoggingConfig(WatchBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(WatchBaseModel):
    """Expert configuration with complete defaults.

    This is the base layer for configuration resolution. User and CLI
    configs override specific values.

    Usage
    -----
        param = ParamConfig()
        internal = resolve_config(param, user_cfg, cli_cfg)
    """

    watch_dir: str = "."
    output_dir: str = "."
    detect_binary: str = "viirs_detect"
    fit_binary: str = "viirs_fit"
    metadata_binary: str = "h5dump"

    file_types: list[FileTypeConfig] = Field(
        default_factory=lambda: [
            FileTypeConfig(name=p, pattern=default_pattern(p)) for p in VIIRS_PRODUCTS
        ]
    )
    trigger_type: str = "SVM10"
    require_ancillary_flags: dict[str, str] = Field(default_factory=dict)

    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    stability: StabilityConfig = Field(default_factory=StabilityConfig)
    gate: GateConfig = Field(default_factory=GateConfig)
    products: ProductsConfig = Field(default_factory=ProductsConfig)
    accumulator: AccumulatorConfig = Field(default_factory=AccumulatorConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
