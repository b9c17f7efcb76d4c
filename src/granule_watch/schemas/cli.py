"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: directories, watcher mode, verbosity.
"""

from typing import Literal, Optional
from granule_watch.schemas.base import WatchBaseModel


class CLIConfig(WatchBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(watch_dir="/data/incoming", mode="poll")
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    watch_dir: Optional[str] = None
    output_dir: Optional[str] = None
    mode: Optional[Literal["push", "poll", "poll_nested"]] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.watch_dir is not None:
            overrides["watch_dir"] = str(self.watch_dir)
        if self.output_dir is not None:
            overrides["output_dir"] = str(self.output_dir)
        if self.mode is not None:
            overrides["watcher"] = {"mode": self.mode}
        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
