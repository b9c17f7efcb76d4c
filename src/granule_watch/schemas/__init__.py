"""Pydantic configuration schemas for granule_watch.

All configuration validation, coercion, and normalization happens at schema
validation time via Pydantic.

Exports
-------
resolve_config : function
    Merge param < user < CLI layers into an InternalConfig
load_config : function
    Same, starting from a JSON or Python user config file
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, camelCase aliases)
CLIConfig : class
    Command-line operational overrides
"""

from granule_watch.schemas.resolve import resolve_config, load_config
from granule_watch.schemas.internal import InternalConfig
from granule_watch.schemas.param import ParamConfig
from granule_watch.schemas.user import UserConfig
from granule_watch.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'load_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
