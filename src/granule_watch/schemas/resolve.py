"""Configuration loading, resolution and merging logic.

This module provides the entrypoints for configuration resolution:
resolve_config() merges ParamConfig, UserConfig, and CLIConfig in the
correct precedence order and returns a validated InternalConfig;
load_config() does the same starting from a user config file.

Precedence (highest to lowest):
1. CLIConfig (command-line overrides)
2. UserConfig (user file)
3. ParamConfig (expert defaults)
"""

import importlib.util
import json
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from granule_watch.errors import ConfigError
from granule_watch.schemas.param import ParamConfig
from granule_watch.schemas.user import UserConfig
from granule_watch.schemas.cli import CLIConfig
from granule_watch.schemas.internal import InternalConfig


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Deep merge multiple dictionaries.

    Later dictionaries override earlier ones. Nested dictionaries are
    merged recursively; other values (including lists) are replaced.

    Examples
    --------
    >>> base = {"a": 1, "b": {"c": 2, "d": 3}}
    >>> override = {"b": {"d": 4, "e": 5}, "f": 6}
    >>> deep_merge(base, override)
    {'a': 1, 'b': {'c': 2, 'd': 4, 'e': 5}, 'f': 6}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = value

    return result


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Resolve final runtime configuration from param, user, and CLI configs.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert configuration with complete defaults. Required.
    user_cfg : dict or UserConfig, optional
        User configuration with overrides.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides.

    Returns
    -------
    InternalConfig
        Fully validated, immutable runtime configuration

    Raises
    ------
    ConfigError
        If any layer fails validation or the merged result violates an
        invariant of InternalConfig.

    Examples
    --------
    >>> config = resolve_config(ParamConfig(), {"watchDir": "/data"})
    >>> config.watch_dir
    '/data'
    """
    try:
        if not isinstance(param_cfg, ParamConfig):
            param = ParamConfig.model_validate(param_cfg)
        else:
            param = param_cfg

        if user_cfg is None or (isinstance(user_cfg, dict) and not user_cfg):
            user = UserConfig()
        elif not isinstance(user_cfg, UserConfig):
            user = UserConfig.model_validate(user_cfg)
        else:
            user = user_cfg

        if cli_cfg is None or (isinstance(cli_cfg, dict) and not cli_cfg):
            cli = CLIConfig()
        elif not isinstance(cli_cfg, CLIConfig):
            cli = CLIConfig.model_validate(cli_cfg)
        else:
            cli = cli_cfg

        merged = deep_merge(
            param.model_dump(),
            user.to_internal_overrides(),
            cli.to_internal_overrides(),
        )
        return InternalConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_user_config_dict(config_path: Union[str, Path]) -> dict:
    """Load the raw user config dict from a JSON or Python file.

    JSON files hold the config object at top level. Python files must define
    a dict whose name starts with ``CONFIG``.

    Raises
    ------
    ConfigError
        If the file is missing, unreadable, or holds no config object.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")

    if path.suffix == ".py":
        spec = importlib.util.spec_from_file_location("config_module", path)
        if spec is None or spec.loader is None:
            raise ConfigError(f"Could not load config module from {path}")
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise ConfigError(f"Failed to execute config {path}: {e}") from e

        for name in dir(module):
            if name.startswith('CONFIG'):
                obj = getattr(module, name)
                if isinstance(obj, dict):
                    return obj
        raise ConfigError(f"No CONFIG dict found in {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")
    return data


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Load a user config file and resolve it against defaults and CLI overrides.

    Without a path, only the expert defaults and CLI overrides are used.
    """
    user = load_user_config_dict(config_path) if config_path else None
    return resolve_config(ParamConfig(), user, cli_cfg)
