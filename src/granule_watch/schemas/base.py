"""Base Pydantic model with strict defaults for granule_watch configs.

All config schemas inherit from this base to ensure consistent validation
behavior across parameter, user, CLI, and internal configs.
"""

from pydantic import BaseModel, ConfigDict


class WatchBaseModel(BaseModel):
    """Base model for all granule_watch configuration schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Strips whitespace from strings
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )


_DURATION_UNITS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value):
    """Convert a duration to seconds.

    Accepts plain numbers (seconds) or strings with a unit suffix:
    ``"500ms"``, ``"15s"``, ``"2m"``, ``"1h"``. A bare numeric string is
    read as seconds.

    Examples
    --------
    >>> parse_duration("2m")
    120.0
    >>> parse_duration(3)
    3.0
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")

    text = value.strip().lower()
    for unit in ("ms", "s", "m", "h"):
        if text.endswith(unit):
            number = text[: -len(unit)].strip()
            try:
                return float(number) * _DURATION_UNITS[unit]
            except ValueError:
                raise ValueError(f"Invalid duration: {value!r}") from None
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"Invalid duration: {value!r}") from None
