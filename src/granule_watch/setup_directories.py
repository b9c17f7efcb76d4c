"""
Directory setup for granule_watch.

Products are written flat into the output directory so their deterministic
names (<TAG>_<granuleId>_<version>.csv) are the only key; logs go to a
``logs`` subdirectory.
"""

from pathlib import Path
from typing import Dict, Union


def setup_output_directories(output_dir: Union[str, Path]) -> Dict[str, Path]:
    """
    Set up the output directory structure.

    Parameters
    ----------
    output_dir : str or Path
        Product output directory.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'logs'
    """
    base = Path(output_dir).expanduser().resolve()

    directories = {
        "base": base,
        "logs": base / "logs",
    }

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    return directories
