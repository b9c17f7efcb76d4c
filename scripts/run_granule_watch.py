#!/usr/bin/env python3
"""Granule Watch runner.

Usage:
    python scripts/run_granule_watch.py scripts/user_config.json
    python scripts/run_granule_watch.py scripts/user_config.json --watch-dir /data/incoming
    python scripts/run_granule_watch.py scripts/nested_config.py --mode poll_nested

Note: User config in scripts/, expert defaults in granule_watch.schemas.param
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from granule_watch.cli.run_watcher import main


if __name__ == "__main__":
    sys.exit(main())
