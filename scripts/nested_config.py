"""Granule Watch user configuration for a root-of-runs layout.

Each processing run lands in its own ``NPP*`` directory under the watch
directory, with the SDR products written later into ``<run>/result``.

Usage:
    python scripts/run_granule_watch.py scripts/nested_config.py
    python scripts/run_granule_watch.py scripts/nested_config.py --watch-dir /data/runs
"""

CONFIG = {
    # ========================================================================
    # DIRECTORIES & TOOLS
    # ========================================================================
    "watchDir": "/data/viirs/runs",
    "outputDir": "/data/viirs/vnf",
    "detectBinary": "/opt/vnf/bin/viirs_detect",
    "fitBinary": "/opt/vnf/bin/viirs_fit",

    # ========================================================================
    # WATCHER
    # ========================================================================
    "watcher": {
        "mode": "poll_nested",
        "period": "15s",          # Root and run directory poll period
        "subdirectory": "result",  # Products land in <run>/result
        "runPrefix": "NPP",        # Only directories named NPP* are runs
    },
    "stability": {"interval": "3s"},

    # ========================================================================
    # GATE
    # ========================================================================
    # Skip granules whose trigger file is ascending-only (daytime)
    "gate": {"enabled": True, "attribute": "Ascending/Descending_Indicator", "disqualifyValue": "0"},

    "logLevel": "INFO",
}
