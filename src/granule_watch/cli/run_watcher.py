"""Core granule watch execution logic.

This module contains the actual watcher runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import argparse
import json
import logging
import signal
import sys
from typing import Any, Dict, List, Optional

from granule_watch import __version__
from granule_watch.errors import ConfigError
from granule_watch.pipeline.orchestrator import GranuleWatchOrchestrator
from granule_watch.schemas import CLIConfig, load_config
from granule_watch.setup_directories import setup_output_directories


logger = logging.getLogger(__name__)


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


def run_granule_watch(
    config_path: Optional[str],
    cli_args: Optional[Dict[str, Any]] = None,
    max_runtime: Optional[int] = None,
    verbose: bool = False
) -> GranuleWatchOrchestrator:
    """Run the granule watcher until interrupted.

    This is the core execution function. It:
    1. Loads and resolves configuration (Param < User < CLI)
    2. Sets up output directories
    3. Instantiates and starts the orchestrator
    4. Blocks until Ctrl+C, SIGTERM, or ``max_runtime``

    Parameters
    ----------
    config_path : str or None
        Path to user config file (JSON, or Python file with CONFIG dict).
        If None, expert defaults are used.
    cli_args : dict, optional
        CLI argument overrides. Keys: watch_dir, output_dir, mode,
        log_level. All optional.
    max_runtime : int, optional
        Maximum runtime in minutes. If None, runs until interrupted.
    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    Returns
    -------
    GranuleWatchOrchestrator
        The stopped orchestrator, for its statistics.

    Raises
    ------
    ConfigError
        If the configuration cannot be read or fails validation.

    Examples
    --------
    Run with CLI overrides::

        run_granule_watch(
            "config/viirs.json",
            cli_args={"watch_dir": "/data/incoming", "mode": "poll"},
            max_runtime=60
        )
    """
    cli_args = dict(cli_args or {})
    if verbose and "log_level" not in cli_args:
        cli_args["log_level"] = "DEBUG"

    # Filter None values
    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    config = load_config(config_path, cli_cfg)

    output_dirs = setup_output_directories(config.output_dir)

    print(f"\n{'='*60}")
    print(f"Granule Watch {__version__}")
    print('='*60)
    print(f"Config:   {config_path or '(defaults)'}")
    print(f"Watching: {config.watch_dir}")
    print(f"Mode:     {config.watcher.mode}")
    print(f"Required: {', '.join(sorted(config.required_types))}")
    print(f"Output:   {config.output_dir}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2))
        print('='*60)

    orchestrator = GranuleWatchOrchestrator(config, output_dirs)
    orchestrator.start(max_runtime=max_runtime)
    return orchestrator


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="granule-watch",
        description="Assemble satellite granules from incoming files and run the detection pipeline",
    )
    parser.add_argument("config", nargs="?", help="Path to user config file (.json or .py)")
    parser.add_argument("--watch-dir", help="Override directory to watch")
    parser.add_argument("--output-dir", help="Override output directory")
    parser.add_argument("--mode", choices=["push", "poll", "poll_nested"], help="Override watcher mode")
    parser.add_argument("--max-runtime", type=int, help="Max runtime in minutes")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    signal.signal(signal.SIGTERM, _raise_interrupt)

    try:
        run_granule_watch(
            args.config,
            cli_args={
                "watch_dir": args.watch_dir,
                "output_dir": args.output_dir,
                "mode": args.mode,
            },
            max_runtime=args.max_runtime,
            verbose=args.verbose,
        )
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
