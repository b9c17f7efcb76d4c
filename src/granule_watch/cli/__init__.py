"""Command-line interface modules for granule watch execution.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from granule_watch.cli.run_watcher import main, run_granule_watch

__all__ = ['run_granule_watch', 'main']
