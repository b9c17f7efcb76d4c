"""Pipeline modules.

- orchestrator: Main pipeline controller
- assembler: Single-writer granule assembly thread
- dispatcher: Gate check and external detect/fit stages
"""

from granule_watch.pipeline.orchestrator import GranuleWatchOrchestrator
from granule_watch.pipeline.assembler import GranuleAssembler
from granule_watch.pipeline.dispatcher import DispatchOutcome, Dispatcher

__all__ = [
    "GranuleWatchOrchestrator",
    "GranuleAssembler",
    "DispatchOutcome",
    "Dispatcher",
]
