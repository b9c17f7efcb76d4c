"""`granule_watch` - assembles scattered satellite granule files and dispatches processing.

Subpackages:
- granule: Filename identity, write stability, per-granule accumulation
- watch: Push (OS notification), poll and run-tree watch sources
- pipeline: Orchestrator and external pipeline dispatcher
- schemas: Layered pydantic configuration
"""

__version__ = "0.1.0"
