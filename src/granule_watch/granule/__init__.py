"""Granule assembly modules.

- identity: Filename -> (file type, granule id)
- stability: Write-completion detection
- accumulator: Per-granule state and completeness
"""

from granule_watch.granule.identity import FileTypeSpec, IdentityExtractor, build_file_type_specs
from granule_watch.granule.stability import StabilityDetector
from granule_watch.granule.accumulator import (
    CompletenessRule,
    GranuleAccumulator,
    GranuleRecord,
    GranuleSnapshot,
)

__all__ = [
    "FileTypeSpec",
    "IdentityExtractor",
    "build_file_type_specs",
    "StabilityDetector",
    "CompletenessRule",
    "GranuleAccumulator",
    "GranuleRecord",
    "GranuleSnapshot",
]
