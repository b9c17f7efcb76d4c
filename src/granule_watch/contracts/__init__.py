"""Pipeline contracts - fail-fast enforcement of stage invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Per-file and per-granule errors are recovered where they occur
"""

from granule_watch.contracts.failure import ContractViolation
from granule_watch.contracts.base import require

__all__ = [
    "ContractViolation",
    "require",
]
