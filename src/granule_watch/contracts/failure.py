"""Centralized failure type for contract violations.

Contracts fail fast and loud. All violations raise the same exception type,
allowing callers to handle pipeline bugs uniformly.
"""


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad input or a recoverable
    operational issue. It means a stage did not uphold the invariants it
    promised (e.g. a granule record routed under the wrong id).

    Key distinction:
    - ConfigError: User/config error (handled at startup)
    - ContractViolation: Pipeline bug (programmer error)
    - GranuleWatchError: Recoverable per-file or per-granule issues
    """
    pass
