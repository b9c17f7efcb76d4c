"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for all contracts.
"""

from granule_watch.contracts.failure import ContractViolation


def require(condition: bool, message: str, exc_type: type = ContractViolation) -> None:
    """Enforce a pipeline contract.

    Parameters
    ----------
    condition : bool
        The invariant that must be true.
    message : str
        Error message explaining the contract violation.
    exc_type : type, optional
        ContractViolation subclass to raise (default: ContractViolation).

    Raises
    ------
    ContractViolation
        If condition is False.

    Examples
    --------
    >>> require(record.id == other.id, "Merge contract: ids differ", IdMismatch)
    """
    if not condition:
        raise exc_type(message)
