"""
Vesting exception hierarchy for vestvault.

Every failure raised by the engine, the factory, or the reference contracts
derives from VestingError so callers can catch the whole family at once while
still distinguishing argument, authorization, state and collaborator failures.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from vestvault.core.interfaces import CallResult


class VestingError(Exception):
    """Base exception for all vesting-related errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether resubmitting the operation may succeed
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


class InvalidArgumentError(VestingError):
    """Raised when construction parameters or a lookup key are invalid.

    Examples: zero amount, null identities, cliff longer than the schedule,
    start time not in the future once the cliff is added.
    """
    pass


class UnauthorizedError(VestingError):
    """Raised when the caller does not hold the capability an operation needs."""
    pass


class InvalidStateError(VestingError):
    """Raised when an operation is not allowed in the schedule's current state."""
    pass


class ExternalCallFailureError(VestingError):
    """Raised when a collaborator (ledger, locking subsystem, signer registry) reports failure.

    The collaborator's structured result is kept on ``result`` unchanged.
    """

    def __init__(
        self,
        message: str,
        result: Optional["CallResult"] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.result = result
        if result is not None:
            self.details.setdefault("reason", result.reason)
