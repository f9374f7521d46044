"""Custom exception hierarchy for QueryKit.

All public errors inherit from QueryKitError so callers can catch the base
class for any QueryKit-specific failure.  Errors raised by a database
executor are never wrapped; they reach the caller unchanged.
"""
from __future__ import annotations


class QueryKitError(Exception):
    """Base exception for all QueryKit errors."""


class ConfigurationError(QueryKitError):
    """Raised when the process-wide configuration cannot serve a request."""


class NoExecutorConfiguredError(ConfigurationError):
    """Raised when no executor is registered for the target table.

    Args:
        table: The table the builder targets.
        banks: Database names requested via ``QueryBuilder.bank``, if any.
        capability: Optional executor method that was required but missing
            (e.g. ``"execute_query_sync"``).
    """

    def __init__(
        self,
        table: str,
        banks: list[str] | None = None,
        capability: str | None = None,
    ) -> None:
        message = "No executor configured for QueryKit"
        if capability:
            message += f" (executor lacks '{capability}')"
        super().__init__(message)
        self.table = table
        self.banks = banks or []
        self.capability = capability


class UnknownDatabaseError(ConfigurationError):
    """Raised when a multi-database registry has no adapter for a name."""

    def __init__(self, name: str, registered: list[str]) -> None:
        super().__init__(f"Database '{name}' not found. Registered: {registered}.")
        self.name = name
        self.registered = registered


class QueryStateError(QueryKitError):
    """Raised when a builder's pending-action state does not allow a call."""


class NoPendingActionError(QueryStateError):
    """Raised when ``make()`` is called without a queued write action."""

    def __init__(self) -> None:
        super().__init__(
            "No pending write action to execute. "
            "Call insert(), update(), or delete() before .make()"
        )


class MissingWhereClauseError(QueryStateError):
    """Raised when a destructive action is executed without any WHERE clause.

    Args:
        action: The pending action type (``update``, ``delete``, ...).
    """

    def __init__(self, action: str) -> None:
        noun = "Delete" if action == "delete" else "Update"
        super().__init__(f"{noun} operations must have a WHERE clause.")
        self.action = action


class UnsupportedPendingActionError(QueryStateError):
    """Raised when the stored pending action has an unknown type."""

    def __init__(self, action: str) -> None:
        super().__init__(f"Unsupported pending action: {action}")
        self.action = action


class CompilationError(QueryKitError):
    """Raised when SQL compilation fails for an unexpected reason.

    Args:
        message: Human-readable description.
        clause: The descriptor clause being compiled when the error occurred.
    """

    def __init__(self, message: str, clause: str | None = None) -> None:
        super().__init__(message)
        self.clause = clause


class UnsupportedWhereClauseTypeError(CompilationError):
    """Raised when a predicate record carries an unknown ``type`` tag."""

    def __init__(self, clause_type: str, clause: str = "WHERE") -> None:
        super().__init__(f"Unsupported where clause type: '{clause_type}'.", clause=clause)
        self.clause_type = clause_type
