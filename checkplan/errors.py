"""Exception types raised by the scheduling engine.

Hierarchy:
    CheckplanError (base)
    ├── NotFound - a check, device or plan is absent
    ├── ValidationError - missing/malformed input
    │   └── InvalidTransition - check is not in a state that allows the operation
    └── StorageError - the underlying key-value store failed

None of these are recovered inside the engine; the HTTP and CLI edges
translate them for the caller.
"""

from __future__ import annotations

from typing import Any


class CheckplanError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context (entity, field, key) for the caller.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class NotFound(CheckplanError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            f"{entity.capitalize()} not found",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(CheckplanError):
    """Input failed validation."""

    def __init__(self, message: str, field: str | None = None, **details: Any) -> None:
        if field is not None:
            details = {"field": field, **details}
        super().__init__(message, details=details)
        self.field = field


class InvalidTransition(ValidationError):
    """A check lifecycle transition that is not permitted (e.g. completing twice)."""


class StorageError(CheckplanError):
    """The key-value store call failed. Always fatal to the calling operation."""

    def __init__(self, operation: str, key: str | None = None, cause: BaseException | None = None) -> None:
        details: dict[str, Any] = {"operation": operation}
        if key is not None:
            details["key"] = key
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"
        super().__init__("Storage operation failed", details=details)
        self.operation = operation
        self.key = key
