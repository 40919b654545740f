"""Error taxonomy for the command and event pipeline."""

from typing import Any, Optional


class TaskCoreError(Exception):
    """Base class for all domain errors."""


class ValidationError(TaskCoreError):
    """Raised when a value object or command input is malformed."""

    kind = "InvalidValueObject"

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class NotFoundError(TaskCoreError):
    """Raised when a referenced aggregate or actor does not exist."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidTransitionError(TaskCoreError):
    """Raised when a status change is not permitted from the current state."""

    def __init__(self, current: Any, requested: Any) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot transition from '{_value(current)}' to '{_value(requested)}'"
        )


class PersistenceError(TaskCoreError):
    """Raised when an aggregate save or event append cannot be committed."""


class ConflictError(PersistenceError):
    """Raised when an aggregate was modified since it was loaded."""

    def __init__(self, entity: str, entity_id: Any, expected_version: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"{entity} {entity_id} was modified concurrently "
            f"(expected version {expected_version})"
        )


class HandlerError(TaskCoreError):
    """An event handler failed after its event was stored. Never fatal."""

    def __init__(
        self,
        handler_name: str,
        event_name: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.handler_name = handler_name
        self.event_name = event_name
        self.cause = cause
        super().__init__(f"Handler {handler_name} failed on {event_name}: {cause}")


def _value(obj: Any) -> Any:
    return getattr(obj, "value", obj)
