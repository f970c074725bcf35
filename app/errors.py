"""Domain errors raised by the workflow layer and rendered by the API."""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(WorkflowError):
    status_code = 404


class ValidationError(WorkflowError):
    status_code = 400


class InvalidTransitionError(WorkflowError):
    """A status change that the transition table does not allow."""

    status_code = 409

    def __init__(self, entity: str, entity_id: int | None, from_status: str, to_status: str, allowed: list[str]):
        self.entity = entity
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = allowed
        allowed_text = ", ".join(allowed) if allowed else "none (terminal)"
        super().__init__(
            f"{entity} {entity_id} cannot go from '{from_status}' to '{to_status}'. "
            f"Allowed from '{from_status}': {allowed_text}"
        )


class ConcurrentUpdateError(WorkflowError):
    status_code = 409


class InsufficientStockError(WorkflowError):
    """Not enough of a part on the shelf for the requested hand-out."""

    status_code = 409
