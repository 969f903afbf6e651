"""
Platform-wide exception hierarchy.

Services raise these types; the Flask error handlers registered in
``taskboard.create_app`` map them to HTTP responses once.

Usage:
    from taskboard.core.exceptions import DataAccessError, WorkflowError

    raise DataAccessError("Story", {"id": 42}, cause=exc)
    raise WorkflowError("fetch_story", origin) from origin
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist.

    Args:
        resource: Human-readable record name (e.g. "Story", "Task").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when caller input is missing or malformed.

    Maps to HTTP 400 in the error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown; keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class AccessDeniedError(Exception):
    """Raised by an AccessControl collaborator when a user may not see a story."""

    def __init__(self, user_id: int | None, resource_id: int | None = None) -> None:
        self.user_id = user_id
        self.resource_id = resource_id
        super().__init__(f"User {user_id} has no access to story {resource_id}")


class DataAccessError(Exception):
    """Read failure in a DataAccess collaborator.

    Args:
        entity: Record name that was being read.
        where: The filter (or id) the read was issued with.
        cause: Underlying exception, if any. Also chained via ``raise ... from``.
    """

    def __init__(self, entity: str, where=None, cause: BaseException | None = None) -> None:
        self.entity = entity
        self.where = where
        self.cause = cause
        msg = f"Failed to read {entity} where={where!r}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


class PersistenceError(Exception):
    """Write failure in a Persistence collaborator."""

    def __init__(self, operation: str, entity: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.entity = entity
        self.cause = cause
        msg = f"Failed to {operation} {entity}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


class WorkflowError(Exception):
    """Single error surfaced to the caller of a workflow.

    Wraps whichever ``DataAccessError`` / ``PersistenceError`` (or other
    failure) stopped the workflow, together with the stage it stopped in.
    """

    def __init__(self, stage: str, origin: BaseException) -> None:
        self.stage = stage
        self.origin = origin
        super().__init__(f"Workflow failed at {stage}: {origin}")

    @property
    def is_not_found(self) -> bool:
        """True when the originating read failed because the record is missing."""
        err = self.origin
        while err is not None:
            if isinstance(err, NotFoundError):
                return True
            err = getattr(err, "cause", None) or err.__cause__
        return False
