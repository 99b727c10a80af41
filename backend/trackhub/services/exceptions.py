"""Service-layer exceptions.

Services raise these; only the HTTP boundary turns them into responses.
"""


class TrackHubError(Exception):
    """Base class for expected, typed failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, errors: list[str] | None = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


# --- 400 ---
class ValidationError(TrackHubError):
    """Malformed or missing input; ``errors`` carries field-level messages."""

    status_code = 400
    default_message = "Validation error"


class InvalidOperationError(TrackHubError):
    """Well-formed request that would break an invariant (e.g. removing the owner)."""

    status_code = 400
    default_message = "Invalid operation"


# --- 401 / 403 ---
class UnauthenticatedError(TrackHubError):
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(TrackHubError):
    status_code = 403
    default_message = "Insufficient permissions"


# --- 404 ---
class NotFoundError(TrackHubError):
    status_code = 404
    default_message = "Resource not found"


# --- 409 ---
class ConflictError(TrackHubError):
    """Uniqueness or in-use violation."""

    status_code = 409
    default_message = "Conflict"


# --- 500 ---
class InternalError(TrackHubError):
    status_code = 500


class InvariantViolationError(InternalError):
    """A stored aggregate was found in a state its owner must never produce."""


class CascadeIncompleteError(InternalError):
    """A cascade step failed after earlier steps were committed.

    There is no rollback; the remaining steps are idempotent and the cascade
    can be retried.
    """

    def __init__(self, operation: str, target_id: str, failed_step: str, completed_steps: list[str]):
        self.operation = operation
        self.target_id = target_id
        self.failed_step = failed_step
        self.completed_steps = completed_steps
        super().__init__(
            f"{operation} for '{target_id}' stopped at step '{failed_step}'; retry to finish"
        )
