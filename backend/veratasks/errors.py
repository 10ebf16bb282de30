"""Error taxonomy shared by engines, services, repositories and the API layer.

  ValidationError      → input fails schema constraints (HTTP 422)
  NotFoundError        → referenced task/project id does not exist (HTTP 404)
  TransportError       → store or auth call failed for any reason (HTTP 502)
  FormatError          → import payload is malformed (HTTP 400)
  AuthenticationError  → bad credentials or unknown session (HTTP 401)

None of these are fatal to the running application; each one ends the
triggering request only.
"""

from __future__ import annotations


class VeraTasksError(Exception):
    """Base class for all application errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(VeraTasksError):
    """Raised when input data violates the task/project constraints."""

    status_code = 422

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        self.field_errors = field_errors or {}
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        """Collapse a pydantic ValidationError into one message per field."""
        field_errors: dict[str, str] = {}
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
            field_errors.setdefault(loc, err.get("msg", "invalid value"))
        fields = ", ".join(sorted(field_errors))
        return cls(f"Invalid input: {fields}", field_errors=field_errors)


class NotFoundError(VeraTasksError):
    """Raised when a task or project id is unknown to the store."""

    status_code = 404

    def __init__(self, kind: str, object_id: str) -> None:
        self.kind = kind
        self.object_id = object_id
        super().__init__(f"{kind.capitalize()} not found: {object_id}")


class TransportError(VeraTasksError):
    """Raised when a remote (or local) store call fails. Never retried."""

    status_code = 502

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class FormatError(VeraTasksError):
    """Raised when an import payload cannot be understood."""

    status_code = 400


class AuthenticationError(VeraTasksError):
    """Raised on rejected credentials or a missing/expired session."""

    status_code = 401
