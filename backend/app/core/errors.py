"""Typed failures raised by the list endpoints and rendered by the handlers in app.main."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ListQueryError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ListQueryError):
    """Malformed, out-of-range or unrecognized query parameters. Carries every offending field."""

    status_code = 400
    default_message = "Validation error"

    def __init__(self, errors: list[FieldError], message: str | None = None) -> None:
        self.errors = errors
        if message is None and errors:
            message = f"{errors[0].field}: {errors[0].message}"
        super().__init__(message)


class NotFoundError(ListQueryError):
    status_code = 404
    default_message = "Not found"


class TransientStorageError(ListQueryError):
    """Connection, pool or statement timeout failure from the database. Never retried here."""

    status_code = 500


class InvariantViolation(ListQueryError):
    """A state validation should have made unreachable, e.g. an unmapped sort key."""

    status_code = 500
