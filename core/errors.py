class DatabaseUnavailableError(Exception):
    """Raised when a request cannot obtain a database connection."""


class FormValidationError(Exception):
    """Field-level validation failure; `errors` maps field name -> message."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("Validation failed")
        self.errors = errors


class ConflictError(Exception):
    """Write rejected because it would break a uniqueness or assignment rule."""


class NotFoundError(Exception):
    """A referenced row does not exist; answered with 404."""
