"""Exceptions raised by the collection store, forms and remote access."""


class GameBinError(Exception):
    """Base class for all GameBin errors."""
    pass


class UnknownCollection(GameBinError):
    """Raised when a collection name has no registered definition."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown collection: {name}")


class DuplicateId(GameBinError):
    """Raised when a record id already exists in the collection."""

    def __init__(self, collection: str, item_id: object):
        self.collection = collection
        self.item_id = item_id
        super().__init__(f"Item with ID {item_id} already exists in {collection}")


class NotFound(GameBinError):
    """Raised when no record in the collection has the requested id."""

    def __init__(self, collection: str, item_id: object):
        self.collection = collection
        self.item_id = item_id
        super().__init__(f"Item with ID {item_id} not found in {collection}")


class InvalidImport(GameBinError):
    """Raised when an import payload is not a JSON array of records."""
    pass


class UnsupportedFormat(GameBinError):
    """Raised when an export format token is not recognised."""

    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"Unsupported export format: {fmt}")


class InvalidOperation(GameBinError):
    """Raised when a bulk operation or filter criteria is malformed."""
    pass


class PermissionDenied(GameBinError):
    """Raised when the access policy refuses a mutating operation."""

    def __init__(self, permission: str):
        self.permission = permission
        super().__init__(f"Permission '{permission}' is required")


class ValidationFailed(GameBinError):
    """Raised when submitted form values fail validation.

    Attributes:
        errors: Field path to the ordered list of messages for that field.
    """

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Validation failed for: {fields}")


class RemoteError(GameBinError):
    """Base class for failures talking to the remote document store."""
    pass


class RateLimitExceeded(RemoteError):
    """Raised when the hourly remote call ceiling has been reached."""

    def __init__(self, limit: int, retry_after: float):
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(f"API limit reached ({limit}/hour). Please wait.")


class RemoteRequestFailed(RemoteError):
    """Raised on a non-2xx response or a transport failure."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
