__all__ = [
    "GitCloneError",
    "ProtocolError",
    "TransportError",
    "InvalidPackError",
    "DeltaError",
    "MissingBaseError",
    "MissingObjectError",
    "CorruptObjectError",
]


class GitCloneError(Exception):
    """Base class for everything raised while cloning or reading objects."""


class ProtocolError(GitCloneError):
    """The ref advertisement is not valid pkt-line data."""


class TransportError(GitCloneError):
    """An HTTP request failed or returned a non-success status."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{url}: {reason}")


class InvalidPackError(GitCloneError):
    """Bad pack magic, version, object type tag or compressed payload."""


class DeltaError(GitCloneError):
    """A delta instruction stream could not be applied."""


class MissingBaseError(GitCloneError):
    """A delta's base is absent from the pack.

    Not raised: delta resolution skips such records and logs this as the reason.
    """

    def __init__(self, base_reference: str | int):
        self.base_reference = base_reference
        super().__init__(f"no base object found for {base_reference}")


class MissingObjectError(GitCloneError):
    def __init__(self, object_id: str, context: str = ""):
        self.object_id = object_id
        message = f"object {object_id} not found"
        if context:
            message += f" ({context})"
        super().__init__(message)


class CorruptObjectError(GitCloneError):
    """A loose object does not start with a '<kind> <size>\\0' header."""
