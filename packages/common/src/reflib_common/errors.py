"""Custom error types for the reflib system.

Per-finding remediation failures are not errors; they are reported through
the caller's diagnostic channel. These types cover conditions that should
stop a command.
"""


class ReflibError(Exception):
    """Base exception for all reflib errors."""

    pass


class StorageError(ReflibError):
    """Error reading or writing the library file."""

    pass


class RecordNotFoundError(ReflibError):
    """A requested record identifier does not exist in the library."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Reference not found: {identifier}")


class RemoteMetadataError(ReflibError):
    """Error fetching metadata from a remote provider."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")
