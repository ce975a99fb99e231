class PropertySectionError(Exception):
    """Base class for failures reported by a section repository."""
    pass


class ResourceNotFoundError(PropertySectionError):
    """Raised when the vApp or the VDC that owns it does not exist."""
    pass


class UnauthorizedError(PropertySectionError):
    """Raised when login fails or the session may not touch the resource."""
    pass


class RemoteTimeoutError(PropertySectionError):
    """Raised when the remote task does not finish in time."""
    pass


class RemoteRejectedError(PropertySectionError):
    """Raised when the remote end refuses the change or the task fails."""
    pass


class CorruptStoreError(PropertySectionError):
    """Raised when a local store file cannot be parsed and must not be overwritten."""
    pass
