"""Custom exceptions for extforge."""


class ExtforgeError(Exception):
    """Base class for all build errors."""
    pass


class BuildError(ExtforgeError):
    """Exception raised when a build invocation cannot continue."""
    pass


class TransformError(ExtforgeError):
    """Exception raised when an external transformation fails on an input."""

    def __init__(self, message: str, source=None, output: str = ""):
        super().__init__(message)
        self.source = source
        self.output = output


class ManifestError(ExtforgeError):
    """Exception raised when a manifest is missing or malformed."""
    pass


class PackagingError(ExtforgeError):
    """Exception raised when packaging preconditions are not met."""
    pass


class WatcherError(ExtforgeError):
    """Exception raised when the source watcher cannot be started."""
    pass
