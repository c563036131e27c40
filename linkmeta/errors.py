"""Exception types raised by linkmeta."""


class LinkMetaError(Exception):
    """Base class for linkmeta errors."""


class ConfigurationError(LinkMetaError):
    """Settings or rule files could not be read."""


class ProcessingError(LinkMetaError):
    """A note could not be read or written while processing links."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
