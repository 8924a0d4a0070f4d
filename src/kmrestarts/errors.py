class KMeansError(Exception):
    """Base class for everything kmrestarts raises on purpose."""


class ConfigurationError(KMeansError, ValueError):
    """k, restart count, method or thread count outside the configured bounds."""


class InputError(KMeansError):
    """Point source unreadable, a record malformed, or nothing loaded."""

    def __init__(self, message, row=None, feature=None):
        super().__init__(message)
        self.row = row
        self.feature = feature
