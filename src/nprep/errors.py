"""Error taxonomy for notion-prep jobs."""


class PrepError(Exception):
    """Base class for fatal job errors."""


class InputError(PrepError):
    """The uploaded notes are missing, empty or unusable."""


class InvalidArgument(PrepError, ValueError):
    """A caller passed an argument outside the accepted range."""


class IOFailure(PrepError):
    """Archive or file I/O failed. The underlying error is chained as __cause__."""
