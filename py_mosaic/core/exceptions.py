"""Exception types raised by the tessellation engine."""


class MosaicError(Exception):
    """Base class for all py_mosaic errors."""


class InvalidInputError(MosaicError, ValueError):
    """Raised when a caller passes arguments that cannot be interpreted."""


class TessellationError(MosaicError):
    """Raised when a tessellation is required but cannot be generated."""
