"""Exception hierarchy for programming and configuration errors.

Runtime data faults (stale or future samples, a failed place-recognition
query, a rejected correction, a calibration that has not arrived yet) are
not exceptions. They are reported through return values and log records so
the localization loop keeps producing output.
"""


class LocalizationError(RuntimeError):
    """Base class for misuse of the localization API."""


class FilterNotInitializedError(LocalizationError):
    """Raised when the filter is propagated, corrected or read before init()."""


class FilterAlreadyInitializedError(LocalizationError):
    """Raised when init() is called on a filter that is already initialized."""


class ConfigurationError(ValueError):
    """Raised for unknown options or malformed configuration files."""
