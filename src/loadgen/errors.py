"""Error and warning taxonomy for the demand generator.

Errors are fatal for the dwelling being generated. Warnings flag conditions
that are clamped or re-derived so generation can carry on.
"""


class LoadGenError(Exception):
    """Base class for every fatal generator error."""


class ConfigurationError(LoadGenError, ValueError):
    """Invalid dwelling parameters (day of week, occupants, appliance names)."""


class DataError(LoadGenError, ValueError):
    """Malformed, missing or undersized reference data."""


class LengthMismatchError(DataError):
    """Two input series do not cover the same number of minutes."""


class CalibrationWarning(UserWarning):
    """Appliance calibration was degenerate and has been re-derived."""


class OccupancyWarning(UserWarning):
    """Occupant count exceeded the model limits and has been clamped."""
