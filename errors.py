# errors.py
"""
Exception types for Miller Mitra.

Every message is meant to be shown to the user as-is. Validation errors
subclass ValueError so callers that catch ValueError keep working.
"""

from typing import Optional


class MillerMitraError(Exception):
    """Base class for application errors."""


class ValidationError(MillerMitraError, ValueError):
    """Invalid user input. Nothing was saved."""


class LiftValidationError(ValidationError):
    pass


class LogValidationError(ValidationError):
    pass


class DeliveryValidationError(ValidationError):
    pass


class ProfileError(ValidationError):
    pass


class BackupFormatError(ValidationError):
    pass


class SeasonMismatchError(ValidationError):
    """An imported order belongs to a different season than the one open."""

    def __init__(self, message: str, target_season: str):
        super().__init__(message)
        self.target_season = target_season


class ConsistencyError(ValidationError):
    """A write would break a balance computed across several records."""


class AllocationError(ConsistencyError):
    def __init__(self, message: str, do_no: Optional[str] = None, shortfall: float = 0.0):
        super().__init__(message)
        self.do_no = do_no
        self.shortfall = shortfall


class ChainValidationError(ConsistencyError):
    """Output on some day exceeds the paddy available on that day."""

    def __init__(self, date: str, output: float, available: float):
        self.date = date
        self.output = output
        self.available = available
        self.shortfall = output - available
        super().__init__(
            f"Validation Error on date {date}: Total output ({output:.3f} Qtls) exceeds "
            f"available paddy ({available:.3f} Qtls). Please check your entries."
        )


class StockError(ConsistencyError):
    pass


class ExtractionError(MillerMitraError):
    """The document extraction service failed or returned unusable data."""
