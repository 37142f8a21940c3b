"""Domain-specific exceptions for POS report ingestion.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from ReportsAPIError for easy catching.
"""


class ReportsAPIError(Exception):
    """Base exception for all POS report ingestion errors.

    Users can catch this exception to handle any ingestion error.
    """

    pass


class ConfigError(ReportsAPIError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - The product rules file cannot be loaded or parsed
    - A rule declares an unknown category
    - The upload registry is malformed
    """

    pass


class DataQualityError(ReportsAPIError):
    """Raised when fact rows fail validation before they are written.

    This exception is raised when:
    - Required fact columns are missing
    - A fact carries a non-positive value
    """

    pass


class ETLError(ReportsAPIError):
    """Raised when an ingestion stage fails."""

    pass


class ExtractionError(ETLError):
    """Raised when a venue CSV cannot be fetched from the blob store.

    This exception is raised when:
    - The stored path does not exist
    - The HTTP blob store returns an error status
    """

    pass


class VenueSkipped(ETLError):
    """Raised when one venue's file cannot be ingested.

    The run continues with the remaining venues; the skip is logged and
    recorded in the run metadata.

    Attributes:
        location_id: Venue whose file was rejected.
        reason: Short machine-friendly reason (e.g. "no-product-header").
    """

    def __init__(self, location_id: str, reason: str, message: str = "") -> None:
        self.location_id = location_id
        self.reason = reason
        super().__init__(message or f"Venue {location_id} skipped: {reason}")


class FactWriteError(ETLError):
    """Raised when a batched fact write fails.

    Unlike VenueSkipped this aborts the remaining venues of the run, since
    it points to a persistence problem rather than a bad input file.
    """

    def __init__(self, location_id: str, table: str, message: str) -> None:
        self.location_id = location_id
        self.table = table
        super().__init__(message)
