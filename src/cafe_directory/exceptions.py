"""
Custom exception hierarchy for the Cafe Directory.

Provides specific exception types for each subsystem,
enabling targeted error handling throughout the application.
"""


class CafeDirectoryError(Exception):
    """Base exception for all Cafe Directory errors."""

    def __init__(self, message: str = "", details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# --- Database Exceptions ---


class DatabaseError(CafeDirectoryError):
    """Base exception for storage errors."""
    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when the database connection fails."""
    pass


class StorageNotConfiguredError(DatabaseError):
    """Raised by the null store when a write is attempted without a database."""

    def __init__(self, operation: str = ""):
        super().__init__(
            message="Database not configured",
            details={"operation": operation} if operation else {},
        )


class CafeNotFoundError(DatabaseError):
    """Raised when a cafe slug does not exist."""

    def __init__(self, slug: str):
        super().__init__(
            message=f"Cafe '{slug}' not found",
            details={"slug": slug},
        )


# --- Import Exceptions ---


class ImportPipelineError(CafeDirectoryError):
    """Base exception for spreadsheet import errors."""
    pass


class ImportParseError(ImportPipelineError):
    """Raised when a spreadsheet cannot be read or holds no data rows. Batch-fatal."""
    pass


class UnsupportedFileTypeError(ImportPipelineError):
    """Raised when the uploaded file is not CSV, XLSX or XLS."""

    def __init__(self, filename: str):
        super().__init__(
            message="Invalid file type. Please upload a CSV or Excel file.",
            details={"filename": filename},
        )


class RowValidationError(ImportPipelineError):
    """Raised when a single spreadsheet row cannot become a cafe. Row-local."""

    def __init__(self, row_number: int, reason: str):
        self.row_number = row_number
        self.reason = reason
        super().__init__(
            message=f"Row {row_number}: {reason}",
            details={"row": row_number},
        )


# --- Validation Exceptions ---


class ValidationError(CafeDirectoryError):
    """Base exception for input validation errors."""
    pass


class InvalidCoordinatesError(ValidationError):
    """Raised when a latitude/longitude pair is out of range."""

    def __init__(self, latitude: float, longitude: float):
        super().__init__(
            message="Invalid coordinates",
            details={"latitude": latitude, "longitude": longitude},
        )


class InvalidPostcodeError(ValidationError):
    """Raised when a postcode format is invalid."""

    def __init__(self, postcode: str):
        super().__init__(
            message=f"Invalid UK postcode format: '{postcode}'",
            details={"postcode": postcode},
        )
