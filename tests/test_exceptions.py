"""
Tests for the exception hierarchy.

Validates that all exception classes are properly structured
and can carry relevant context information.
"""

import pytest

from cafe_directory.exceptions import (
    CafeDirectoryError,
    DatabaseError,
    DatabaseConnectionError,
    StorageNotConfiguredError,
    CafeNotFoundError,
    ImportPipelineError,
    ImportParseError,
    UnsupportedFileTypeError,
    RowValidationError,
    ValidationError,
    InvalidCoordinatesError,
    InvalidPostcodeError,
)


class TestExceptionHierarchy:
    """Tests that the exception hierarchy is correct."""

    def test_all_inherit_from_base(self):
        """All custom exceptions should inherit from CafeDirectoryError."""
        exception_classes = [
            DatabaseError,
            DatabaseConnectionError,
            StorageNotConfiguredError,
            CafeNotFoundError,
            ImportPipelineError,
            ImportParseError,
            UnsupportedFileTypeError,
            RowValidationError,
            ValidationError,
            InvalidCoordinatesError,
            InvalidPostcodeError,
        ]
        for exc_class in exception_classes:
            assert issubclass(exc_class, CafeDirectoryError), (
                f"{exc_class.__name__} should inherit from CafeDirectoryError"
            )

    def test_database_hierarchy(self):
        """Storage exceptions should inherit from DatabaseError."""
        assert issubclass(DatabaseConnectionError, DatabaseError)
        assert issubclass(StorageNotConfiguredError, DatabaseError)
        assert issubclass(CafeNotFoundError, DatabaseError)

    def test_import_hierarchy(self):
        """Import exceptions should inherit from ImportPipelineError."""
        assert issubclass(ImportParseError, ImportPipelineError)
        assert issubclass(UnsupportedFileTypeError, ImportPipelineError)
        assert issubclass(RowValidationError, ImportPipelineError)

    def test_validation_hierarchy(self):
        """Validation exceptions should inherit from ValidationError."""
        assert issubclass(InvalidCoordinatesError, ValidationError)
        assert issubclass(InvalidPostcodeError, ValidationError)


class TestExceptionDetails:
    """Tests that exceptions carry proper context."""

    def test_base_exception_with_message(self):
        """Base exception should accept a message."""
        exc = CafeDirectoryError("Something went wrong")
        assert str(exc) == "Something went wrong"
        assert exc.message == "Something went wrong"

    def test_base_exception_with_details(self):
        """Base exception should accept a details dict."""
        exc = CafeDirectoryError("Error", details={"key": "value"})
        assert exc.details == {"key": "value"}

    def test_storage_not_configured(self):
        exc = StorageNotConfiguredError("upsert_cafe")
        assert exc.message == "Database not configured"
        assert exc.details["operation"] == "upsert_cafe"

    def test_row_validation_error_message(self):
        """Row errors read "Row N: reason" so they can go straight into the report."""
        exc = RowValidationError(4, "Missing required fields")
        assert str(exc) == "Row 4: Missing required fields"
        assert exc.row_number == 4
        assert exc.reason == "Missing required fields"

    def test_unsupported_file_type(self):
        exc = UnsupportedFileTypeError("cafes.pdf")
        assert "CSV or Excel" in exc.message
        assert exc.details["filename"] == "cafes.pdf"

    def test_invalid_coordinates(self):
        exc = InvalidCoordinatesError(91.0, 0.5)
        assert exc.message == "Invalid coordinates"
        assert exc.details == {"latitude": 91.0, "longitude": 0.5}

    def test_cafe_not_found(self):
        exc = CafeNotFoundError("bean-leaf")
        assert "bean-leaf" in str(exc)
        assert exc.details["slug"] == "bean-leaf"

    def test_invalid_postcode(self):
        """InvalidPostcodeError should format the postcode in the message."""
        exc = InvalidPostcodeError("INVALID")
        assert "INVALID" in str(exc)

    def test_catch_by_parent(self):
        """Exceptions should be catchable by their parent class."""
        with pytest.raises(DatabaseError):
            raise StorageNotConfiguredError("add_import_log")
