"""
Import orchestration: spreadsheet file to upserted cafes plus an audit log.

Rows are processed strictly one at a time. A row that fails validation is
recorded as ``"Row N: ..."`` and skipped; storage failures abort the batch.
"""

from typing import Any, Iterable, Mapping

from cafe_directory.config import settings as default_settings, Settings
from cafe_directory.data.store import CafeStore
from cafe_directory.exceptions import ImportParseError, RowValidationError, UnsupportedFileTypeError
from cafe_directory.importer.field_mapping import normalize_row
from cafe_directory.importer.readers import (
    CSV_EXTENSIONS,
    EXCEL_EXTENSIONS,
    file_extension,
    read_csv_rows,
    read_excel_rows,
)
from cafe_directory.logging_config import get_logger
from cafe_directory.records import ImportOutcome

logger = get_logger(__name__)

# Spreadsheet row 1 is the header, so data row index 0 is row 2
HEADER_ROW_OFFSET = 2


class CafeImporter:
    """
    Standard import pipeline.

    Usage:
        importer = CafeImporter(store)
        outcome = importer.import_file("cafes.csv", content)
    """

    def __init__(self, store: CafeStore, app_settings: Settings | None = None):
        self.store = store
        self.settings = app_settings or default_settings

    def import_file(self, filename: str, content: bytes) -> ImportOutcome:
        """
        Read and import an uploaded file.

        Raises:
            UnsupportedFileTypeError: extension is not csv / xlsx / xls.
            DatabaseError: storage failed; the batch is aborted.
        """
        ext = file_extension(filename)
        logger.info("Processing file: %s (%d bytes, type: %s)", filename, len(content), ext)

        try:
            if ext in CSV_EXTENSIONS:
                rows = read_csv_rows(content).rows
            elif ext in EXCEL_EXTENSIONS:
                rows = read_excel_rows(content)[0].rows
            else:
                raise UnsupportedFileTypeError(filename)
            if not rows:
                raise ImportParseError(f"No data rows found in {filename}")
        except ImportParseError as e:
            logger.warning("Import of %s failed to parse: %s", filename, e.message)
            outcome = ImportOutcome.fatal(e.message)
            self._write_log(filename, outcome)
            return outcome

        return self.import_rows(rows, filename)

    def import_rows(self, rows: Iterable[Mapping[str, Any]], filename: str) -> ImportOutcome:
        """Normalize and upsert each row in order, then write the audit log."""
        outcome = ImportOutcome()
        created = 0

        for index, row in enumerate(rows):
            row_number = index + HEADER_ROW_OFFSET
            outcome.total_rows += 1
            try:
                candidate = normalize_row(
                    row,
                    row_number,
                    import_settings=self.settings.imports,
                    geo_settings=self.settings.geo,
                )
            except RowValidationError as e:
                outcome.failed_count += 1
                outcome.errors.append(e.message)
                logger.debug("Skipped %s", e.message)
                continue

            if self.store.upsert_cafe(candidate):
                created += 1
            outcome.success_count += 1

        logger.info(
            "Imported %s: %d rows, %d ok (%d new), %d failed",
            filename, outcome.total_rows, outcome.success_count, created, outcome.failed_count,
        )
        self._write_log(filename, outcome)
        return outcome

    def _write_log(self, filename: str, outcome: ImportOutcome) -> None:
        self.store.add_import_log(filename, outcome, max_errors=self.settings.imports.max_stored_errors)
