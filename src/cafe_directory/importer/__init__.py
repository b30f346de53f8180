"""Spreadsheet import: readers, field mapping, and the standard / Outscraper pipelines."""

from cafe_directory.importer.field_mapping import (
    FIELD_MAPPINGS,
    generate_slug,
    normalize_row,
    parse_array_field,
    parse_opening_hours,
)
from cafe_directory.importer.outscraper import OutscraperImporter
from cafe_directory.importer.pipeline import CafeImporter
from cafe_directory.importer.readers import SUPPORTED_EXTENSIONS, file_extension

__all__ = [
    "FIELD_MAPPINGS", "generate_slug", "normalize_row", "parse_array_field", "parse_opening_hours",
    "CafeImporter", "OutscraperImporter",
    "SUPPORTED_EXTENSIONS", "file_extension",
]
