"""
Advanced import for Outscraper Google Maps exports.

A separate, more permissive pipeline than CafeImporter: it scans every sheet
of the workbook, tolerates title rows above the header, needs only a name and
an address, and defaults the city to London. It never raises for a bad file;
everything is reported in the returned outcome.
"""

from typing import Any, Mapping

from cafe_directory.config import settings as default_settings, Settings
from cafe_directory.data.store import CafeStore
from cafe_directory.exceptions import (
    DatabaseError,
    ImportParseError,
    InvalidCoordinatesError,
    RowValidationError,
)
from cafe_directory.importer.field_mapping import (
    generate_slug,
    get_field_value,
    normalize_postcode,
    resolve_coordinates,
    to_float,
    to_int,
    to_text,
)
from cafe_directory.importer.readers import CSV_EXTENSIONS, SheetRows, file_extension, read_csv_rows, read_excel_rows
from cafe_directory.logging_config import get_logger
from cafe_directory.records import CafeCandidate, ImportOutcome

logger = get_logger(__name__)

DEFAULT_CITY = "London"

# Columns an Outscraper export carries; anything else on a stored cafe is left alone
OUTSCRAPER_FIELDS = frozenset({
    "name", "address", "postcode", "city", "area", "latitude", "longitude",
    "phone", "website", "description", "rating", "review_count",
    "amenities", "features", "price_range", "thumbnail",
})


def map_outscraper_row(row: Mapping[str, Any], row_number: int, app_settings: Settings) -> CafeCandidate:
    """
    Map one Outscraper row onto a CafeCandidate.

    Raises:
        RowValidationError: name or address missing.
    """
    name = to_text(get_field_value(row, ("name", "Name")))
    address = to_text(get_field_value(row, ("full_address", "address")))
    if not name or not address:
        raise RowValidationError(row_number, "Missing required fields: name or address")

    postcode = to_text(get_field_value(row, ("postal_code", "postcode"))) or ""
    city = to_text(get_field_value(row, ("city", "City"))) or DEFAULT_CITY

    # Out-of-range pairs are treated like missing ones here
    latitude = to_float(get_field_value(row, ("latitude", "lat")))
    longitude = to_float(get_field_value(row, ("longitude", "lng")))
    try:
        latitude, longitude, _ = resolve_coordinates(latitude, longitude, app_settings.geo)
    except InvalidCoordinatesError:
        latitude, longitude = app_settings.geo.fallback_latitude, app_settings.geo.fallback_longitude

    subtypes = to_text(row.get("subtypes"))
    category = to_text(row.get("category"))

    return CafeCandidate(
        slug=generate_slug(f"{name} {city} {postcode}"),
        name=name,
        address=address,
        postcode=normalize_postcode(postcode),
        city=city,
        area=to_text(get_field_value(row, ("borough", "area"))),
        latitude=latitude,
        longitude=longitude,
        phone=to_text(row.get("phone")),
        website=to_text(get_field_value(row, ("site", "website"))),
        description=to_text(get_field_value(row, ("about", "description"))),
        rating=to_float(row.get("rating")) or None,
        review_count=to_int(row.get("reviews")) or None,
        amenities=list(dict.fromkeys(s.strip() for s in subtypes.split(",") if s.strip())) if subtypes else [],
        features=[category] if category else [],
        price_range=to_text(row.get("price_level")),
        thumbnail=to_text(row.get("photo")),
    )


class OutscraperImporter:
    """
    Multi-sheet Outscraper import.

    Usage:
        outcome = OutscraperImporter(store).import_file("export.xlsx", content)
    """

    def __init__(self, store: CafeStore, app_settings: Settings | None = None):
        self.store = store
        self.settings = app_settings or default_settings

    def _read_sheets(self, filename: str, content: bytes) -> list[SheetRows]:
        if file_extension(filename) in CSV_EXTENSIONS:
            return [read_csv_rows(content)]
        return read_excel_rows(
            content,
            all_sheets=True,
            max_header_skip=self.settings.imports.max_header_skip,
        )

    def import_file(self, filename: str, content: bytes) -> ImportOutcome:
        logger.info("Processing file: %s (%d bytes)", filename, len(content))
        max_returned = self.settings.imports.max_returned_errors

        try:
            sheets = self._read_sheets(filename, content)
        except ImportParseError as e:
            logger.warning("Advanced import of %s failed to parse: %s", filename, e.message)
            return ImportOutcome.fatal("Failed to import file", e.message)

        outcome = ImportOutcome()
        rows: list[Mapping[str, Any]] = []
        for sheet in sheets:
            if sheet.rows:
                rows.extend(sheet.rows)
                outcome.errors.append(
                    f"Sheet {sheet.name}: Found {len(sheet.rows)} rows with {len(sheet.columns)} columns"
                )

        if not rows:
            return ImportOutcome.fatal(
                "No data found in any sheet. The file might be empty or in an unsupported format."
            )

        outcome.total_rows = len(rows)
        for index, row in enumerate(rows):
            row_number = index + 1
            try:
                candidate = map_outscraper_row(row, row_number, self.settings)
                self.store.upsert_cafe(candidate, fields=OUTSCRAPER_FIELDS)
                outcome.success_count += 1
            except RowValidationError as e:
                outcome.failed_count += 1
                outcome.errors.append(e.message)
            except DatabaseError as e:
                # Storage trouble ends the run; report what happened so far
                logger.error("Advanced import of %s aborted at row %d: %s", filename, row_number, e.message)
                outcome.failed_count = outcome.total_rows - outcome.success_count
                outcome.errors.append(f"Row {row_number}: {e.message}")
                break

        logger.info(
            "Advanced import %s: %d rows, %d ok, %d failed",
            filename, outcome.total_rows, outcome.success_count, outcome.failed_count,
        )

        try:
            self.store.add_import_log(filename, outcome, max_errors=self.settings.imports.max_stored_errors)
        except DatabaseError as e:
            logger.error("Could not write import log for %s: %s", filename, e.message)

        return outcome.model_copy(update={"errors": outcome.errors[:max_returned]})
