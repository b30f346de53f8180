"""
Tests for the standard import pipeline and the Outscraper variant.
"""

import io
from unittest.mock import MagicMock

import pandas as pd
import pytest

from cafe_directory.config import ImportSettings, Settings
from cafe_directory.data.store import NullCafeStore
from cafe_directory.exceptions import (
    DatabaseError,
    RowValidationError,
    StorageNotConfiguredError,
    UnsupportedFileTypeError,
)
from cafe_directory.importer import CafeImporter, OutscraperImporter
from cafe_directory.importer.outscraper import map_outscraper_row
from cafe_directory.records import ImportStatus, SearchCriteria

CSV_HEADER = "name,address,postcode,latitude,longitude,rating,amenities\n"


def csv_bytes(*lines: str) -> bytes:
    return (CSV_HEADER + "".join(line + "\n" for line in lines)).encode("utf-8")


class TestCafeImporter:
    """Tests for CafeImporter."""

    def test_all_rows_imported(self, store):
        content = csv_bytes(
            'Bean & Leaf,"12 Broadway, Leigh-on-Sea, SS9 1AA",SS9 1AA,51.5411,0.6529,4.6,"WiFi, Parking"',
            'Harbour Coffee,"3 High St, Southend-on-Sea, SS1 1AA",SS1 1AA,51.5378,0.7141,4.2,WiFi',
        )
        outcome = CafeImporter(store).import_file("cafes.csv", content)

        assert outcome.success is True
        assert outcome.status is ImportStatus.SUCCESS
        assert (outcome.total_rows, outcome.success_count, outcome.failed_count) == (2, 2, 0)
        assert store.count_all() == 2
        assert store.get_by_slug("bean-leaf-leigh-on-sea-ss9-1aa").amenities == ["WiFi", "Parking"]

    def test_bad_row_is_skipped(self, store):
        content = csv_bytes(
            ',"12 Broadway, Leigh-on-Sea",SS9 1AA,51.5411,0.6529,,',
            'Harbour Coffee,"3 High St, Southend-on-Sea",SS1 1AA,51.5378,0.7141,,',
        )
        outcome = CafeImporter(store).import_file("cafes.csv", content)

        assert outcome.success is False
        assert outcome.status is ImportStatus.PARTIAL
        assert (outcome.success_count, outcome.failed_count) == (1, 1)
        # header is spreadsheet row 1
        assert outcome.errors[0].startswith("Row 2: Missing required fields")
        assert store.count_all() == 1

    def test_zero_coordinates_fall_back(self, store):
        content = csv_bytes('Bean & Leaf,"12 Broadway, Leigh-on-Sea",SS9 1AA,0,0,,')
        CafeImporter(store).import_file("cafes.csv", content)

        [cafe] = store.find_candidates(SearchCriteria(), limit=10)
        assert (cafe.latitude, cafe.longitude) == (51.5074, -0.1278)

    def test_reimport_overwrites(self, store):
        CafeImporter(store).import_file("v1.csv", csv_bytes('Bean & Leaf,"12 Broadway, Leigh-on-Sea",SS9 1AA,51.54,0.65,3.5,'))
        CafeImporter(store).import_file("v2.csv", csv_bytes('Bean & Leaf,"12 Broadway, Leigh-on-Sea",SS9 1AA,51.54,0.65,4.7,'))

        assert store.count_all() == 1
        [cafe] = store.find_candidates(SearchCriteria(), limit=10)
        assert cafe.rating == 4.7

    def test_audit_log_written(self, store):
        content = csv_bytes(*[',"Nowhere",SS9 1AA,,,,' for _ in range(12)])
        outcome = CafeImporter(store).import_file("broken.csv", content)

        assert outcome.failed_count == 12
        assert len(outcome.errors) == 12
        [log] = store.list_import_logs()
        assert log.status is ImportStatus.FAILED
        assert len(log.errors) == 10

    def test_excel_upload(self, store):
        buffer = io.BytesIO()
        pd.DataFrame({
            "Name": ["Bean & Leaf"],
            "Address": ["12 Broadway, Leigh-on-Sea"],
            "Postcode": ["SS9 1AA"],
            "Latitude": [51.5411],
            "Longitude": [0.6529],
            "Monday": ["8:00-16:00"],
        }).to_excel(buffer, index=False, engine="openpyxl")

        outcome = CafeImporter(store).import_file("cafes.xlsx", buffer.getvalue())

        assert outcome.success_count == 1
        [cafe] = store.find_candidates(SearchCriteria(), limit=10)
        assert cafe.opening_hours["monday"].close == "16:00"

    def test_unsupported_extension(self, store):
        with pytest.raises(UnsupportedFileTypeError):
            CafeImporter(store).import_file("cafes.pdf", b"%PDF")

    def test_header_only_file_is_fatal(self, store):
        outcome = CafeImporter(store).import_file("empty.csv", CSV_HEADER.encode())

        assert outcome.success is False
        assert outcome.total_rows == 0
        assert outcome.errors == ["No data rows found in empty.csv"]
        assert store.list_import_logs()[0].status is ImportStatus.FAILED

    def test_storage_failure_aborts(self):
        store = MagicMock()
        store.upsert_cafe.side_effect = DatabaseError("Database write failed")
        with pytest.raises(DatabaseError):
            CafeImporter(store).import_file("cafes.csv", csv_bytes('Bean,"1 Road, Leigh",SS9 1AA,51.5,0.6,,'))
        store.add_import_log.assert_not_called()

    def test_null_store_refuses(self):
        with pytest.raises(StorageNotConfiguredError):
            CafeImporter(NullCafeStore()).import_file("cafes.csv", csv_bytes('Bean,"1 Road, Leigh",SS9 1AA,51.5,0.6,,'))


def outscraper_workbook(sheets: dict[str, pd.DataFrame], title_rows: int = 0) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False, startrow=title_rows)
    return buffer.getvalue()


OUTSCRAPER_ROW = {
    "name": "Harbour Coffee",
    "full_address": "3 High St, Southend-on-Sea SS1 1AA",
    "postal_code": "ss1 1aa",
    "city": "Southend-on-Sea",
    "borough": "Central",
    "latitude": 51.5378,
    "longitude": 0.7141,
    "rating": 4.4,
    "reviews": 210,
    "subtypes": "Coffee shop, Cafe, Coffee shop",
    "category": "Coffee shop",
    "site": "https://harbour.example",
    "photo": "https://img.example/harbour.jpg",
}


class TestMapOutscraperRow:
    """Tests for the Outscraper row mapping."""

    def test_full_row(self):
        cafe = map_outscraper_row(OUTSCRAPER_ROW, 1, Settings())
        assert cafe.slug == "harbour-coffee-southend-on-sea-ss1-1aa"
        assert cafe.postcode == "SS1 1AA"
        assert cafe.area == "Central"
        assert cafe.amenities == ["Coffee shop", "Cafe"]
        assert cafe.features == ["Coffee shop"]
        assert cafe.review_count == 210
        assert cafe.thumbnail == "https://img.example/harbour.jpg"

    def test_defaults(self):
        cafe = map_outscraper_row({"name": "Pop-up", "address": "Market Sq"}, 4, Settings())
        assert cafe.city == "London"
        assert cafe.postcode == ""
        assert (cafe.latitude, cafe.longitude) == (51.5074, -0.1278)

    def test_out_of_range_coordinates_fall_back(self):
        row = dict(OUTSCRAPER_ROW, latitude=123.0)
        cafe = map_outscraper_row(row, 1, Settings())
        assert (cafe.latitude, cafe.longitude) == (51.5074, -0.1278)

    def test_requires_name_and_address(self):
        with pytest.raises(RowValidationError, match="Row 9: Missing required fields: name or address"):
            map_outscraper_row({"name": "No Address"}, 9, Settings())


class TestOutscraperImporter:
    """Tests for the multi-sheet advanced import."""

    def test_all_sheets_imported(self, store):
        content = outscraper_workbook({
            "Essex": pd.DataFrame([OUTSCRAPER_ROW]),
            "London": pd.DataFrame([dict(OUTSCRAPER_ROW, name="Soho Roasters", city="London", postal_code="W1D 3AA")]),
        })
        outcome = OutscraperImporter(store).import_file("export.xlsx", content)

        assert outcome.success is True
        assert (outcome.total_rows, outcome.success_count) == (2, 2)
        assert outcome.errors[0].startswith("Sheet Essex: Found 1 rows with")
        assert store.count_all() == 2

    def test_title_block_skipped(self, store):
        content = outscraper_workbook({"Export": pd.DataFrame([OUTSCRAPER_ROW])}, title_rows=3)
        outcome = OutscraperImporter(store).import_file("export.xlsx", content)
        assert outcome.success_count == 1

    def test_row_numbers_start_at_one(self, store):
        content = outscraper_workbook({"Export": pd.DataFrame([{"name": "Nameless", "full_address": ""}])})
        outcome = OutscraperImporter(store).import_file("export.xlsx", content)
        assert "Row 1: Missing required fields: name or address" in outcome.errors

    def test_csv_accepted(self, store):
        content = pd.DataFrame([OUTSCRAPER_ROW]).to_csv(index=False).encode()
        outcome = OutscraperImporter(store).import_file("export.csv", content)
        assert outcome.success_count == 1

    def test_empty_workbook(self, store):
        content = outscraper_workbook({"Empty": pd.DataFrame()})
        outcome = OutscraperImporter(store).import_file("export.xlsx", content)
        assert outcome.success is False
        assert outcome.errors == ["No data found in any sheet. The file might be empty or in an unsupported format."]

    def test_corrupt_file_never_raises(self, store):
        outcome = OutscraperImporter(store).import_file("export.xlsx", b"garbage")
        assert outcome.success is False
        assert outcome.errors[0] == "Failed to import file"

    def test_returned_errors_truncated(self, store):
        rows = pd.DataFrame([{"name": f"Cafe {i}", "full_address": ""} for i in range(30)])
        settings = Settings(imports=ImportSettings(max_returned_errors=20, max_stored_errors=10))
        outcome = OutscraperImporter(store, settings).import_file("export.xlsx", outscraper_workbook({"Export": rows}))

        assert outcome.failed_count == 30
        assert len(outcome.errors) == 20
        assert len(store.list_import_logs()[0].errors) == 10

    def test_storage_failure_stops_run(self):
        store = MagicMock()
        store.upsert_cafe.side_effect = [True, DatabaseError("Database write failed")]
        rows = pd.DataFrame([dict(OUTSCRAPER_ROW, name=f"Cafe {i}") for i in range(4)])

        outcome = OutscraperImporter(store).import_file("export.xlsx", outscraper_workbook({"Export": rows}))

        assert outcome.success_count == 1
        assert outcome.failed_count == 3
        assert store.upsert_cafe.call_count == 2
        assert "Row 2: Database write failed" in outcome.errors

    def test_reimport_keeps_unmapped_fields(self, store):
        """Columns an Outscraper export lacks survive an advanced re-import."""
        standard = (
            "name,address,postcode,city,latitude,longitude,email,monday,amenities,rating\n"
            "Harbour Coffee,\"3 High St, Southend-on-Sea SS1 1AA\",SS1 1AA,Southend-on-Sea,"
            "51.5378,0.7141,hi@harbour.test,9:00-17:00,Dog friendly,3.9\n"
        ).encode()
        CafeImporter(store).import_file("cafes.csv", standard)

        content = pd.DataFrame([OUTSCRAPER_ROW]).to_csv(index=False).encode()
        outcome = OutscraperImporter(store).import_file("export.csv", content)

        assert outcome.success_count == 1
        assert store.count_all() == 1
        cafe = store.get_by_slug("harbour-coffee-southend-on-sea-ss1-1aa")
        assert cafe.rating == 4.4
        assert cafe.area == "Central"
        assert cafe.email == "hi@harbour.test"
        assert cafe.opening_hours["monday"].open == "09:00"
        assert cafe.opening_hours["monday"].close == "17:00"
        assert cafe.amenities == ["Coffee shop", "Cafe"]

    def test_null_store_reports_instead_of_raising(self):
        content = outscraper_workbook({"Export": pd.DataFrame([OUTSCRAPER_ROW])})
        outcome = OutscraperImporter(NullCafeStore()).import_file("export.xlsx", content)
        assert outcome.success is False
        assert "Row 1: Database not configured" in outcome.errors
