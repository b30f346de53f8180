"""
Bulk-import a cafe spreadsheet from the command line.

    python scripts/import_cafes.py data/raw/cafes.xlsx
    python scripts/import_cafes.py exports/outscraper.xlsx --outscraper
"""

import argparse
import sys
from pathlib import Path

from cafe_directory.config import settings
from cafe_directory.data.store import create_store
from cafe_directory.exceptions import CafeDirectoryError
from cafe_directory.importer import CafeImporter, OutscraperImporter
from cafe_directory.logging_config import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Import cafes from a CSV or Excel file.")
    parser.add_argument("path", type=Path, help="CSV / XLSX / XLS file to import")
    parser.add_argument("--outscraper", action="store_true", help="Use the multi-sheet Outscraper importer")
    args = parser.parse_args()

    settings.setup()
    setup_logging(level=settings.logging.level, log_file=settings.logging.file)

    if not args.path.exists():
        print(f"File not found: {args.path}")
        return 1

    print(f"--- Importing {args.path.name} ---")
    store = create_store(settings)
    print(f"Storage: {store.name}")

    importer_cls = OutscraperImporter if args.outscraper else CafeImporter
    try:
        outcome = importer_cls(store, settings).import_file(args.path.name, args.path.read_bytes())
    except CafeDirectoryError as e:
        print(f"Import failed: {e}")
        return 1

    print(f"Status:   {outcome.status.value}")
    print(f"Rows:     {outcome.total_rows}")
    print(f"Imported: {outcome.success_count}")
    print(f"Failed:   {outcome.failed_count}")
    for error in outcome.errors:
        print(f"  - {error}")

    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
