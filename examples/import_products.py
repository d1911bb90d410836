#!/usr/bin/env python3
"""Example: import a product file into an in-memory catalog.

Reads a CSV/TSV/Excel product file, runs the full import pipeline (products,
slugs, localizations, category/manufacturer mappings, pictures) and prints
the import summary. Relative picture paths are resolved against the
directory of the input file.
"""

import logging
from pathlib import Path

from importkit import ImportFileParser, get_import_settings
from importkit.domain import Language
from importkit.ingest import (
    ImportExecuteContext,
    InMemoryCatalog,
    ProductImporter,
    RecordingNotificationSink,
)


def import_products(input_file: str, debug: bool = False):
    """Import a product file.

    Args:
        input_file: Path to the product file
        debug: Log identity resolution decisions

    Returns:
        (ImportResult, InMemoryCatalog)
    """
    settings = get_import_settings()
    table = ImportFileParser().parse(input_file)

    catalog = InMemoryCatalog(languages=[
        Language(id=1, name="English", unique_seo_code="en"),
        Language(id=2, name="Deutsch", unique_seo_code="de", display_order=1),
    ])
    # Demo catalog: a few categories and manufacturers to map against
    catalog.add_categories(1, 2, 3, 4, 5, 6)
    catalog.add_manufacturers(1, 2, 3)

    notifications = RecordingNotificationSink()
    importer = ProductImporter.from_catalog(
        catalog,
        notifications=notifications,
        settings=settings,
        image_directory=str(Path(input_file).parent),
        debug=debug,
    )

    context = ImportExecuteContext.from_settings(table, settings)
    result = importer.execute(context)

    print(f"✓ Imported {result.total_records} rows")
    print(f"  New: {result.new_records}")
    print(f"  Modified: {result.modified_records}")
    print(f"  Failed: {result.failed_records}")
    print(f"  Slugs: {len(catalog.url_record_table)}")
    print(f"  Category mappings: {len(catalog.product_category_table)}")
    print(f"  Pictures: {len(catalog.picture_table)}")

    if result.messages:
        print(f"\nMessages ({len(result.errors)} errors, {len(result.warnings)} warnings):")
        for message in result.messages:
            print(f"  {message}")

    return result, catalog


if __name__ == "__main__":
    import sys

    if len(sys.argv) < 2:
        print("Usage: python import_products.py <input_file> [--debug]")
        print("\nExample:")
        print("  python import_products.py products.csv")
        sys.exit(1)

    debug = "--debug" in sys.argv[2:]
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    import_products(sys.argv[1], debug=debug)
