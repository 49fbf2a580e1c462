"""Importers for bringing records into quotesync."""

from .json_importer import (
    JsonImporter,
    JsonImportItem,
    export_records,
    import_entries,
    parse_entries,
    validate_entry,
)

__all__ = [
    "JsonImporter",
    "JsonImportItem",
    "export_records",
    "import_entries",
    "parse_entries",
    "validate_entry",
]
