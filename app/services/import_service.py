import codecs
import csv
import logging
import re
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Iterator, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import OPTIONAL_TEXT_FIELDS, WORKBOOK_SUFFIXES
from app.core.errors import (
    ImportFailedError,
    ImportReadError,
    InventoryError,
    ValidationError,
)
from app.services.product_service import create_product, find_by_name

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class DuplicateRecord:
    name: str
    existing_id: int


@dataclass
class ImportSummary:
    added: int = 0
    skipped: int = 0
    duplicates: list[DuplicateRecord] = field(default_factory=list)

    def to_dict(self):
        return {
            "added": self.added,
            "skipped": self.skipped,
            "duplicates": [
                {"name": item.name, "existingId": item.existing_id}
                for item in self.duplicates
            ],
        }


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_header(value):
    if value is None:
        return ""
    return str(value).replace("\ufeff", "").strip().lower()


def parse_stock(value) -> int:
    """Leading-integer coercion; anything unparseable or negative becomes 0."""
    if _is_blank(value) or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        if value != value:
            return 0
        return max(int(value), 0)
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def normalize_row(raw: dict[str, Any]) -> Optional[dict[str, Any]]:
    name = raw.get("name")
    if _is_blank(name):
        return None
    product = {"name": str(name).strip(), "stock": parse_stock(raw.get("stock"))}
    for key in OPTIONAL_TEXT_FIELDS:
        value = raw.get(key)
        product[key] = "" if value is None else str(value)
    return product


def iter_table_rows(rows: Iterable[Sequence[Any]]) -> Iterator[dict[str, Any]]:
    """Turn header-first tabular rows into dicts keyed by normalized header."""
    rows_iter = iter(rows)
    headers = next(rows_iter, None)
    if not headers:
        return
    header_keys = [normalize_header(header) for header in headers]
    if "name" not in header_keys:
        raise ValidationError.for_field("csvFile", "CSV file must include a name column")
    indices = [(idx, key) for idx, key in enumerate(header_keys) if key]

    for row in rows_iter:
        if not row or all(_is_blank(value) for value in row):
            continue
        yield {key: row[idx] if idx < len(row) else None for idx, key in indices}


def iter_csv_rows(stream: BinaryIO) -> Iterator[dict[str, Any]]:
    lines = codecs.iterdecode(stream, "utf-8-sig")
    yield from iter_table_rows(csv.reader(lines))


def iter_workbook_rows(stream: BinaryIO) -> Iterator[dict[str, Any]]:
    try:
        workbook = load_workbook(stream, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ImportReadError("Failed to read workbook") from exc
    try:
        worksheet = workbook.active
        yield from iter_table_rows(worksheet.iter_rows(values_only=True))
    finally:
        workbook.close()


def is_workbook(filename: Optional[str]) -> bool:
    return Path(filename or "").suffix.lower() in WORKBOOK_SUFFIXES


def import_rows(
    db: Session,
    rows: Iterable[dict[str, Any]],
    *,
    dry_run: bool = False,
) -> ImportSummary:
    """Insert rows in file order, skipping names that already exist.

    Every insert is flushed so rows later in the same file see it. The run
    commits once at the end; any failure rolls back the whole batch.
    """
    summary = ImportSummary()
    try:
        for raw in rows:
            product = normalize_row(raw)
            if product is None:
                continue
            existing = find_by_name(db, product["name"])
            if existing is not None:
                summary.duplicates.append(DuplicateRecord(product["name"], existing.id))
                summary.skipped += 1
                continue
            create_product(db, product, commit=False)
            summary.added += 1

        if dry_run:
            db.rollback()
        else:
            db.commit()
    except (csv.Error, UnicodeDecodeError) as exc:
        db.rollback()
        logger.exception("Error reading CSV file")
        raise ImportReadError() from exc
    except (ImportReadError, ValidationError):
        db.rollback()
        raise
    except InventoryError as exc:
        db.rollback()
        logger.error("Error processing CSV import: %s", exc.message)
        raise ImportFailedError() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error processing CSV import")
        raise ImportFailedError() from exc

    logger.info(
        "Import %s: %d added, %d skipped",
        "dry run complete" if dry_run else "complete",
        summary.added,
        summary.skipped,
    )
    return summary


def import_stream(
    db: Session,
    stream: BinaryIO,
    *,
    filename: Optional[str] = None,
    dry_run: bool = False,
) -> ImportSummary:
    """Import from an open binary stream, closing it afterwards whatever happens."""
    try:
        rows = iter_workbook_rows(stream) if is_workbook(filename) else iter_csv_rows(stream)
        return import_rows(db, rows, dry_run=dry_run)
    finally:
        try:
            stream.close()
        except OSError:
            logger.warning("Error closing uploaded file %s", filename or "<stream>")


def import_file(db: Session, path, *, dry_run: bool = False) -> ImportSummary:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    return import_stream(db, file_path.open("rb"), filename=file_path.name, dry_run=dry_run)


__all__ = [
    "DuplicateRecord",
    "ImportSummary",
    "import_file",
    "import_rows",
    "import_stream",
    "is_workbook",
    "iter_csv_rows",
    "iter_table_rows",
    "iter_workbook_rows",
    "normalize_header",
    "normalize_row",
    "parse_stock",
]
