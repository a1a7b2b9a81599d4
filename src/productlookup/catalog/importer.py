"""CSV import - read, normalize, and insert in sequential batches"""

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence, TextIO, Union

from ..errors import PartialImportFailure, StoreError, ValidationError
from .models import ProductInsert
from .normalizer import detect_columns, normalize_rows
from .searcher import QueryCache

logger = logging.getLogger(__name__)

BATCH_SIZE = 100
PREVIEW_ROWS = 5

ProgressCallback = Callable[[int], None]


@dataclass
class ImportResult:
    """Outcome of a completed import"""
    rows_imported: int
    batches: int


@dataclass
class CSVPreview:
    """First rows of a CSV file and how its headers map"""
    headers: list[str]
    rows: list[dict[str, str]]
    mapping: dict[str, str] = field(default_factory=dict)
    ignored: list[str] = field(default_factory=list)


def chunk(rows: Sequence, size: int = BATCH_SIZE) -> list[Sequence]:
    if size <= 0:
        raise ValueError(f"batch size must be positive: {size}")
    return [rows[i:i + size] for i in range(0, len(rows), size)]


def progress_percent(done: int, total: int) -> int:
    """Completed fraction as a whole percentage, halves rounded up"""
    return int(done * 100 / total + 0.5)


def _read(source: TextIO, limit: Optional[int]) -> tuple[list[str], list[dict[str, str]]]:
    reader = csv.DictReader(source)
    rows: list[dict[str, str]] = []
    try:
        headers = list(reader.fieldnames or [])
        for row in reader:
            # skip blank lines
            if not any((v or "").strip() for k, v in row.items() if k is not None):
                continue
            rows.append({k: v for k, v in row.items() if k is not None})
            if limit is not None and len(rows) >= limit:
                break
    except csv.Error as e:
        raise ValidationError(f"CSV parsing error: {e}") from e
    return headers, rows


def read_csv_rows(
    source: Union[str, Path, TextIO],
    limit: Optional[int] = None,
) -> tuple[list[str], list[dict[str, str]]]:
    """Read a UTF-8 comma-delimited CSV file with a header row.

    Args:
        source: file path or an open text stream
        limit: stop after this many data rows

    Returns:
        (headers, rows keyed by the original headers)

    Raises:
        ValidationError: the file is not valid CSV
    """
    if isinstance(source, (str, Path)):
        path = Path(source).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"CSV file not found: {path}")
        try:
            with path.open("r", encoding="utf-8-sig", newline="") as f:
                return _read(f, limit)
        except UnicodeDecodeError as e:
            raise ValidationError(f"CSV file is not UTF-8 text: {e}") from e
    return _read(source, limit)


def parse_csv_text(text: str) -> tuple[list[str], list[dict[str, str]]]:
    return read_csv_rows(io.StringIO(text.lstrip("\ufeff")))


def preview_csv(source: Union[str, Path, TextIO], limit: int = PREVIEW_ROWS) -> CSVPreview:
    headers, rows = read_csv_rows(source, limit=limit)
    mapping, ignored = detect_columns(headers)
    return CSVPreview(headers=headers, rows=rows, mapping=mapping, ignored=ignored)


def import_products(
    store,
    products: Sequence[ProductInsert],
    batch_size: int = BATCH_SIZE,
    on_progress: Optional[ProgressCallback] = None,
    cache: Optional[QueryCache] = None,
) -> ImportResult:
    """Insert normalized rows batch by batch.

    Batches run strictly one after another. The first failing batch stops the
    import; batches inserted before it stay committed.

    Args:
        store: record store with insert_batch(rows)
        products: normalized rows
        batch_size: rows per insert
        on_progress: called with a 0-100 percentage after each batch
        cache: query cache to invalidate once everything is inserted

    Raises:
        ValidationError: nothing to import
        PartialImportFailure: a batch failed (1-based batch_index)
    """
    if not products:
        raise ValidationError("Nothing to import: no rows found")

    batches = chunk(list(products), batch_size)
    total = len(batches)
    committed = 0

    for i, batch in enumerate(batches, start=1):
        logger.info("Inserting batch %d/%d (%d rows)", i, total, len(batch))
        try:
            store.insert_batch(batch)
        except StoreError as e:
            logger.error("Batch %d/%d failed: %s", i, total, e)
            # earlier batches are committed, so cached results are stale
            if committed and cache is not None:
                cache.invalidate()
            raise PartialImportFailure(i, total, committed, e) from e
        committed += len(batch)
        if on_progress:
            on_progress(progress_percent(i, total))

    if cache is not None:
        cache.invalidate()
    logger.info("Imported %d products in %d batches", committed, total)
    return ImportResult(rows_imported=committed, batches=total)


def import_csv(
    store,
    source: Union[str, Path, TextIO],
    batch_size: int = BATCH_SIZE,
    on_progress: Optional[ProgressCallback] = None,
    cache: Optional[QueryCache] = None,
) -> ImportResult:
    """Read, normalize and import a CSV file"""
    _, rows = read_csv_rows(source)
    if not rows:
        raise ValidationError("CSV file is empty")
    return import_products(
        store,
        normalize_rows(rows),
        batch_size=batch_size,
        on_progress=on_progress,
        cache=cache,
    )
