"""CSV and JSON export of crawl results."""

import csv
import io
import json
import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiofiles

from toad.exceptions import ExportError
from toad.models import CrawlStats, PageRecord

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "url",
    "finalUrl",
    "statusCode",
    "title",
    "isIndexable",
    "indexabilityReason",
    "metaDescription",
    "h1",
    "wordCount",
    "responseTimeMs",
    "contentType",
)


@dataclass(frozen=True, slots=True)
class ExportPaths:
    csv_path: Path
    json_path: Path


def sanitize_target(target: str) -> str:
    """Turn a crawl target into a file-name stem: "https://Example.com/" -> "example-com-"."""
    stripped = re.sub(r"^https?://", "", target, flags=re.IGNORECASE)
    return re.sub(r"[^a-zA-Z0-9]", "-", stripped).lower()


def export_basename(target: str, now: datetime | None = None) -> str:
    moment = now or datetime.now(UTC)
    return f"{sanitize_target(target)}-{moment.strftime('%Y%m%d-%H%M%S')}"


def _csv_value(value: Any) -> Any:
    # Booleans export as 1 / empty, missing values as empty
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    return value


def render_csv(pages: list[PageRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for page in pages:
        row = page.model_dump(by_alias=True)
        writer.writerow([_csv_value(row[column]) for column in CSV_COLUMNS])
    return buffer.getvalue()


def render_json(pages: list[PageRecord], stats: CrawlStats, crawl_date: datetime | None = None) -> str:
    moment = crawl_date or datetime.now(UTC)
    document = {
        "crawlDate": moment.isoformat().replace("+00:00", "Z"),
        "stats": stats.model_dump(by_alias=True, mode="json"),
        "pages": [page.model_dump(by_alias=True, mode="json") for page in pages],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


async def _write_text(path: Path, content: str) -> None:
    async with aiofiles.open(path, "w", encoding="utf-8", newline="") as f:
        await f.write(content)


async def export_to_csv(pages: list[PageRecord], path: Path) -> Path:
    await _write_text(path, render_csv(pages))
    return path


async def export_to_json(pages: list[PageRecord], stats: CrawlStats, path: Path) -> Path:
    await _write_text(path, render_json(pages, stats))
    return path


async def export_results(
    pages: list[PageRecord],
    stats: CrawlStats,
    target: str,
    directory: Path = Path("."),
    now: datetime | None = None,
) -> ExportPaths:
    """Write CSV and JSON exports side by side.

    Args:
        pages: Crawled page records
        stats: Final statistics snapshot
        target: Crawl target used to name the files
        directory: Output directory (created if missing)
        now: Timestamp for the file names (defaults to the current UTC time)

    Returns:
        Paths of the written CSV and JSON files

    Raises:
        ExportError: If the directory cannot be created or a file cannot be written
    """
    base_name = export_basename(target, now)
    csv_path = directory / f"{base_name}.csv"
    json_path = directory / f"{base_name}.json"

    try:
        directory.mkdir(parents=True, exist_ok=True)
        await export_to_csv(pages, csv_path)
        await export_to_json(pages, stats, json_path)
    except OSError as e:
        raise ExportError(f"Failed to export results to {directory}: {e}") from e

    logger.info(f"Exported {len(pages)} pages to {csv_path.name} and {json_path.name}")
    return ExportPaths(csv_path=csv_path, json_path=json_path)
