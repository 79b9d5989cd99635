"""Tests for CSV and JSON export."""

import csv
import json
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest

from toad.exceptions import ExportError
from toad.export import (
    CSV_COLUMNS,
    export_basename,
    export_results,
    render_csv,
    render_json,
    sanitize_target,
)
from toad.models import CrawlStats, PageRecord

MOMENT = datetime(2026, 3, 4, 5, 6, 7, tzinfo=UTC)


@pytest.fixture
def pages(record_factory: Callable[..., PageRecord]) -> list[PageRecord]:
    return [
        record_factory(1, title='Quote "and", comma', meta_description="desc"),
        record_factory(
            2,
            status_code=404,
            is_indexable=False,
            indexability_reason="HTTP 404",
        ),
    ]


@pytest.fixture
def stats() -> CrawlStats:
    return CrawlStats(pages_crawled=2, indexable_count=1, non_indexable_count=1, start_time=1.0)


class TestFileNames:
    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            ("https://example.com/", "example-com-"),
            ("http://Example.com/Docs?x=1", "example-com-docs-x-1"),
            ("example.com", "example-com"),
        ],
    )
    def test_sanitize_target(self, target: str, expected: str) -> None:
        assert sanitize_target(target) == expected

    def test_basename_timestamp(self) -> None:
        assert export_basename("https://example.com", MOMENT) == "example-com-20260304-050607"


class TestRenderCsv:
    def test_header_is_exact(self, pages: list[PageRecord]) -> None:
        header = render_csv(pages).splitlines()[0]

        assert header == (
            "url,finalUrl,statusCode,title,isIndexable,indexabilityReason,"
            "metaDescription,h1,wordCount,responseTimeMs,contentType"
        )
        assert len(CSV_COLUMNS) == 11

    def test_rows(self, pages: list[PageRecord]) -> None:
        rows = list(csv.DictReader(render_csv(pages).splitlines()))

        assert len(rows) == 2
        assert rows[0]["title"] == 'Quote "and", comma'
        assert rows[0]["isIndexable"] == "1"
        assert rows[0]["indexabilityReason"] == ""
        assert rows[1]["isIndexable"] == ""
        assert rows[1]["indexabilityReason"] == "HTTP 404"
        assert rows[1]["statusCode"] == "404"

    def test_no_pages(self) -> None:
        assert render_csv([]).strip() == ",".join(CSV_COLUMNS)


class TestRenderJson:
    def test_document_shape(self, pages: list[PageRecord], stats: CrawlStats) -> None:
        document = json.loads(render_json(pages, stats, MOMENT))

        assert set(document) == {"crawlDate", "stats", "pages"}
        assert document["crawlDate"] == "2026-03-04T05:06:07Z"
        assert document["stats"]["pagesCrawled"] == 2
        assert document["pages"][1]["indexabilityReason"] == "HTTP 404"
        assert document["pages"][0]["finalUrl"] == "https://example.com/page-1"

    def test_two_space_indent(self, pages: list[PageRecord], stats: CrawlStats) -> None:
        text = render_json(pages, stats, MOMENT)

        assert text.splitlines()[1].startswith('  "crawlDate"')


class TestExportResults:
    @pytest.mark.asyncio
    async def test_writes_both_files(
        self, tmp_path: Path, pages: list[PageRecord], stats: CrawlStats
    ) -> None:
        paths = await export_results(pages, stats, "https://example.com/", tmp_path, now=MOMENT)

        assert paths.csv_path == tmp_path / "example-com--20260304-050607.csv"
        assert paths.json_path == tmp_path / "example-com--20260304-050607.json"
        assert paths.csv_path.read_text(encoding="utf-8").startswith("url,finalUrl")
        assert json.loads(paths.json_path.read_text(encoding="utf-8"))["pages"]

    @pytest.mark.asyncio
    async def test_creates_directory(
        self, tmp_path: Path, pages: list[PageRecord], stats: CrawlStats
    ) -> None:
        directory = tmp_path / "nested" / "exports"

        paths = await export_results(pages, stats, "example.com", directory, now=MOMENT)

        assert paths.csv_path.exists()

    @pytest.mark.asyncio
    async def test_unwritable_directory_raises(
        self, tmp_path: Path, pages: list[PageRecord], stats: CrawlStats
    ) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(ExportError):
            await export_results(pages, stats, "example.com", blocker / "sub", now=MOMENT)
