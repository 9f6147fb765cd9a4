from __future__ import annotations

import csv
import io
import logging
from typing import Iterable

from criteria_analyzer.checklist import EXPORT_HEADERS, ChecklistRecord

logger = logging.getLogger("criteria.export")

CSV_BOM = "\ufeff"
EMPTY_DOWNLOAD_NOTICE = "다운로드할 데이터가 없습니다."
EMPTY_COPY_NOTICE = "복사할 데이터가 없습니다."


def csv_filename(prefix: str, session_id: str) -> str:
    return f"{prefix}_{session_id}.csv"


def records_to_csv(records: Iterable[ChecklistRecord]) -> str | None:
    """Spreadsheet-friendly CSV: BOM, every field quoted, CRLF between rows. None when there is nothing to export."""
    rows = [record.export_row() for record in records]
    if not rows:
        logger.info("export_skipped_empty", extra={"event": "export_skipped_empty", "format": "csv"})
        return None

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerow(EXPORT_HEADERS)
    writer.writerows(rows)
    return CSV_BOM + buffer.getvalue().removesuffix("\r\n")


def records_to_clipboard_text(records: Iterable[ChecklistRecord]) -> str | None:
    rows = [record.export_row() for record in records]
    if not rows:
        logger.info("export_skipped_empty", extra={"event": "export_skipped_empty", "format": "clipboard"})
        return None
    lines = ["\t".join(EXPORT_HEADERS)]
    lines.extend("\t".join(row) for row in rows)
    return "\n".join(lines)
