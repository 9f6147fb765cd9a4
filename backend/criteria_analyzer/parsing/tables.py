from __future__ import annotations

import re
from typing import Any, Mapping

from bs4 import BeautifulSoup

from criteria_analyzer.checklist import CRITERIA_IDS, ChecklistRecord
from criteria_analyzer.parsing.models import ParseResponse
from criteria_analyzer.parsing.text import coerce_parse_response
from criteria_analyzer.verdicts import classify_verdict, verdict_text


SEQUENCE_HEADER_LABELS = {"연번", "번호", "순번", "no", "no.", "#"}
MIN_ROW_CELLS = 5
_CRITERIA_OFFSET = 5
_WHITESPACE_PATTERN = re.compile(r"\s+")


def _clean_text(value: str) -> str:
    return _WHITESPACE_PATTERN.sub(" ", value.replace("\xa0", " ")).strip()


def _is_header_label(value: str) -> bool:
    return _WHITESPACE_PATTERN.sub("", value).casefold() in SEQUENCE_HEADER_LABELS


def table_rows(html: str) -> list[list[str]]:
    if not html or not html.strip():
        return []
    soup = BeautifulSoup(html, "lxml")
    rows: list[list[str]] = []
    for tr in soup.find_all("tr"):
        cells = [_clean_text(cell.get_text(" ", strip=True)) for cell in tr.find_all(["td", "th"], recursive=False)]
        rows.append(cells)
    return rows


def map_row(cells: list[str]) -> ChecklistRecord:
    criteria_cells = cells[_CRITERIA_OFFSET : _CRITERIA_OFFSET + len(CRITERIA_IDS)]
    criteria = {
        criterion_id: verdict_text(classify_verdict(criteria_cells[index] if index < len(criteria_cells) else None))
        for index, criterion_id in enumerate(CRITERIA_IDS)
    }
    return ChecklistRecord(
        sequence_number=cells[0],
        software_name=cells[1],
        provider=cells[2],
        category=cells[3],
        purpose=cells[4],
        criteria=criteria,
    )


def extract_records_from_html(html: str) -> list[ChecklistRecord]:
    """Positionally map checklist table rows. Layouts that do not match yield no rows, never an error."""
    records: list[ChecklistRecord] = []
    for cells in table_rows(html):
        if not cells or all(not cell for cell in cells):
            continue
        if _is_header_label(cells[0]):
            continue
        if len(cells) < MIN_ROW_CELLS:
            continue
        records.append(map_row(cells))
    return records


def extract_table_records(response: ParseResponse | Mapping[str, Any]) -> list[ChecklistRecord]:
    parsed = coerce_parse_response(response)
    records: list[ChecklistRecord] = []
    for element in parsed.table_elements():
        records.extend(extract_records_from_html(element.content.html or ""))
    if records:
        return records
    return extract_records_from_html(parsed.content.html or "")
