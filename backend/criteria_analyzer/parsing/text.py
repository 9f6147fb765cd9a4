from __future__ import annotations

import re
from typing import Any, Mapping

from criteria_analyzer.errors import EmptyDocumentText
from criteria_analyzer.parsing.models import ParseResponse


_LINE_BREAK_PATTERN = re.compile(
    r"<\s*br\s*/?\s*>|<\s*/\s*(?:p|div|h[1-6]|li|tr|table|ul|ol)\s*>",
    flags=re.IGNORECASE,
)
_CELL_CLOSE_PATTERN = re.compile(r"<\s*/\s*t[dh]\s*>", flags=re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]*>")
_BLANK_RUN_PATTERN = re.compile(r"\n[ \t\r\f\v]*(?:\n[ \t\r\f\v]*)+")
_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
)


def html_to_text(html: str) -> str:
    """Best-effort reduction of parser HTML to plain text. Never raises on malformed markup."""
    if not html:
        return ""
    text = _LINE_BREAK_PATTERN.sub("\n", html)
    text = _CELL_CLOSE_PATTERN.sub(" ", text)
    text = _TAG_PATTERN.sub("", text)
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    text = _BLANK_RUN_PATTERN.sub("\n\n", text)
    return text.strip()


def coerce_parse_response(response: ParseResponse | Mapping[str, Any]) -> ParseResponse:
    if isinstance(response, ParseResponse):
        return response
    return ParseResponse.model_validate(dict(response))


def text_candidates(response: ParseResponse | Mapping[str, Any]) -> list[tuple[str, str]]:
    parsed = coerce_parse_response(response)
    content = parsed.content
    candidates: list[tuple[str, str]] = [
        ("text", content.text or ""),
        ("markdown", content.markdown or ""),
        ("html", html_to_text(content.html or "")),
    ]
    element_parts = [
        element.content.text or element.content.markdown or html_to_text(element.content.html or "")
        for element in parsed.elements
    ]
    candidates.append(("elements", "\n".join(part.strip() for part in element_parts if part and part.strip())))
    return candidates


def extract_document_text(response: ParseResponse | Mapping[str, Any]) -> str:
    for _, candidate in text_candidates(response):
        if candidate.strip():
            return candidate
    raise EmptyDocumentText()
