from criteria_analyzer.parsing.models import ParseContent, ParseElement, ParseResponse
from criteria_analyzer.parsing.tables import extract_records_from_html, extract_table_records
from criteria_analyzer.parsing.text import extract_document_text, html_to_text

__all__ = [
    "ParseContent",
    "ParseElement",
    "ParseResponse",
    "extract_document_text",
    "extract_records_from_html",
    "extract_table_records",
    "html_to_text",
]
