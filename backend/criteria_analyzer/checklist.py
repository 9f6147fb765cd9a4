from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, Field, field_validator


CRITERIA_IDS: tuple[str, ...] = ("1-1", "1-2", "1-3", "2", "3", "4", "5-1", "5-2", "5-3")

# Internal attribute -> external (document / export) key.
TEXT_FIELD_KEYS: dict[str, str] = {
    "software_name": "소프트웨어명",
    "provider": "공급자",
    "category": "유형",
    "purpose": "주요용도",
}
SEQUENCE_KEY = "연번"
EXPORT_HEADERS: tuple[str, ...] = (
    SEQUENCE_KEY,
    "학습지원 소프트웨어명",
    "공급자",
    "유형",
    "주요용도",
    *CRITERIA_IDS,
)


class Verdict(str, Enum):
    PASS = "O"
    FAIL = "X"
    NOT_APPLICABLE = "-"
    UNSET = ""


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def blank_criteria() -> dict[str, str]:
    return {criterion_id: Verdict.UNSET.value for criterion_id in CRITERIA_IDS}


class ChecklistRecord(BaseModel):
    """One analyzed software entry.

    Criterion values hold the serialized verdict (``O``/``X``/``-``/empty) or, when a token could not be
    classified, the raw token so a reviewer can fix it by hand.
    """

    sequence_number: str = ""
    software_name: str = ""
    provider: str = ""
    category: str = ""
    purpose: str = ""
    criteria: dict[str, str] = Field(default_factory=blank_criteria)

    @field_validator("sequence_number", "software_name", "provider", "category", "purpose", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("criteria", mode="before")
    @classmethod
    def complete_criteria(cls, value: Any) -> dict[str, str]:
        source = value if isinstance(value, Mapping) else {}
        return {criterion_id: _as_text(source.get(criterion_id)) for criterion_id in CRITERIA_IDS}

    @classmethod
    def from_external(cls, payload: Mapping[str, Any]) -> "ChecklistRecord":
        return cls(
            sequence_number=payload.get(SEQUENCE_KEY),
            criteria={criterion_id: payload.get(criterion_id) for criterion_id in CRITERIA_IDS},
            **{attribute: payload.get(key) for attribute, key in TEXT_FIELD_KEYS.items()},
        )

    def to_external(self) -> dict[str, str]:
        payload = {SEQUENCE_KEY: self.sequence_number}
        for attribute, key in TEXT_FIELD_KEYS.items():
            payload[key] = getattr(self, attribute)
        payload.update(self.criteria)
        return payload

    def export_row(self) -> list[str]:
        return [
            self.sequence_number,
            self.software_name,
            self.provider,
            self.category,
            self.purpose,
            *(self.criteria[criterion_id] for criterion_id in CRITERIA_IDS),
        ]

    def verdict(self, criterion_id: str) -> Verdict | None:
        """Return the verdict for a criterion, or None when the stored value is an unclassified token."""
        try:
            return Verdict(self.criteria[criterion_id])
        except ValueError:
            return None

    def unclassified_criteria(self) -> list[str]:
        return [criterion_id for criterion_id in CRITERIA_IDS if self.verdict(criterion_id) is None]


@dataclass(frozen=True)
class RawExchange:
    filename: str
    parse_response: dict[str, Any]
    analysis_response: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "filename": self.filename,
            "parseResponse": self.parse_response,
            "analysisResponse": self.analysis_response,
        }
