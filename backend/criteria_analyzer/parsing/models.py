from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ParseContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str | None = None
    markdown: str | None = None
    html: str | None = None


class ParseElement(BaseModel):
    model_config = ConfigDict(extra="allow")

    category: str = ""
    page: int | None = None
    content: ParseContent = Field(default_factory=ParseContent)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, value: Any) -> str:
        return str(value or "").strip().lower()

    @field_validator("content", mode="before")
    @classmethod
    def default_content(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}


class ParseResponse(BaseModel):
    """Document-parse answer. Every representation is optional and upstream may omit any of them."""

    model_config = ConfigDict(extra="allow")

    content: ParseContent = Field(default_factory=ParseContent)
    elements: list[ParseElement] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def default_content(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("elements", mode="before")
    @classmethod
    def default_elements(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    def table_elements(self) -> list[ParseElement]:
        return [
            element
            for element in self.elements
            if element.category in {"table", "list"} and (element.content.html or "").strip()
        ]
