from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from criteria_analyzer.checklist import ChecklistRecord, Verdict


class RecordEditRequest(BaseModel):
    """Edit-form payload, keyed the way the results table and CSV are."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sequence_number: str = Field(default="", alias="연번", max_length=20)
    software_name: str = Field(default="", alias="소프트웨어명", max_length=300)
    provider: str = Field(default="", alias="공급자", max_length=300)
    category: str = Field(default="", alias="유형", max_length=300)
    purpose: str = Field(default="", alias="주요용도", max_length=1000)
    criterion_1_1: Verdict = Field(default=Verdict.UNSET, alias="1-1")
    criterion_1_2: Verdict = Field(default=Verdict.UNSET, alias="1-2")
    criterion_1_3: Verdict = Field(default=Verdict.UNSET, alias="1-3")
    criterion_2: Verdict = Field(default=Verdict.UNSET, alias="2")
    criterion_3: Verdict = Field(default=Verdict.UNSET, alias="3")
    criterion_4: Verdict = Field(default=Verdict.UNSET, alias="4")
    criterion_5_1: Verdict = Field(default=Verdict.UNSET, alias="5-1")
    criterion_5_2: Verdict = Field(default=Verdict.UNSET, alias="5-2")
    criterion_5_3: Verdict = Field(default=Verdict.UNSET, alias="5-3")

    def to_record(self) -> ChecklistRecord:
        return ChecklistRecord.from_external(self.model_dump(by_alias=True, mode="json"))
