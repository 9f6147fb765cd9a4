from __future__ import annotations

import json
import re
from typing import Any, Mapping

from criteria_analyzer.checklist import CRITERIA_IDS, TEXT_FIELD_KEYS, ChecklistRecord
from criteria_analyzer.errors import MalformedModelOutput
from criteria_analyzer.verdicts import classify_model_answer, verdict_text


_EXTENSION_PATTERN = re.compile(r"\.[^/.]+$")


def extract_json_object(reply: str) -> dict[str, Any]:
    """Parse the span from the first ``{`` to the last ``}`` of a chat reply."""
    start = reply.find("{")
    end = reply.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise MalformedModelOutput("Model reply did not contain a JSON object.")
    try:
        payload = json.loads(reply[start : end + 1])
    except json.JSONDecodeError as exc:
        raise MalformedModelOutput(f"Model reply contained malformed JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise MalformedModelOutput("Model reply JSON must be an object.")
    return payload


def normalize_analysis_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    normalized = dict(payload)
    for criterion_id in CRITERIA_IDS:
        value = normalized.get(criterion_id)
        if value is None or value == "":
            continue
        normalized[criterion_id] = verdict_text(classify_model_answer(value))
    return normalized


def parse_analysis_reply(reply: str) -> dict[str, Any]:
    return normalize_analysis_payload(extract_json_object(reply))


def software_name_from_filename(filename: str) -> str:
    return _EXTENSION_PATTERN.sub("", filename)


def fallback_payload(filename: str) -> dict[str, str]:
    payload = {key: "" for key in TEXT_FIELD_KEYS.values()}
    payload[TEXT_FIELD_KEYS["software_name"]] = software_name_from_filename(filename)
    payload.update({criterion_id: "" for criterion_id in CRITERIA_IDS})
    return payload


def record_from_payload(payload: Mapping[str, Any]) -> ChecklistRecord:
    return ChecklistRecord.from_external(payload)
