import pytest

from criteria_analyzer.analysis import (
    extract_json_object,
    fallback_payload,
    parse_analysis_reply,
    record_from_payload,
    software_name_from_filename,
)
from criteria_analyzer.checklist import CRITERIA_IDS
from criteria_analyzer.errors import MalformedModelOutput
from criteria_analyzer.prompts import CRITERIA_QUESTIONS, SYSTEM_PROMPT, build_analysis_prompt, build_chat_messages


def test_json_object_is_recovered_from_surrounding_prose() -> None:
    reply = '분석 결과입니다.\n```json\n{"소프트웨어명": "클래스팅", "1-1": "충족"}\n```\n감사합니다.'
    assert extract_json_object(reply) == {"소프트웨어명": "클래스팅", "1-1": "충족"}


@pytest.mark.parametrize("reply", ["JSON이 없습니다", '{"broken": }', "} reversed {", "[1, 2]"])
def test_unparseable_replies_raise_malformed_output(reply: str) -> None:
    with pytest.raises(MalformedModelOutput):
        extract_json_object(reply)


def test_reply_criteria_are_normalized_to_verdict_symbols() -> None:
    payload = parse_analysis_reply(
        '{"소프트웨어명": "띵커벨", "1-1": "충족", "1-2": "미충족", "2": "해당없음", "3": "", "4": "일부 확인"}'
    )
    record = record_from_payload(payload)
    assert record.software_name == "띵커벨"
    assert record.criteria["1-1"] == "O"
    assert record.criteria["1-2"] == "X"
    assert record.criteria["2"] == "-"
    assert record.criteria["3"] == ""
    assert record.criteria["4"] == "일부 확인"
    assert record.criteria["5-3"] == ""


def test_fallback_payload_names_the_software_after_the_file() -> None:
    assert software_name_from_filename("에듀 앱.v2.pdf") == "에듀 앱.v2"
    assert software_name_from_filename("README") == "README"

    record = record_from_payload(fallback_payload("클래스팅.hwp"))
    assert record.software_name == "클래스팅"
    assert record.provider == ""
    assert set(record.criteria.values()) == {""}


def test_prompt_carries_questions_and_truncated_document() -> None:
    prompt = build_analysis_prompt("가" * 20, max_chars=5)
    assert "가" * 5 in prompt
    assert "가" * 6 not in prompt
    for criterion_id in CRITERIA_IDS:
        assert CRITERIA_QUESTIONS[criterion_id] in prompt
    assert "□" in prompt


def test_chat_messages_pair_system_and_user_roles() -> None:
    messages = build_chat_messages("본문")
    assert [message["role"] for message in messages] == ["system", "user"]
    assert messages[0]["content"] == SYSTEM_PROMPT
    assert "본문" in messages[1]["content"]
