from __future__ import annotations

import json

from criteria_analyzer.checklist import CRITERIA_IDS, TEXT_FIELD_KEYS


SYSTEM_PROMPT = (
    "당신은 학습지원 소프트웨어 선정기준 분석 전문가입니다. "
    "문서를 분석하여 정확한 정보를 JSON 형식으로 추출합니다."
)

TEXT_FIELD_DESCRIPTIONS: dict[str, str] = {
    "소프트웨어명": "문서에서 언급된 학습지원 소프트웨어 이름",
    "공급자": "소프트웨어를 제공하는 회사/기관명",
    "유형": "소프트웨어 유형 (예: 학습관리, 콘텐츠, 코딩교육 등)",
    "주요용도": "소프트웨어의 주요 사용 목적",
}

CRITERIA_QUESTIONS: dict[str, str] = {
    "1-1": "개인정보가 최소한으로 수집되는가?",
    "1-2": "개인정보 수집·이용 목적이 기재되어 있는가?",
    "1-3": "개인정보 수집항목, 보유기간 등이 기재되어 있는가?",
    "2": "개인정보 안전성 확보에 필요한 조치사항이 기재되어 있는가?",
    "3": "이용자에게 열람·정정·삭제·처리정지를 요구할 수 있는 절차가 안내되어 있는가?",
    "4": "만 14세 미만 아동의 개인정보 보호를 위한 절차가 마련되어 있는가?",
    "5-1": "개인정보 보호책임자 관련 정보가 안내되어 있는가?",
    "5-2": "개인정보 제3자 제공에 관한 정보가 기재되어 있는가?",
    "5-3": "개인정보 위·수탁관계에 관한 정보가 기재되어 있는가?",
}

CHECKBOX_INSTRUCTIONS = (
    "체크박스 판독 기준:\n"
    "- 채워진 표시(■, ●, ☑, ✔, V, O)가 있는 칸이 문서 작성자가 선택한 답입니다.\n"
    "- 비어 있는 표시(□, ☐)는 선택되지 않은 칸입니다.\n"
    "- '적합/충족' 칸이 선택되어 있으면 \"충족\", '부적합/미충족' 칸이 선택되어 있으면 \"미충족\", "
    "'해당없음' 칸이 선택되어 있으면 \"해당없음\"으로 답하세요.\n"
    "- 어느 칸도 선택되어 있지 않으면 빈 문자열(\"\")로 답하세요."
)


def truncate_document_text(document_text: str, max_chars: int) -> str:
    return document_text[: max(0, max_chars)]


def _response_template() -> str:
    template: dict[str, str] = {key: "..." for key in TEXT_FIELD_KEYS.values()}
    template.update({criterion_id: "충족" for criterion_id in CRITERIA_IDS})
    return json.dumps(template, ensure_ascii=False, indent=2)


def build_analysis_prompt(document_text: str, *, max_chars: int = 8000) -> str:
    text_fields = "\n".join(
        f"{index}. {key}: {TEXT_FIELD_DESCRIPTIONS[key]}"
        for index, key in enumerate(TEXT_FIELD_KEYS.values(), start=1)
    )
    questions = "\n".join(f"- {criterion_id}: {CRITERIA_QUESTIONS[criterion_id]}" for criterion_id in CRITERIA_IDS)
    return (
        "다음은 학습지원 소프트웨어 선정기준 체크리스트 문서입니다. "
        "이 문서를 분석하여 아래 정보를 JSON 형식으로 추출해주세요.\n\n"
        "문서 내용:\n"
        f"{truncate_document_text(document_text, max_chars)}\n\n"
        "추출해야 할 정보:\n"
        f"{text_fields}\n\n"
        "필수기준 충족 여부 (각 항목별로 \"충족\", \"미충족\", \"해당없음\" 중 하나로 답변):\n"
        f"{questions}\n\n"
        f"{CHECKBOX_INSTRUCTIONS}\n\n"
        "반드시 아래 JSON 형식으로만 응답해주세요:\n"
        f"{_response_template()}"
    )


def build_chat_messages(document_text: str, *, max_chars: int = 8000) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_analysis_prompt(document_text, max_chars=max_chars)},
    ]
