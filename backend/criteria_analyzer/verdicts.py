from __future__ import annotations

from typing import Any

from criteria_analyzer.checklist import Verdict


AFFIRMATIVE_TOKENS = {
    "o",
    "■",
    "○",
    "◯",
    "〇",
    "●",
    "◉",
    "⬤",
    "✓",
    "✔",
    "☑",
    "√",
    "v",
    "yes",
    "y",
    "적합",
    "충족",
    "해당",
}
NEGATIVE_TOKENS = {
    "x",
    "×",
    "✕",
    "✖",
    "✗",
    "✘",
    "☒",
    "no",
    "n",
    "부적합",
    "미충족",
}
# Unticked checkbox glyphs carry no answer.
EMPTY_BOX_TOKENS = {"□", "☐"}
NOT_APPLICABLE_TOKENS = {
    "-",
    "n/a",
    "na",
    "해당없음",
    "해당 없음",
}


def classify_verdict(token: Any) -> Verdict | str:
    """Map a checkbox cell or symbol to a verdict.

    Unrecognized tokens are returned unchanged so they survive for manual review.
    """
    if token is None:
        return Verdict.UNSET
    if isinstance(token, Verdict):
        return token
    raw = str(token)
    normalized = raw.strip().casefold()
    if not normalized or normalized in EMPTY_BOX_TOKENS:
        return Verdict.UNSET
    if normalized in AFFIRMATIVE_TOKENS:
        return Verdict.PASS
    if normalized in NEGATIVE_TOKENS:
        return Verdict.FAIL
    if normalized in NOT_APPLICABLE_TOKENS:
        return Verdict.NOT_APPLICABLE
    return raw


def classify_model_answer(answer: Any) -> Verdict | str:
    """Classify a chat-model answer worded as 충족 / 미충족 / 해당없음.

    The word checks run first; anything else goes through ``classify_verdict``.
    """
    if answer is None:
        return Verdict.UNSET
    text = str(answer)
    lowered = text.casefold()
    if "충족" in lowered and "미" not in lowered:
        return Verdict.PASS
    if "미충족" in lowered or "부적합" in lowered:
        return Verdict.FAIL
    if "해당없음" in lowered or "해당 없음" in lowered:
        return Verdict.NOT_APPLICABLE
    return classify_verdict(text)


def verdict_text(value: Verdict | str) -> str:
    if isinstance(value, Verdict):
        return value.value
    return value
