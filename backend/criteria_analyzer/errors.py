from __future__ import annotations

from typing import Any


class CriteriaAnalyzerError(RuntimeError):
    """Base class for failures raised while ingesting and analyzing documents."""


class CredentialMissing(CriteriaAnalyzerError):
    """Raised before any network call when no Upstage API key is configured."""

    def __init__(self, message: str = "API 키가 설정되지 않았습니다.") -> None:
        super().__init__(message)


class UpstreamHttpError(CriteriaAnalyzerError):
    """Non-2xx answer from the parse or chat endpoint."""

    def __init__(self, status_code: int, body: Any = None, *, stage: str = "parse") -> None:
        self.status_code = status_code
        self.body = body
        self.stage = stage
        super().__init__(self._describe(status_code, body, stage))

    @staticmethod
    def _describe(status_code: int, body: Any, stage: str) -> str:
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"].strip():
                return f"{error['message'].strip()} ({status_code})"
            if isinstance(error, str) and error.strip():
                return f"{error.strip()} ({status_code})"
        prefix = "AI 분석 오류" if stage == "chat" else "API 오류"
        return f"{prefix}: {status_code}"


class EmptyDocumentText(CriteriaAnalyzerError):
    def __init__(self, message: str = "문서에서 텍스트를 추출하지 못했습니다.") -> None:
        super().__init__(message)


class MalformedModelOutput(CriteriaAnalyzerError):
    """Chat reply carried no parseable JSON object."""


class IndexOutOfRange(IndexError):
    def __init__(self, index: int, length: int) -> None:
        self.index = index
        self.length = length
        super().__init__(f"Result index {index} is out of range for {length} record(s).")


class EndpointNotAllowed(CriteriaAnalyzerError):
    """Proxy target is not one of the configured Upstage hosts."""


class NoFilesQueued(CriteriaAnalyzerError):
    def __init__(self, message: str = "파일을 먼저 업로드해주세요.") -> None:
        super().__init__(message)


class BatchInProgress(CriteriaAnalyzerError):
    def __init__(self, message: str = "이미 분석이 진행 중입니다. 완료 후 다시 시도해주세요.") -> None:
        super().__init__(message)
