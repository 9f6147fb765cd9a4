"""Batch ingestion: parse each uploaded file, extract or analyze it, then reconcile results.

Files are processed strictly one at a time in upload order. Only one upstream call is ever in flight, so the
progress counter and the event log stay in upload order. Do not parallelize this loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging
from typing import Any, Callable

from criteria_analyzer.analysis import fallback_payload, parse_analysis_reply, record_from_payload
from criteria_analyzer.checklist import ChecklistRecord, RawExchange
from criteria_analyzer.config import Settings
from criteria_analyzer.errors import (
    BatchInProgress,
    CredentialMissing,
    MalformedModelOutput,
    NoFilesQueued,
    UpstreamHttpError,
)
from criteria_analyzer.parsing import extract_document_text, extract_table_records
from criteria_analyzer.prompts import build_chat_messages
from criteria_analyzer.session import Session, UploadedFile
from criteria_analyzer.upstage import UpstageClient

logger = logging.getLogger("criteria.ingest")

CREDENTIAL_FAILURE_MESSAGE = "❌ API 키 오류: 크레딧 부족 또는 유효하지 않은 API 키"


class AnalysisMode(str, Enum):
    ANALYZE = "analyze"
    EXTRACT = "extract"


class FileState(str, Enum):
    QUEUED = "queued"
    PARSING = "parsing"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    APPENDED = "appended"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    timestamp: datetime
    level: str
    message: str

    def render(self) -> str:
        return f"[{self.timestamp.strftime('%H:%M:%S')}] {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "message": self.message,
            "line": self.render(),
        }


@dataclass
class FileOutcome:
    filename: str
    state: FileState = FileState.QUEUED
    records: list[ChecklistRecord] = field(default_factory=list)
    record_indices: list[int] = field(default_factory=list)
    needs_review: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "filename": self.filename,
            "state": self.state.value,
            "record_indices": list(self.record_indices),
            "needs_review": self.needs_review,
            "error": self.error,
        }


@dataclass
class BatchSummary:
    session_id: str
    mode: AnalysisMode
    total: int
    processed: int = 0
    outcomes: list[FileOutcome] = field(default_factory=list)
    events: list[ProgressEvent] = field(default_factory=list)

    @property
    def appended_count(self) -> int:
        return sum(len(outcome.record_indices) for outcome in self.outcomes)

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state is FileState.FAILED)

    @property
    def review_indices(self) -> list[int]:
        indices: list[int] = []
        for outcome in self.outcomes:
            if outcome.needs_review:
                indices.extend(outcome.record_indices)
        return indices

    def to_dict(self) -> dict[str, object]:
        return {
            "session_id": self.session_id,
            "mode": self.mode.value,
            "processed": self.processed,
            "total": self.total,
            "appended": self.appended_count,
            "failed": self.failed_count,
            "review_indices": self.review_indices,
            "files": [outcome.to_dict() for outcome in self.outcomes],
            "events": [event.to_dict() for event in self.events],
        }


ProgressCallback = Callable[[int, int], None]


def is_credential_failure(exc: BaseException) -> bool:
    if isinstance(exc, CredentialMissing):
        return True
    if isinstance(exc, UpstreamHttpError):
        if exc.status_code == 401:
            return True
        if "api_key" in str(exc.body).lower():
            return True
    return "api_key" in str(exc).lower()


def describe_failure(exc: BaseException, filename: str) -> str:
    if is_credential_failure(exc):
        return CREDENTIAL_FAILURE_MESSAGE
    return f'❌ "{filename}" 분석 실패: {exc}'


class IngestionOrchestrator:
    def __init__(
        self,
        settings: Settings,
        client: UpstageClient,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings
        self._client = client
        self._clock = clock

    async def run(
        self,
        session: Session,
        *,
        mode: AnalysisMode = AnalysisMode.ANALYZE,
        on_progress: ProgressCallback | None = None,
    ) -> BatchSummary:
        if not session.files:
            raise NoFilesQueued()
        if not self._client.has_credential:
            logger.error("batch_credential_missing", extra={"event": "batch_credential_missing"})
            raise CredentialMissing()

        if session.batch_lock.locked():
            logger.warning(
                "batch_rejected_in_progress",
                extra={"event": "batch_rejected_in_progress", "session_id": session.session_id},
            )
            raise BatchInProgress()
        async with session.batch_lock:
            return await self._run_batch(session, mode, on_progress)

    async def _run_batch(
        self,
        session: Session,
        mode: AnalysisMode,
        on_progress: ProgressCallback | None,
    ) -> BatchSummary:
        files = list(session.files)
        session.start_batch()
        summary = BatchSummary(
            session_id=session.session_id,
            mode=mode,
            total=len(files),
            outcomes=[FileOutcome(filename=upload.filename) for upload in files],
        )
        logger.info(
            "batch_started",
            extra={"event": "batch_started", "session_id": session.session_id, "mode": mode.value, "file_count": len(files)},
        )

        for upload, outcome in zip(files, summary.outcomes):
            try:
                await self._process_file(session, upload, outcome, mode, summary)
            except CredentialMissing:
                raise
            except Exception as exc:
                outcome.state = FileState.FAILED
                outcome.records = []
                outcome.error = str(exc)
                logger.warning(
                    "file_failed",
                    extra={
                        "event": "file_failed",
                        "file_name": upload.filename,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
                self._emit(summary, "error", describe_failure(exc, upload.filename))
            summary.processed += 1
            if on_progress is not None:
                on_progress(summary.processed, summary.total)

        self._append_results(session, summary)
        if summary.appended_count:
            self._emit(summary, "success", f"🎉 {summary.appended_count}개 소프트웨어 분석 완료!")
        session.last_batch = summary.to_dict()
        logger.info(
            "batch_completed",
            extra={
                "event": "batch_completed",
                "session_id": session.session_id,
                "processed": summary.processed,
                "appended": summary.appended_count,
                "failed": summary.failed_count,
            },
        )
        return summary

    async def _process_file(
        self,
        session: Session,
        upload: UploadedFile,
        outcome: FileOutcome,
        mode: AnalysisMode,
        summary: BatchSummary,
    ) -> None:
        outcome.state = FileState.PARSING
        self._emit(summary, "info", f'📤 "{upload.filename}" 문서 파싱 중...')
        output_formats = ("text", "markdown", "html") if mode is AnalysisMode.EXTRACT else ("text", "markdown")
        parsed, raw_parse = await self._client.parse_document(
            filename=upload.filename,
            content=upload.content,
            content_type=upload.content_type,
            output_formats=output_formats,
        )

        analysis_raw: dict[str, Any]
        if mode is AnalysisMode.EXTRACT:
            outcome.state = FileState.EXTRACTING
            self._emit(summary, "info", f'🔎 "{upload.filename}" 표 추출 중...')
            records = extract_table_records(parsed)
            analysis_raw = {"rows": [record.to_external() for record in records]}
            if not records:
                outcome.needs_review = True
                records = [record_from_payload(fallback_payload(upload.filename))]
                self._emit(summary, "info", f'✍️ "{upload.filename}" 표를 찾지 못해 수동 입력이 필요합니다.')
        else:
            document_text = extract_document_text(parsed)
            outcome.state = FileState.ANALYZING
            self._emit(summary, "info", f'🤖 "{upload.filename}" AI 분석 중...')
            reply, _ = await self._client.complete_chat(
                build_chat_messages(document_text, max_chars=self._settings.prompt_max_document_chars)
            )
            try:
                analysis_raw = parse_analysis_reply(reply)
            except MalformedModelOutput as exc:
                logger.warning(
                    "model_output_malformed",
                    extra={"event": "model_output_malformed", "file_name": upload.filename, "error": str(exc)},
                )
                outcome.needs_review = True
                analysis_raw = fallback_payload(upload.filename)
            records = [record_from_payload(analysis_raw)]

        session.raw_exchanges.append(
            RawExchange(filename=upload.filename, parse_response=raw_parse, analysis_response=analysis_raw)
        )
        outcome.records = records
        self._emit(summary, "success", f'✅ "{upload.filename}" 분석 완료')

    @staticmethod
    def _append_results(session: Session, summary: BatchSummary) -> None:
        for outcome in summary.outcomes:
            if outcome.state is FileState.FAILED:
                continue
            for record in outcome.records:
                session.results.append(record)
                outcome.record_indices.append(len(session.results) - 1)
            outcome.state = FileState.APPENDED

    def _emit(self, summary: BatchSummary, level: str, message: str) -> None:
        event = ProgressEvent(timestamp=self._clock(), level=level, message=message)
        summary.events.append(event)
        log_level = logging.WARNING if level == "error" else logging.INFO
        logger.log(log_level, "progress_event", extra={"event": "progress_event", "level": level, "progress": message})
