from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable
from urllib.parse import quote

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import PlainTextResponse, Response

from criteria_analyzer.api.contracts import RecordEditRequest
from criteria_analyzer.config import settings
from criteria_analyzer.errors import BatchInProgress, CredentialMissing, IndexOutOfRange, NoFilesQueued
from criteria_analyzer.exporting import (
    EMPTY_COPY_NOTICE,
    EMPTY_DOWNLOAD_NOTICE,
    csv_filename,
    records_to_clipboard_text,
    records_to_csv,
)
from criteria_analyzer.ingestion import AnalysisMode, IngestionOrchestrator
from criteria_analyzer.session import Session, UploadedFile

logger = logging.getLogger("criteria.api")

SessionGetter = Callable[[], Session]
OrchestratorGetter = Callable[[], IngestionOrchestrator]

UNSUPPORTED_FORMAT_NOTICE = "지원되는 파일 형식(PDF, HWP)이 아닙니다."
CREDENTIAL_NOTICE = "API 키가 설정되지 않았습니다. 설정에서 API 키를 입력해주세요."


def build_session_router(
    *,
    get_session: SessionGetter,
    get_ingestion_orchestrator: OrchestratorGetter,
) -> APIRouter:
    router = APIRouter(prefix="/session")

    def serialize_records(session: Session) -> list[dict[str, str]]:
        return [record.to_external() for record in session.results.records]

    @router.get("")
    def describe_session() -> dict[str, object]:
        return get_session().describe()

    @router.post("/reset")
    def reset_session() -> dict[str, object]:
        session = get_session()
        session.reset()
        return session.describe()

    @router.post("/files")
    async def upload_files(files: list[UploadFile] = File(...)) -> dict[str, object]:
        session = get_session()
        buffered: list[UploadedFile] = []
        for upload in files:
            safe_name = Path(upload.filename or "upload.bin").name or "upload.bin"
            content = await upload.read(settings.max_upload_file_bytes + 1)
            if len(content) > settings.max_upload_file_bytes:
                raise HTTPException(
                    status_code=413,
                    detail=f"File '{safe_name}' exceeds max size of {settings.max_upload_file_bytes} bytes.",
                )
            buffered.append(
                UploadedFile(
                    filename=safe_name,
                    content=content,
                    content_type=upload.content_type or "application/octet-stream",
                )
            )

        accepted = session.add_files(buffered)
        logger.info(
            "files_uploaded",
            extra={
                "event": "files_uploaded",
                "session_id": session.session_id,
                "accepted_count": len(accepted),
                "rejected_count": len(buffered) - len(accepted),
            },
        )
        if not accepted:
            raise HTTPException(status_code=415, detail=UNSUPPORTED_FORMAT_NOTICE)
        return {
            "accepted": [upload.describe() for upload in accepted],
            "rejected": [upload.filename for upload in buffered if not session.is_supported(upload.filename)],
            "session": session.describe(),
        }

    @router.delete("/files")
    def clear_files() -> dict[str, object]:
        session = get_session()
        session.clear_files()
        return session.describe()

    @router.post("/analyze")
    async def analyze(mode: AnalysisMode = Query(default=AnalysisMode.ANALYZE)) -> dict[str, object]:
        session = get_session()
        orchestrator = get_ingestion_orchestrator()
        try:
            summary = await orchestrator.run(session, mode=mode)
        except NoFilesQueued as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CredentialMissing as exc:
            raise HTTPException(status_code=400, detail=CREDENTIAL_NOTICE) from exc
        except BatchInProgress as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {**summary.to_dict(), "results": serialize_records(session)}

    @router.get("/results")
    def list_results() -> dict[str, object]:
        session = get_session()
        return {"session_id": session.session_id, "results": serialize_records(session)}

    @router.post("/results")
    def insert_blank_result() -> dict[str, object]:
        index, record = get_session().results.insert_blank()
        return {"index": index, "record": record.to_external(), "open_editor": True}

    @router.put("/results/{index}")
    def update_result(index: int, payload: RecordEditRequest) -> dict[str, object]:
        try:
            record = get_session().results.update(index, payload.to_record())
        except IndexOutOfRange as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"index": index, "record": record.to_external()}

    @router.delete("/results/{index}")
    def delete_result(index: int) -> dict[str, object]:
        session = get_session()
        try:
            session.results.delete(index)
        except IndexOutOfRange as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"results": serialize_records(session)}

    @router.get("/raw")
    def list_raw_exchanges() -> dict[str, object]:
        return {"raw": [exchange.to_dict() for exchange in get_session().raw_exchanges]}

    @router.get("/events")
    def last_batch_events() -> dict[str, object]:
        last_batch = get_session().last_batch or {}
        return {"events": last_batch.get("events", [])}

    @router.get("/export.csv")
    def export_csv() -> Response:
        session = get_session()
        csv_text = records_to_csv(session.results.records)
        if csv_text is None:
            raise HTTPException(status_code=409, detail=EMPTY_DOWNLOAD_NOTICE)
        filename = csv_filename(settings.csv_filename_prefix, session.session_id)
        return Response(
            content=csv_text.encode("utf-8"),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
        )

    @router.get("/export/clipboard")
    def export_clipboard() -> PlainTextResponse:
        text = records_to_clipboard_text(get_session().results.records)
        if text is None:
            raise HTTPException(status_code=409, detail=EMPTY_COPY_NOTICE)
        return PlainTextResponse(text)

    return router
