#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

from criteria_analyzer.config import settings
from criteria_analyzer.errors import CredentialMissing
from criteria_analyzer.exporting import csv_filename, records_to_csv
from criteria_analyzer.ingestion import AnalysisMode, BatchSummary, IngestionOrchestrator
from criteria_analyzer.observability import configure_logging
from criteria_analyzer.session import Session, UploadedFile
from criteria_analyzer.upstage import RemoteProxyTransport, UpstageClient, UpstageProxy


def _load_uploads(paths: list[str]) -> list[UploadedFile]:
    uploads: list[UploadedFile] = []
    for raw_path in paths:
        path = Path(raw_path)
        if not path.is_file():
            print(f"Skipping missing file: {path}", file=sys.stderr)
            continue
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        uploads.append(UploadedFile(filename=path.name, content=path.read_bytes(), content_type=content_type))
    return uploads


def build_orchestrator() -> IngestionOrchestrator:
    if settings.proxy_url.strip():
        transport = RemoteProxyTransport(settings.proxy_url.strip(), timeout=settings.upstream_timeout_seconds)
    else:
        transport = UpstageProxy(settings)
    return IngestionOrchestrator(settings, UpstageClient(settings, transport))


def _print_summary(summary: BatchSummary) -> None:
    for event in summary.events:
        print(event.render())
    print(f"Processed {summary.processed}/{summary.total} file(s); appended {summary.appended_count} record(s).")
    if summary.review_indices:
        rows = ", ".join(str(index + 1) for index in summary.review_indices)
        print(f"Rows needing manual review: {rows}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Analyze selection-criteria checklist documents and export the results as CSV."
    )
    parser.add_argument("files", nargs="+", help="PDF or HWP checklist documents.")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in AnalysisMode],
        default=AnalysisMode.ANALYZE.value,
        help="'analyze' reads one record per document with the chat model; 'extract' maps table rows.",
    )
    parser.add_argument("--out", default=None, help="CSV output path. Defaults to <prefix>_<session id>.csv.")
    parser.add_argument("--verbose", action="store_true", help="Emit JSON process logs to stderr.")
    args = parser.parse_args()

    if args.verbose:
        configure_logging(settings.log_level)

    session = Session.new(settings.supported_extensions_list)
    accepted = session.add_files(_load_uploads(args.files))
    if not accepted:
        print("지원되는 파일 형식(PDF, HWP)이 아닙니다.", file=sys.stderr)
        return 1

    try:
        summary = asyncio.run(build_orchestrator().run(session, mode=AnalysisMode(args.mode)))
    except CredentialMissing as exc:
        print(f"{exc} Set UPSTAGE_API_KEY or PROXY_URL.", file=sys.stderr)
        return 1

    _print_summary(summary)

    csv_text = records_to_csv(session.results.records)
    if csv_text is None:
        print("다운로드할 데이터가 없습니다.")
        return 0

    out_path = Path(args.out or csv_filename(settings.csv_filename_prefix, session.session_id))
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(csv_text, encoding="utf-8", newline="")
    print(f"Wrote results: {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
