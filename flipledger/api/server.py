"""FastAPI server exposing the ledger to a local UI."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from flipledger.application.imports import (
    PasteImportRequest,
    ScreenshotImportRequest,
    run_paste_import,
    run_screenshot_import,
    run_smart_fill,
)
from flipledger.application.ledger import (
    CandidatesRequest,
    DeleteRequest,
    FieldUpdateRequest,
    MergeRequest,
    SaveRecordRequest,
    list_records,
    run_delete,
    run_field_update,
    run_match_candidates,
    run_merge,
    run_save_record,
)
from flipledger.application.reporting import run_chart_data, run_narrative_report, run_stats
from flipledger.application.tagging import AutoTagger
from flipledger.domain.lifecycle import LifecycleState, count_by_state, parse_state
from flipledger.importers.json_backup import ImportMode, export_filename, export_records, repair_record
from flipledger.importers.screenshot import Leg
from flipledger.matching.keyword_categories import KeywordRuleLayers
from flipledger.runtime import (
    AIServiceClient,
    JsonSnapshotStorage,
    RecordStore,
    get_logger,
    get_paths,
    load_keyword_rule_layers,
)

logger = get_logger(__name__)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"status": "error", "message": message}, status_code=status_code)


def _counts(counts: dict[LifecycleState, int]) -> dict[str, int]:
    return {state.value: count for state, count in counts.items()}


async def _json_body(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def create_app(
    store: RecordStore | None = None,
    ai_client: Any | None = None,
    rule_layers: KeywordRuleLayers | None = None,
) -> FastAPI:
    """
    Build the API around a store.

    Args:
        store: Record store; by default loaded from the snapshot under the
            data directory and persisted back to it after every change
        ai_client: AI collaborator implementing the extraction,
            categorization and report calls; defaults to ``AIServiceClient``
        rule_layers: Keyword rules for match scoring; defaults to the
            bundled rules plus the user's file
    """
    if store is None:
        storage = JsonSnapshotStorage()
        store = RecordStore(storage.load(), persist=storage.save)
    client = ai_client if ai_client is not None else AIServiceClient()
    layers = rule_layers if rule_layers is not None else load_keyword_rule_layers()
    tagger = AutoTagger(store, client)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Create data directories on startup; let pending tag requests finish on shutdown."""
        get_paths().ensure_directories()
        logger.info("Serving %d records", len(store))
        yield
        await tagger.wait()

    app = FastAPI(title="flipledger", lifespan=lifespan)
    app.state.store = store
    app.state.tagger = tagger

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/records")
    async def get_records(state: str | None = None) -> JSONResponse:
        try:
            wanted = parse_state(state)
        except ValueError as exc:
            return _error(str(exc), 400)
        records = store.snapshot()
        return JSONResponse(
            {
                "records": [r.to_dict() for r in list_records(records, wanted)],
                "counts": _counts(count_by_state(records)),
            }
        )

    @app.post("/records")
    async def create_record(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if body is None:
            return _error("Expected a JSON object", 400)
        result = run_save_record(store, SaveRecordRequest(record=repair_record(body), is_new=True))
        if result.status == "duplicate_id":
            return _error(result.error or "Duplicate id", 409)
        assert result.record is not None
        tagger.schedule(result.record)
        return JSONResponse({"status": "success", "record": result.record.to_dict()}, status_code=201)

    @app.patch("/records/{record_id}")
    async def update_record(record_id: str, request: Request) -> JSONResponse:
        body = await _json_body(request)
        if body is None or not isinstance(body.get("field"), str):
            return _error("Expected {\"field\": ..., \"value\": ...}", 400)
        result = run_field_update(store, FieldUpdateRequest(record_id, body["field"], body.get("value")))
        if result.status == "not_found":
            return _error(result.error or "Not found", 404)
        if result.status == "invalid_field":
            return _error(result.error or "Invalid field", 400)
        assert result.record is not None
        if body["field"] == "name":
            tagger.schedule(result.record)
        return JSONResponse({"status": "success", "record": result.record.to_dict()})

    @app.delete("/records/{record_id}")
    async def remove_record(record_id: str, confirm: str | None = None) -> JSONResponse:
        result = run_delete(store, DeleteRequest(record_id=record_id, confirmation=confirm))
        if result.status == "not_found":
            return _error(result.message or "Not found", 404)
        if result.status == "confirmation_required":
            assert result.plan is not None
            return JSONResponse(
                {
                    "status": "confirmation_required",
                    "message": result.message,
                    "reversible": result.plan.reversible,
                    "accepted": sorted(result.plan.accepted_confirmations),
                },
                status_code=409,
            )
        if result.status == "split":
            assert result.purchase is not None and result.sale is not None
            return JSONResponse(
                {
                    "status": "split",
                    "fidelity": result.fidelity,
                    "message": result.message,
                    "purchase": result.purchase.to_dict(),
                    "sale": result.sale.to_dict(),
                }
            )
        return JSONResponse({"status": "deleted", "id": record_id})

    @app.get("/match/candidates")
    async def match_candidates(anchor_id: str | None = None, q: str | None = None) -> JSONResponse:
        result = run_match_candidates(store.snapshot(), CandidatesRequest(anchor_id=anchor_id, query=q), layers)
        return JSONResponse(
            {
                "anchor": result.anchor.to_dict() if result.anchor else None,
                "purchases": [r.to_dict() for r in result.purchases],
                "sales": [
                    {"record": m.record.to_dict(), "score": m.score, "details": m.match_details}
                    for m in result.sales
                ],
            }
        )

    @app.post("/merge")
    async def merge(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if body is None or not body.get("purchaseId") or not body.get("saleId"):
            return _error("Expected {\"purchaseId\": ..., \"saleId\": ...}", 400)
        result = run_merge(store, MergeRequest(str(body["purchaseId"]), str(body["saleId"])))
        if result.status == "not_found":
            return _error(result.error or "Not found", 404)
        if result.status == "ineligible":
            return _error(result.error or "Records cannot be merged", 409)
        assert result.merged is not None
        return JSONResponse({"status": "success", "record": result.merged.to_dict()})

    @app.post("/import")
    async def import_backup(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if body is None or not isinstance(body.get("text"), str):
            return _error("Expected {\"text\": ..., \"mode\": \"MERGE\" | \"REPLACE\"}", 400)
        raw_mode = str(body.get("mode") or "MERGE").upper()
        if raw_mode not in ("MERGE", "REPLACE"):
            return _error(f"Unknown import mode: {raw_mode}", 400)
        mode: ImportMode = "REPLACE" if raw_mode == "REPLACE" else "MERGE"
        result = run_paste_import(
            store,
            PasteImportRequest(text=body["text"], mode=mode, confirm_replace=body.get("confirm") is True),
        )
        if result.status in ("parse_error", "not_array"):
            return _error(result.error or "Invalid import", 400)
        payload = {
            "status": result.status,
            "mode": result.mode,
            "counts": _counts(result.counts),
            "added": result.added,
            "skippedExisting": result.skipped_existing,
            "skippedInvalid": result.skipped_invalid,
        }
        if result.status == "confirmation_required":
            payload["message"] = result.prompt
            return JSONResponse(payload, status_code=409)
        return JSONResponse(payload)

    @app.post("/import/screenshots")
    async def import_screenshots(request: Request) -> JSONResponse:
        form = await request.form()
        raw_leg = str(form.get("leg") or "").upper()
        if raw_leg not in ("BUY", "SELL"):
            return _error("Form field 'leg' must be BUY or SELL", 400)
        leg: Leg = "SELL" if raw_leg == "SELL" else "BUY"
        images = []
        for _, value in form.multi_items():
            if hasattr(value, "read"):
                images.append((getattr(value, "filename", None) or "screenshot", await value.read()))
        if not images:
            return _error("No file found in request", 400)

        result = await run_screenshot_import(store, client, ScreenshotImportRequest(images=images, leg=leg))
        if result.status == "service_unavailable":
            return _error(result.error or "Extraction service unavailable", 503)
        for record in result.records:
            tagger.schedule(record)
        return JSONResponse(
            {
                "status": result.status,
                "records": [r.to_dict() for r in result.records],
                "counts": _counts(result.counts),
            }
        )

    @app.post("/smart-fill")
    async def smart_fill(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if body is None or not isinstance(body.get("text"), str):
            return _error("Expected {\"text\": ...}", 400)
        result = await run_smart_fill(client, body["text"])
        if result.status == "empty_text":
            return _error(result.error or "Nothing to analyze", 400)
        if result.status == "service_unavailable":
            return _error(result.error or "Extraction service unavailable", 503)
        assert result.draft is not None
        return JSONResponse({"status": "success", "draft": result.draft.to_dict()})

    @app.get("/export")
    async def export() -> Response:
        today = date.today()
        return Response(
            content=export_records(store.snapshot()),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{export_filename(today)}"'},
        )

    @app.get("/stats")
    async def stats() -> dict[str, float | int]:
        return run_stats(store.snapshot()).to_dict()

    @app.get("/reports/charts")
    async def charts() -> dict[str, Any]:
        return run_chart_data(store.snapshot())

    @app.post("/reports/narrative")
    async def narrative() -> JSONResponse:
        result = await run_narrative_report(store.snapshot(), client)
        if result.status == "empty":
            return _error(result.error or "No records", 400)
        if result.status == "service_unavailable":
            return _error(result.error or "Report service unavailable", 503)
        return JSONResponse({"status": "success", "text": result.text, "payload": result.payload})

    return app


def main() -> None:
    import uvicorn

    uvicorn.run(create_app(), host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
