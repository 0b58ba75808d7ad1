from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict

import anyio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .automation.fill_form import SessionNotFound, confirm_form, fill_form, run_on_browser_thread
from .automation.handles import descriptor_context, memory_context
from .config import CONFIG, learned_mappings_path
from .field_catalog import catalog_payload
from .pipeline.autofill import autofill_fields
from .pipeline.confidence import REASON_UNSAFE, SKIP, is_unsafe_label, route
from .pipeline.learned import LearnedMappingStore, load_store, origin_for_url, update_store
from .pipeline.scan import scan_html
from .pipeline.scoring import find_best_match
from .schemas import (
    AutofillRequest,
    ConfirmRequest,
    FieldDescriptor,
    MatchRequest,
    PlanRequest,
    ScanRequest,
)

RUNS_DIR = CONFIG.runs_dir

logging.basicConfig(level=CONFIG.log_level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
LOGGER = logging.getLogger("fillr")

app = FastAPI(title="Fillr")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/field_catalog")
async def field_catalog() -> Dict[str, object]:
    return catalog_payload()


def _create_run_dir() -> Path:
    run_id = datetime.utcnow().strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:8]
    run_dir = RUNS_DIR / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def _log_run(run_dir: Path, message: str) -> None:
    timestamp = datetime.utcnow().isoformat()
    with (run_dir / "run.log").open("a") as f:
        f.write(f"[{timestamp}] {message}\n")


def _write_json_artifact(run_dir: Path, filename: str, payload: Dict) -> None:
    path = run_dir / filename
    with path.open("w") as f:
        json.dump(payload, f, indent=2)


def _load_learned() -> LearnedMappingStore:
    return load_store(learned_mappings_path())


@app.post("/match")
async def match(payload: MatchRequest):
    descriptor = FieldDescriptor(field_id="match", **payload.model_dump())
    label = descriptor.display_label()
    if is_unsafe_label(label):
        return {"attribute_key": None, "score": 0.0, "action": SKIP, "reason": REASON_UNSAFE}
    result = find_best_match(descriptor.matching_text())
    decision = route(result)
    return {
        "attribute_key": result.attribute_key,
        "score": result.score,
        "action": decision.action,
        "reason": decision.reason,
    }


@app.post("/scan")
async def scan(payload: ScanRequest):
    snapshots = scan_html(payload.html)
    return {
        "fields": [snapshot.descriptor.model_dump(mode="json") for snapshot in snapshots],
        "options": {
            snapshot.descriptor.field_id: [option.text for option in snapshot.options]
            for snapshot in snapshots
            if snapshot.options
        },
    }


@app.post("/plan")
async def plan(payload: PlanRequest):
    """Dry-run one autofill pass against scanned HTML or bare descriptors."""
    if payload.html:
        context = memory_context(scan_html(payload.html), origin=payload.origin)
    else:
        context = descriptor_context(payload.fields, origin=payload.origin)
    if payload.learned_mappings:
        store = LearnedMappingStore.for_single_origin(payload.origin, payload.learned_mappings)
    else:
        store = _load_learned()
    report = autofill_fields(context, payload.profile, origin=payload.origin, store=store)
    return {"report": report.model_dump(mode="json")}


@app.post("/autofill")
async def autofill(payload: AutofillRequest):
    run_dir = _create_run_dir()
    _log_run(run_dir, "Starting autofill")
    origin = payload.origin or origin_for_url(payload.url)
    try:
        summary = await anyio.to_thread.run_sync(
            run_on_browser_thread,
            fill_form,
            payload.profile,
            run_dir,
            payload.url,
            origin,
            _load_learned(),
        )
    except Exception as exc:  # noqa: BLE001
        _log_run(run_dir, f"Autofill failed: {exc}")
        LOGGER.warning("Autofill failed for run %s: %s", run_dir.name, exc)
        return JSONResponse({"run_id": run_dir.name, "error": str(exc)}, status_code=400)

    report = summary.pop("report")
    _write_json_artifact(run_dir, "fill_report.json", summary.pop("report_artifact"))
    _log_run(run_dir, f"Autofill complete. Filled: {report.filled_count} Pending: {len(report.pending)}")
    return JSONResponse(
        {
            "run_id": run_dir.name,
            "origin": origin,
            "report": report.model_dump(mode="json"),
            "summary": summary,
        }
    )


@app.post("/confirm")
async def confirm(payload: ConfirmRequest):
    # Confirmations are recorded on a scratch store and merged under the store lock.
    learned = LearnedMappingStore()
    try:
        report = await anyio.to_thread.run_sync(
            run_on_browser_thread,
            confirm_form,
            payload.run_id,
            payload.confirmations,
            payload.profile,
            learned,
        )
    except SessionNotFound:
        return JSONResponse({"run_id": payload.run_id, "error": "No open browser session for run"}, status_code=404)
    update_store(learned_mappings_path(), lambda store: store.merge(learned))
    run_dir = RUNS_DIR / payload.run_id
    if run_dir.exists():
        _write_json_artifact(
            run_dir,
            "confirmation_report.json",
            {
                "confirmed_count": report.confirmed_count,
                "confirmed": [
                    {"field_id": item.field_id, "attribute_key": item.attribute_key} for item in report.confirmed
                ],
            },
        )
    return {"run_id": payload.run_id, "report": report.model_dump(mode="json")}


@app.get("/learned_mappings/{origin}")
async def get_learned_mappings(origin: str):
    return {"origin": origin, "mappings": _load_learned().for_origin(origin)}


@app.delete("/learned_mappings/{origin}")
async def delete_learned_mappings(origin: str):
    removed = update_store(learned_mappings_path(), lambda store: store.clear(origin))
    return {"origin": origin, "removed": removed}
