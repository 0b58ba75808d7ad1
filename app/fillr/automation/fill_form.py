from __future__ import annotations

import logging
import time
from collections import Counter, OrderedDict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from playwright.sync_api import sync_playwright

from ..config import CONFIG, resolve_form_url
from ..pipeline.autofill import autofill_fields, confirm_fields
from ..pipeline.learned import LearnedMappingStore, origin_for_url
from ..pipeline.scan import scan_html
from ..schemas import Confirmation, ConfirmationReport, FillReport
from .handles import playwright_context

LOGGER = logging.getLogger(__name__)

MAX_OPEN_SESSIONS = 4

# Sync Playwright objects are bound to the thread that created them.
BROWSER_THREAD = ThreadPoolExecutor(max_workers=1, thread_name_prefix="playwright")

OPEN_BROWSER_SESSIONS: "OrderedDict[str, Dict[str, object]]" = OrderedDict()


class SessionNotFound(KeyError):
    pass


def run_on_browser_thread(fn: Callable, *args, **kwargs):
    return BROWSER_THREAD.submit(fn, *args, **kwargs).result()


def _append_run_log(run_dir: Path, message: str) -> None:
    timestamp = datetime.utcnow().isoformat()
    with (run_dir / "run.log").open("a") as f:
        f.write(f"[{timestamp}] {message}\n")


def _close_session(session: Dict[str, object]) -> None:
    for name in ("context", "browser"):
        try:
            session[name].close()
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Closing %s failed: %s", name, exc)
    try:
        session["playwright"].stop()
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Stopping playwright failed: %s", exc)


def close_session(run_id: str) -> bool:
    session = OPEN_BROWSER_SESSIONS.pop(run_id, None)
    if session is None:
        return False
    _close_session(session)
    return True


def _remember_session(run_id: str, session: Dict[str, object]) -> None:
    OPEN_BROWSER_SESSIONS[run_id] = session
    while len(OPEN_BROWSER_SESSIONS) > MAX_OPEN_SESSIONS:
        stale_id, stale = OPEN_BROWSER_SESSIONS.popitem(last=False)
        LOGGER.info("Closing stale browser session %s", stale_id)
        _close_session(stale)


def _report_artifact(report: FillReport) -> Dict:
    # Artifacts keep labels and keys only, never profile values.
    return report.model_dump(mode="json", exclude={"pending": {"__all__": {"suggested_value"}}})


def fill_form(
    profile,
    run_dir: Path,
    form_url: Optional[str] = None,
    origin: Optional[str] = None,
    store: Optional[LearnedMappingStore] = None,
    headless: Optional[bool] = None,
    slow_mo_ms: Optional[int] = None,
    keep_open_ms: Optional[int] = None,
) -> Dict:
    """Open ``form_url`` in Chromium, scan it and run one autofill pass.

    With a negative ``keep_open_ms`` the browser stays open under the run id so
    pending fields can be confirmed with :func:`confirm_form` once the user
    has resolved them. Must be called on :data:`BROWSER_THREAD` in that case.
    """
    run_dir.mkdir(parents=True, exist_ok=True)
    trace_path = run_dir / "trace.zip"
    start_time = time.perf_counter()

    autofill_cfg = CONFIG.autofill
    headless = autofill_cfg.headless if headless is None else headless
    slow_mo_ms = autofill_cfg.slow_mo_ms if slow_mo_ms is None else slow_mo_ms
    keep_open_ms = autofill_cfg.keep_open_ms if keep_open_ms is None else keep_open_ms
    keep_open = keep_open_ms < 0

    target_url = resolve_form_url(form_url)
    _append_run_log(
        run_dir,
        "Autofill start. "
        f"Form URL: {target_url} | headless={headless} | slow_mo_ms={slow_mo_ms} | keep_open_ms={keep_open_ms}",
    )

    state: Dict[str, object] = {"report": FillReport(), "final_url": "", "field_count": 0}

    def _run(playwright):
        browser = playwright.chromium.launch(headless=headless, slow_mo=slow_mo_ms)
        context = browser.new_context()
        context.tracing.start(screenshots=True, snapshots=True, sources=True)
        page = context.new_page()
        scan_context = None
        try:
            page.set_default_timeout(15000)
            page.goto(target_url, wait_until="domcontentloaded", timeout=45000)
            try:
                page.wait_for_load_state("networkidle", timeout=10000)
            except Exception:  # noqa: BLE001
                pass
            if autofill_cfg.render_delay_ms > 0:
                page.wait_for_timeout(autofill_cfg.render_delay_ms)

            page_origin = origin or origin_for_url(page.url) or origin_for_url(target_url)
            snapshots = scan_html(page.content())
            scan_context = playwright_context(page, snapshots, origin=page_origin)
            state["field_count"] = len(scan_context)
            _append_run_log(run_dir, f"Form fields scanned: {len(scan_context)} (origin={page_origin})")

            report = autofill_fields(scan_context, profile, origin=page_origin, store=store)
            state["report"] = report
            for filled in report.filled:
                _append_run_log(
                    run_dir, f"Filled '{filled.label_text}' -> {filled.attribute_key} ({filled.confidence:.2f})"
                )
            for learned in report.learned_fills:
                _append_run_log(run_dir, f"Learned fill '{learned.label_text}' -> {learned.attribute_key}")
            for pending in report.pending:
                _append_run_log(
                    run_dir,
                    f"Pending '{pending.label_text}' -> {pending.suggested_key} ({pending.confidence:.2f})",
                )
            for skipped in report.skipped:
                _append_run_log(run_dir, f"Skip '{skipped.label_text}': {skipped.reason}")

            state["final_url"] = page.url
            if keep_open_ms > 0 and not headless:
                _append_run_log(run_dir, f"Keeping browser open for {keep_open_ms}ms")
                try:
                    page.wait_for_timeout(keep_open_ms)
                except Exception as exc:  # noqa: BLE001
                    _append_run_log(run_dir, f"Keep-open interrupted: {exc}")
        finally:
            try:
                context.tracing.stop(path=str(trace_path))
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Trace capture failed: %s", exc)
            if not keep_open:
                context.close()
                browser.close()
        return browser, context, page, scan_context

    if keep_open:
        playwright = sync_playwright().start()
        try:
            browser, context, page, scan_context = _run(playwright)
        except Exception:
            playwright.stop()
            raise
        _remember_session(
            run_dir.name,
            {
                "run_dir": run_dir,
                "browser": browser,
                "context": context,
                "page": page,
                "playwright": playwright,
                "scan_context": scan_context,
            },
        )
        _append_run_log(run_dir, "Browser kept open for confirmation (keep_open_ms<0)")
    else:
        with sync_playwright() as playwright:
            _run(playwright)

    report: FillReport = state["report"]  # type: ignore[assignment]
    if report.skipped:
        reason_counts = Counter(skipped.reason for skipped in report.skipped)
        _append_run_log(run_dir, f"Skipped reasons: {dict(reason_counts)}")
    duration_ms = int((time.perf_counter() - start_time) * 1000)
    _append_run_log(
        run_dir,
        f"Autofill complete. Filled {report.filled_count}; Pending {len(report.pending)}; "
        f"Skipped {len(report.skipped)}; Runtime {duration_ms}ms; Trace: {trace_path}",
    )

    return {
        "report": report,
        "report_artifact": _report_artifact(report),
        "field_count": state["field_count"],
        "duration_ms": duration_ms,
        "trace_path": str(trace_path),
        "final_url": state["final_url"],
        "form_url": target_url,
        "browser_kept_open": keep_open,
    }


def confirm_form(
    run_id: str,
    confirmations: Iterable[Confirmation],
    profile,
    store: Optional[LearnedMappingStore] = None,
    close: bool = True,
) -> ConfirmationReport:
    """Fill user-confirmed fields in a browser kept open by :func:`fill_form`."""
    session = OPEN_BROWSER_SESSIONS.get(run_id)
    if session is None or session.get("scan_context") is None:
        raise SessionNotFound(run_id)
    scan_context = session["scan_context"]
    run_dir: Path = session["run_dir"]  # type: ignore[assignment]
    report = confirm_fields(scan_context, confirmations, profile, store=store)
    _append_run_log(run_dir, f"Confirmed {report.confirmed_count} field(s)")
    for confirmed in report.confirmed:
        _append_run_log(run_dir, f"Confirmed {confirmed.field_id} -> {confirmed.attribute_key}")
    if close:
        close_session(run_id)
    return report
