from __future__ import annotations

import argparse
import json
from pathlib import Path

from fillr.automation.fill_form import fill_form
from fillr.automation.handles import memory_context
from fillr.config import CONFIG, learned_mappings_path, resolve_form_url
from fillr.main import _create_run_dir, _log_run, _write_json_artifact
from fillr.pipeline.autofill import autofill_fields
from fillr.pipeline.learned import load_store, origin_for_url
from fillr.pipeline.scan import scan_html
from fillr.schemas import Profile


def _fixture_form_uri() -> str:
    fixtures_dir = Path(__file__).resolve().parents[1] / "tests" / "fixtures"
    form_path = fixtures_dir / "form.html"
    if not form_path.exists():
        raise FileNotFoundError(f"Local form fixture missing: {form_path}")
    return form_path.resolve().as_uri()


def _load_profile(path: Path) -> Profile:
    return Profile.model_validate(json.loads(path.read_text()))


def _dry_run(profile: Profile, html_path: Path, origin: str) -> None:
    context = memory_context(scan_html(html_path.read_text()), origin=origin)
    report = autofill_fields(context, profile, origin=origin, store=load_store(learned_mappings_path()))
    print(json.dumps(report.model_dump(mode="json"), indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(description="Autofill a form page from a profile JSON file.")
    parser.add_argument("profile", type=Path, help="Profile JSON file")
    parser.add_argument("--url", default=None, help="Form URL (defaults to FILLR_FORM_URL or the local fixture)")
    parser.add_argument("--html", type=Path, default=None, help="Plan against a saved HTML page without a browser")
    parser.add_argument("--origin", default=None)
    parser.add_argument("--headed", action="store_true")
    args = parser.parse_args()

    profile = _load_profile(args.profile)
    if args.html:
        _dry_run(profile, args.html, args.origin or "file")
        return

    form_url = resolve_form_url(args.url)
    if form_url == CONFIG.autofill.form_url:
        form_url = _fixture_form_uri()
    run_dir = _create_run_dir()
    _log_run(run_dir, "Script autofill run started")
    summary = fill_form(
        profile,
        run_dir,
        form_url=form_url,
        origin=args.origin or origin_for_url(form_url),
        store=load_store(learned_mappings_path()),
        headless=not args.headed,
        keep_open_ms=0,
    )
    report = summary.pop("report")
    _write_json_artifact(run_dir, "fill_report.json", summary.pop("report_artifact"))
    print(json.dumps({"run_id": run_dir.name, "report": report.model_dump(mode="json"), **summary}, indent=2))


if __name__ == "__main__":
    main()
