from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path

from defect_bridge.db import IssueStore


def generate_reports(
    *,
    db_path: str,
    output_dir: str,
    run_id: int | None = None,
) -> dict:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    store = IssueStore(db_path)
    store.init_schema()

    try:
        target_run = run_id or _latest_run_id(store)
        if target_run is None:
            raise RuntimeError("No import runs found. Execute an import first.")

        run_rows = store.query("SELECT * FROM import_runs WHERE id = ?", (int(target_run),))
        if not run_rows:
            raise RuntimeError(f"Run {target_run} not found")

        run_row = dict(run_rows[0])

        by_rule = [
            dict(row)
            for row in store.query(
                """
                SELECT
                    rule_repository,
                    rule_key,
                    COUNT(*) AS issue_count
                FROM issues
                WHERE run_id = ?
                GROUP BY rule_repository, rule_key
                ORDER BY issue_count DESC, rule_key ASC
                """,
                (int(target_run),),
            )
        ]

        by_file = [
            dict(row)
            for row in store.query(
                """
                SELECT
                    file_path,
                    language,
                    COUNT(*) AS issue_count
                FROM issues
                WHERE run_id = ?
                GROUP BY file_path, language
                ORDER BY issue_count DESC, file_path ASC
                """,
                (int(target_run),),
            )
        ]

        issues = [
            {
                "cid": item["attributes"].get("coverity-issue-id"),
                "rule_repository": item["rule_repository"],
                "rule_key": item["rule_key"],
                "file_path": item["file_path"],
                "line_number": item["line_number"],
            }
            for item in store.issues_for_run(int(target_run))
        ]
    finally:
        store.close()

    summary = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "db_path": str(Path(db_path).resolve()),
        "run": run_row,
        "counts": {
            "rules_triggered": len(by_rule),
            "files_with_issues": len(by_file),
            "issues": len(issues),
        },
        "files": {},
    }

    run_json = out_dir / "run_summary.json"
    rule_csv = out_dir / "issues_by_rule.csv"
    file_csv = out_dir / "issues_by_file.csv"
    issues_csv = out_dir / "issues.csv"

    _write_csv(rule_csv, by_rule)
    _write_csv(file_csv, by_file)
    _write_csv(issues_csv, issues)

    summary["files"] = {
        "run_summary": str(run_json.resolve()),
        "issues_by_rule": str(rule_csv.resolve()),
        "issues_by_file": str(file_csv.resolve()),
        "issues": str(issues_csv.resolve()),
    }

    _write_json(run_json, summary)
    return summary


def _latest_run_id(store: IssueStore) -> int | None:
    rows = store.query("SELECT id FROM import_runs ORDER BY id DESC LIMIT 1")
    if not rows:
        return None
    return int(rows[0]["id"])


def _write_json(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=True)


def _write_csv(path: Path, rows: list[dict]) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        if not rows:
            handle.write("")
            return

        fieldnames: list[str] = []
        seen = set()
        for row in rows:
            for key in row:
                if key not in seen:
                    seen.add(key)
                    fieldnames.append(key)

        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
