import csv
import json
from pathlib import Path

import pytest

from defect_bridge.db import IssueStore
from defect_bridge.models import Issue, Resource, RuleKey
from defect_bridge.reporting import generate_reports


def _seed(db_path: Path) -> int:
    store = IssueStore(db_path)
    store.init_schema()

    run_id = store.start_run(project="alpha")
    resource = Resource(path="src/main.c", absolute_path="/work/src/main.c", language="c++")
    for cid, line in ((777, 42), (778, 50)):
        created = store.add_issue(
            run_id,
            resource,
            Issue(
                rule_key=RuleKey(repository="coverity-c++", rule="STATIC_C_NULL_RETURNS"),
                file_path=resource.path,
                line=line,
                message="Null return value is dereferenced.",
                attributes={"coverity-issue-id": str(cid)},
            ),
        )
        assert created

    store.finish_run(
        run_id,
        status="SUCCESS",
        defects_count=2,
        issues_count=2,
        skipped_defects=0,
        skipped_instances=0,
    )
    store.close()
    return run_id


def test_store_run_and_issues(tmp_path: Path):
    db_path = tmp_path / "issues.db"
    run_id = _seed(db_path)

    store = IssueStore(db_path)
    try:
        run = dict(store.query("SELECT * FROM import_runs WHERE id = ?", (run_id,))[0])
        issues = store.issues_for_run(run_id)
    finally:
        store.close()

    assert run["status"] == "SUCCESS"
    assert run["issues_count"] == 2
    assert run["finished_at"]
    assert [item["line_number"] for item in issues] == [42, 50]
    assert issues[0]["attributes"] == {"coverity-issue-id": "777"}
    assert issues[0]["language"] == "c++"


def test_add_issue_for_unknown_run_fails(tmp_path: Path):
    store = IssueStore(tmp_path / "issues.db")
    store.init_schema()
    try:
        created = store.add_issue(
            999,
            Resource(path="a.c", absolute_path="/a.c"),
            Issue(rule_key=RuleKey("coverity-c++", "X"), file_path="a.c", line=1, message="m"),
        )
    finally:
        store.close()

    assert created is False


def test_generate_reports(tmp_path: Path):
    db_path = tmp_path / "issues.db"
    run_id = _seed(db_path)
    out_dir = tmp_path / "report"

    summary = generate_reports(db_path=str(db_path), output_dir=str(out_dir))

    assert summary["run"]["id"] == run_id
    assert summary["counts"] == {"rules_triggered": 1, "files_with_issues": 1, "issues": 2}

    payload = json.loads((out_dir / "run_summary.json").read_text(encoding="utf-8"))
    assert payload["files"]["issues"].endswith("issues.csv")

    with (out_dir / "issues.csv").open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["cid"] for row in rows] == ["777", "778"]


def test_generate_reports_without_runs(tmp_path: Path):
    with pytest.raises(RuntimeError, match="No import runs"):
        generate_reports(db_path=str(tmp_path / "empty.db"), output_dir=str(tmp_path / "out"))
