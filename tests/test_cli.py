import json
from pathlib import Path

import pytest

from defect_bridge import cli
from defect_bridge.connect import ServiceError
from defect_bridge.models import ImportSummary, Project, Stream
from fakes import FakeDefectSource


def _write_config(tmp_path: Path, **overrides) -> Path:
    rules_path = tmp_path / "rules.json"
    rules_path.write_text(
        json.dumps([{"repository": "coverity-c++", "key": "STATIC_C_NULL_RETURNS", "description": "d"}]),
        encoding="utf-8",
    )
    payload = {
        "enabled": True,
        "connect": {"host": "cim.local", "port": 8080, "user": "u", "password": "p"},
        "project": "alpha",
        "db_path": str(tmp_path / "issues.db"),
        "rules_path": str(rules_path),
    }
    payload.update(overrides)
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_init_creates_database(tmp_path: Path, capsys):
    db_path = tmp_path / "data" / "issues.db"

    assert cli.main(["init", "--db-path", str(db_path)]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["status"] == "initialized"
    assert db_path.exists()


def test_import_prints_summary(tmp_path: Path, capsys, monkeypatch):
    seen = []

    def fake_run_import(config, *, profile):
        seen.append((config.project, len(profile)))
        return ImportSummary(status="PROJECT_NOT_FOUND", project=config.project)

    monkeypatch.setattr("defect_bridge.cli.run_import", fake_run_import)

    assert cli.main(["import", "--config", str(_write_config(tmp_path))]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["status"] == "PROJECT_NOT_FOUND"
    assert seen == [("alpha", 1)]


def test_projects_and_streams_commands(tmp_path: Path, capsys, monkeypatch):
    project = Project(name="alpha", project_key=10001, streams=(Stream(name="alpha-trunk"),))
    monkeypatch.setattr(
        "defect_bridge.cli.build_client",
        lambda settings: FakeDefectSource(projects=[project]),
    )
    config = str(_write_config(tmp_path))

    assert cli.main(["projects", "--config", config]) == 0
    projects = json.loads(capsys.readouterr().out)
    assert projects[0]["project_key"] == 10001

    assert cli.main(["streams", "--config", config]) == 0
    streams = json.loads(capsys.readouterr().out)
    assert [item["name"] for item in streams] == ["alpha-trunk"]

    assert cli.main(["streams", "--config", config, "--project", "beta"]) == 1
    assert "Project not found" in json.loads(capsys.readouterr().out)["error"]


def test_projects_reports_service_errors(tmp_path: Path, capsys, monkeypatch):
    class BrokenSource(FakeDefectSource):
        def get_projects(self, name_pattern=None):
            raise ServiceError("connection refused")

    monkeypatch.setattr("defect_bridge.cli.build_client", lambda settings: BrokenSource())

    assert cli.main(["projects", "--config", str(_write_config(tmp_path))]) == 1
    assert json.loads(capsys.readouterr().out) == {"error": "connection refused"}


def test_import_with_missing_rules_file_exits_with_usage_error(tmp_path: Path, capsys):
    config = _write_config(tmp_path, rules_path=str(tmp_path / "absent.json"))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["import", "--config", str(config)])

    assert excinfo.value.code == 2
    assert "Rules file not found" in capsys.readouterr().err


def test_import_with_malformed_rules_file_exits_with_usage_error(tmp_path: Path, capsys):
    broken = tmp_path / "broken.json"
    broken.write_text("[{", encoding="utf-8")
    config = _write_config(tmp_path, rules_path=str(broken))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["import", "--config", str(config)])

    assert excinfo.value.code == 2
    assert "Invalid JSON" in capsys.readouterr().err
