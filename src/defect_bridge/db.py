from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from defect_bridge.models import Issue, Resource


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class IssueStore:
    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")

    def close(self) -> None:
        self.conn.close()

    def init_schema(self) -> None:
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS import_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                started_at TEXT NOT NULL,
                finished_at TEXT,
                project TEXT NOT NULL,
                status TEXT NOT NULL,
                defects_count INTEGER NOT NULL DEFAULT 0,
                issues_count INTEGER NOT NULL DEFAULT 0,
                skipped_defects INTEGER NOT NULL DEFAULT 0,
                skipped_instances INTEGER NOT NULL DEFAULT 0,
                notes TEXT
            );

            CREATE TABLE IF NOT EXISTS issues (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id INTEGER NOT NULL,
                rule_repository TEXT NOT NULL,
                rule_key TEXT NOT NULL,
                file_path TEXT NOT NULL,
                language TEXT,
                line_number INTEGER,
                message TEXT NOT NULL,
                attributes TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY(run_id) REFERENCES import_runs(id) ON DELETE CASCADE
            );

            CREATE INDEX IF NOT EXISTS idx_issues_run_id ON issues(run_id);
            CREATE INDEX IF NOT EXISTS idx_issues_rule ON issues(rule_repository, rule_key);
            CREATE INDEX IF NOT EXISTS idx_issues_file_path ON issues(file_path);
            """
        )
        self.conn.commit()

    def start_run(self, project: str) -> int:
        cursor = self.conn.execute(
            """
            INSERT INTO import_runs (started_at, project, status)
            VALUES (?, ?, 'RUNNING')
            """,
            (utc_now(), project),
        )
        self.conn.commit()
        return int(cursor.lastrowid)

    def finish_run(
        self,
        run_id: int,
        *,
        status: str,
        defects_count: int,
        issues_count: int,
        skipped_defects: int,
        skipped_instances: int,
        notes: str | None = None,
    ) -> None:
        self.conn.execute(
            """
            UPDATE import_runs
            SET finished_at = ?,
                status = ?,
                defects_count = ?,
                issues_count = ?,
                skipped_defects = ?,
                skipped_instances = ?,
                notes = ?
            WHERE id = ?
            """,
            (
                utc_now(),
                status,
                int(defects_count),
                int(issues_count),
                int(skipped_defects),
                int(skipped_instances),
                notes,
                int(run_id),
            ),
        )
        self.conn.commit()

    def add_issue(self, run_id: int, resource: Resource, issue: Issue) -> bool:
        try:
            self.conn.execute(
                """
                INSERT INTO issues (
                    run_id,
                    rule_repository,
                    rule_key,
                    file_path,
                    language,
                    line_number,
                    message,
                    attributes,
                    created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(run_id),
                    issue.rule_key.repository,
                    issue.rule_key.rule,
                    resource.path,
                    resource.language,
                    issue.line,
                    issue.message,
                    json.dumps(issue.attributes, sort_keys=True),
                    utc_now(),
                ),
            )
        except sqlite3.IntegrityError:
            return False
        self.conn.commit()
        return True

    def issues_for_run(self, run_id: int) -> list[dict]:
        rows = self.query(
            """
            SELECT rule_repository, rule_key, file_path, language, line_number, message, attributes
            FROM issues
            WHERE run_id = ?
            ORDER BY id ASC
            """,
            (int(run_id),),
        )
        issues = []
        for row in rows:
            item = dict(row)
            item["attributes"] = json.loads(item["attributes"])
            issues.append(item)
        return issues

    def query(self, sql: str, params: tuple | None = None) -> list[sqlite3.Row]:
        cursor = self.conn.execute(sql, params or ())
        return list(cursor.fetchall())
