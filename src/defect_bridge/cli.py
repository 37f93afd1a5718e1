from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from defect_bridge.config import ConfigError, load_config, load_rules
from defect_bridge.connect import ConnectSession, ProjectNotFoundError, ServiceError, build_client
from defect_bridge.db import IssueStore
from defect_bridge.logging_config import setup_logging
from defect_bridge.pipeline import run_import
from defect_bridge.reporting import generate_reports


def utc_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="defect-bridge",
        description="Import outstanding Coverity Connect defects as local issues",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Initialize local SQLite schema")
    init_parser.add_argument("--db-path", default="data/defect_bridge.db")

    import_parser = subparsers.add_parser("import", help="Fetch defects and record issues")
    import_parser.add_argument("--config", default="configs/config.example.json")

    report_parser = subparsers.add_parser("report", help="Generate report files from DB")
    report_parser.add_argument("--db-path", default="data/defect_bridge.db")
    report_parser.add_argument(
        "--output-dir",
        default=f"outputs/report-{utc_stamp()}",
    )
    report_parser.add_argument("--run-id", type=int, default=None)

    projects_parser = subparsers.add_parser("projects", help="List projects on the Connect server")
    projects_parser.add_argument("--config", default="configs/config.example.json")
    projects_parser.add_argument("--name", default=None, help="Project name pattern")

    streams_parser = subparsers.add_parser("streams", help="List the streams of a project")
    streams_parser.add_argument("--config", default="configs/config.example.json")
    streams_parser.add_argument("--project", default=None)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(getattr(logging, args.log_level))

    if args.command == "init":
        store = IssueStore(args.db_path)
        store.init_schema()
        store.close()
        print(json.dumps({"db_path": str(Path(args.db_path).resolve()), "status": "initialized"}, indent=2))
        return 0

    if args.command == "report":
        summary = generate_reports(
            db_path=args.db_path,
            output_dir=args.output_dir,
            run_id=args.run_id,
        )
        print(json.dumps(summary, indent=2, ensure_ascii=True))
        return 0

    try:
        config = load_config(args.config)
        profile = load_rules(config.rules_path) if args.command == "import" else None
    except ConfigError as exc:
        parser.error(str(exc))
        return 2

    if args.command == "import":
        summary = run_import(config, profile=profile)
        print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=True))
        return 0

    session = ConnectSession(build_client(config.connect))
    try:
        if args.command == "projects":
            projects = session.source.get_projects(args.name)
            payload = [asdict(project) for project in projects]
        elif args.command == "streams":
            streams = session.static_streams(args.project or config.project)
            payload = [asdict(stream) for stream in streams]
        else:
            parser.error(f"Unsupported command: {args.command}")
            return 2
    except (ServiceError, ProjectNotFoundError) as exc:
        print(json.dumps({"error": str(exc)}, indent=2))
        return 1

    print(json.dumps(payload, indent=2, ensure_ascii=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
