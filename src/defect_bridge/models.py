from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class ConnectSettings:
    host: str
    port: int
    user: str
    password: str
    ssl: bool = False
    timeout: int = 60

    @property
    def scheme(self) -> str:
        return "https" if self.ssl else "http"

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


@dataclass(frozen=True)
class SourceSettings:
    base_dir: str = "."
    source_dirs: tuple[str, ...] = ()
    language: str | None = None


@dataclass(frozen=True)
class AppConfig:
    enabled: bool
    connect: ConnectSettings
    project: str
    sources: SourceSettings
    rules_path: str
    db_path: str
    strip_prefix: str | None = None
    source_path: str | None = None


@dataclass(frozen=True)
class Stream:
    name: str
    language: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class Project:
    name: str
    project_key: int
    description: str | None = None
    streams: tuple[Stream, ...] = ()


@dataclass(frozen=True)
class MergedDefect:
    cid: int
    file_path: str
    checker_name: str | None = None
    domain: str | None = None
    status: str | None = None
    classification: str | None = None
    action: str | None = None
    severity: str | None = None
    function_name: str | None = None


@dataclass(frozen=True)
class MergedDefectPage:
    defects: tuple[MergedDefect, ...]
    total: int


@dataclass(frozen=True)
class Event:
    main: bool = False
    line_number: int | None = None
    file_path: str | None = None
    tag: str | None = None
    description: str | None = None
    number: int | None = None


@dataclass(frozen=True)
class DefectInstance:
    checker_name: str
    domain: str
    subcategory: str | None = None
    events: tuple[Event, ...] = ()


@dataclass(frozen=True)
class StreamDefect:
    cid: int
    stream_name: str | None = None
    instances: tuple[DefectInstance, ...] = ()


@dataclass(frozen=True)
class RuleKey:
    repository: str
    rule: str

    def __str__(self) -> str:
        return f"{self.repository}:{self.rule}"


@dataclass(frozen=True)
class Rule:
    repository: str
    key: str
    name: str
    description: str
    severity: str = "MAJOR"
    active: bool = True

    @property
    def rule_key(self) -> RuleKey:
        return RuleKey(repository=self.repository, rule=self.key)


@dataclass(frozen=True)
class Resource:
    path: str
    absolute_path: str
    language: str | None = None


@dataclass(frozen=True)
class Issue:
    rule_key: RuleKey
    file_path: str
    line: int | None
    message: str
    attributes: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["rule_key"] = str(self.rule_key)
        return payload


@dataclass(frozen=True)
class ImportSummary:
    status: str
    project: str
    run_id: int | None = None
    defects_count: int = 0
    issues_count: int = 0
    skipped_defects: int = 0
    skipped_instances: int = 0
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
