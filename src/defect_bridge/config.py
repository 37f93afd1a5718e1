from __future__ import annotations

import json
import os
from pathlib import Path

from defect_bridge.models import AppConfig, ConnectSettings, Rule, SourceSettings
from defect_bridge.rules import RulesProfile


class ConfigError(ValueError):
    pass


def load_config(path: str | Path) -> AppConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    raw = _read_json(config_path)

    if not isinstance(raw, dict):
        raise ConfigError("Config must be a JSON object")

    connect_raw = raw.get("connect")
    if not isinstance(connect_raw, dict):
        raise ConfigError("Config must include a 'connect' object")

    host = _optional_str(connect_raw.get("host"))
    if not host:
        raise ConfigError("Connect settings are missing 'host'")
    user = _optional_str(connect_raw.get("user"))
    if not user:
        raise ConfigError("Connect settings are missing 'user'")

    try:
        port = int(connect_raw.get("port", 8080))
        timeout = int(connect_raw.get("timeout", 60))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid number in connect settings: {exc}") from exc

    password = _password(connect_raw)

    project = _optional_str(raw.get("project"))
    if not project:
        raise ConfigError("Config is missing 'project'")

    sources_raw = raw.get("sources", {})
    if not isinstance(sources_raw, dict):
        raise ConfigError("'sources' must be an object")

    sources = SourceSettings(
        base_dir=str(sources_raw.get("base_dir", ".")),
        source_dirs=tuple(_ensure_string_list(sources_raw.get("source_dirs", []))),
        language=_optional_str(sources_raw.get("language")),
    )

    return AppConfig(
        enabled=_bool(raw.get("enabled", False), "enabled"),
        connect=ConnectSettings(
            host=host,
            port=port,
            user=user,
            password=password,
            ssl=_bool(connect_raw.get("ssl", False), "connect.ssl"),
            timeout=timeout,
        ),
        project=project,
        sources=sources,
        rules_path=str(raw.get("rules_path", "configs/rules.example.json")),
        db_path=str(raw.get("db_path", "data/defect_bridge.db")),
        strip_prefix=_optional_str(raw.get("strip_prefix")),
        source_path=_optional_str(raw.get("source_path")),
    )


def load_rules(path: str | Path) -> RulesProfile:
    rules_path = Path(path)
    if not rules_path.exists():
        raise ConfigError(f"Rules file not found: {rules_path}")

    raw = _read_json(rules_path)

    if not isinstance(raw, list):
        raise ConfigError("Rules file must contain a list")

    rules: list[Rule] = []
    for item in raw:
        if not isinstance(item, dict):
            raise ConfigError("Each rule entry must be an object")

        missing = [key for key in ("repository", "key", "description") if key not in item]
        if missing:
            raise ConfigError(f"Rule is missing keys: {', '.join(missing)}")

        rules.append(
            Rule(
                repository=str(item["repository"]),
                key=str(item["key"]),
                name=str(item.get("name") or item["key"]),
                description=str(item["description"]),
                severity=str(item.get("severity", "MAJOR")),
                active=_bool(item.get("active", True), "active"),
            )
        )

    return RulesProfile(rules)


def _password(connect_raw: dict) -> str:
    password_env = _optional_str(connect_raw.get("password_env"))
    if password_env:
        value = os.getenv(password_env)
        if value is None:
            raise ConfigError(f"Environment variable {password_env} is not set")
        return value
    return str(connect_raw.get("password") or "")


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _ensure_string_list(value: object) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError("Expected a list of strings")
    return [str(item) for item in value]


def _read_json(path: Path) -> object:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc


def _bool(value: object, name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{name}' must be true or false, got {value!r}")
    return value
