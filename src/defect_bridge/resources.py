from __future__ import annotations

from pathlib import Path

from defect_bridge.models import Resource, SourceSettings

# C and C++ share one analysis language, so sources and headers land in one rule repository.
EXTENSION_LANGUAGE_MAP = {
    ".c": "c++",
    ".h": "c++",
    ".cc": "c++",
    ".cpp": "c++",
    ".cxx": "c++",
    ".hh": "c++",
    ".hpp": "c++",
    ".hxx": "c++",
    ".java": "java",
    ".cs": "cs",
    ".js": "js",
    ".ts": "ts",
    ".py": "py",
}


def language_for(path: str | Path) -> str | None:
    return EXTENSION_LANGUAGE_MAP.get(Path(path).suffix.lower())


class SourceTree:
    """The project's local source files, as seen by the issue store."""

    def __init__(
        self,
        base_dir: str | Path,
        source_dirs: tuple[str, ...] = (),
        default_language: str | None = None,
    ):
        self.base_dir = Path(base_dir).resolve()
        self.source_dirs = tuple(
            (self.base_dir / item).resolve() for item in source_dirs
        ) or (self.base_dir,)
        self.default_language = default_language

    @classmethod
    def from_settings(cls, settings: SourceSettings) -> SourceTree:
        return cls(settings.base_dir, settings.source_dirs, settings.language)

    def resolve_file(self, local_path: str) -> Resource | None:
        candidate = Path(local_path)
        if not candidate.is_absolute():
            candidate = self.base_dir / candidate

        try:
            resolved = candidate.resolve()
        except OSError:
            return None

        if not resolved.is_file():
            return None
        if not any(_is_within(resolved, root) for root in self.source_dirs):
            return None

        try:
            relative = resolved.relative_to(self.base_dir).as_posix()
        except ValueError:
            relative = resolved.as_posix()

        return Resource(
            path=relative,
            absolute_path=str(resolved),
            language=language_for(resolved),
        )

    def effective_language(self, resource: Resource) -> str | None:
        return resource.language or self.default_language


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
