from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from defect_bridge.connect.base import DefectSource, ProjectNotFoundError
from defect_bridge.models import MergedDefect, Project, Stream, StreamDefect

logger = logging.getLogger(__name__)

PAGE_SIZE = 2500
STREAM_DEFECTS_MAX_CIDS = 100

OUTSTANDING_STATUSES = ("Triaged", "New")
OUTSTANDING_ACTIONS = ("Undecided", "Fix Required", "Fix Submitted", "Modeling Required")


class ConnectSession:
    """Memoized view of a defect service for the lifetime of one import run.

    Each run builds its own session, so nothing leaks between runs. Lazy
    population is serialized by a lock; once populated, reads are plain
    attribute lookups.
    """

    def __init__(self, source: DefectSource):
        self.source = source
        self._lock = threading.RLock()
        self._projects: dict[str, Project] = {}
        self._project_keys: dict[str, int] = {}
        self._defects: dict[str, list[MergedDefect]] = {}
        self._stream_defects: dict[frozenset[int], dict[int, StreamDefect]] = {}

    def resolve_project(self, name_pattern: str) -> Project | None:
        cached = self._projects.get(name_pattern)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._projects.get(name_pattern)
            if cached is not None:
                return cached

            projects = self.source.get_projects(name_pattern)
            if not projects:
                return None
            project = projects[0]
            self._projects[name_pattern] = project
            return project

    def project_key(self, name: str) -> int:
        cached = self._project_keys.get(name)
        if cached is not None:
            return cached

        with self._lock:
            project = self.resolve_project(name)
            if project is None:
                raise ProjectNotFoundError(f"Project not found: {name}")
            self._project_keys[name] = project.project_key
            return project.project_key

    def static_streams(self, name: str) -> list[Stream]:
        project = self.resolve_project(name)
        if project is None:
            raise ProjectNotFoundError(f"Project not found: {name}")
        return list(project.streams)

    def stream(self, name_pattern: str) -> Stream | None:
        streams = self.source.get_streams(name_pattern)
        return streams[0] if streams else None

    def list_project_defects(self, project: Project) -> list[MergedDefect]:
        cached = self._defects.get(project.name)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._defects.get(project.name)
            if cached is not None:
                return cached

            defects: list[MergedDefect] = []
            while True:
                page = self.source.get_merged_defects_for_project(
                    project.name,
                    start_index=len(defects),
                    page_size=PAGE_SIZE,
                    status_names=OUTSTANDING_STATUSES,
                    action_names=OUTSTANDING_ACTIONS,
                )
                defects.extend(page.defects)
                logger.debug(
                    "Fetched %d of %d defects for project %s",
                    len(defects),
                    page.total,
                    project.name,
                )
                if not page.defects or len(defects) >= page.total:
                    break

            self._defects[project.name] = defects
            return defects

    def list_stream_defects(self, stream_name: str, cids: Iterable[int]) -> list[MergedDefect]:
        wanted = set(cids)
        result: list[MergedDefect] = []
        seen = 0
        while True:
            page = self.source.get_merged_defects_for_streams(
                [stream_name],
                start_index=seen,
                page_size=PAGE_SIZE,
            )
            result.extend(defect for defect in page.defects if defect.cid in wanted)
            seen += len(page.defects)
            if not page.defects or seen >= page.total:
                break
        return result

    def fetch_stream_defects(self, cids: Iterable[int]) -> dict[int, StreamDefect]:
        cid_list = list(dict.fromkeys(int(cid) for cid in cids))
        key = frozenset(cid_list)
        cached = self._stream_defects.get(key)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._stream_defects.get(key)
            if cached is not None:
                return cached

            stream_defects: dict[int, StreamDefect] = {}
            for start in range(0, len(cid_list), STREAM_DEFECTS_MAX_CIDS):
                batch = cid_list[start : start + STREAM_DEFECTS_MAX_CIDS]
                for item in self.source.get_stream_defects(batch, include_instances=True):
                    stream_defects[item.cid] = item

            self._stream_defects[key] = stream_defects
            return stream_defects
