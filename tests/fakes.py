from __future__ import annotations

from collections.abc import Sequence

from defect_bridge.connect import DefectSource, ServiceError
from defect_bridge.models import MergedDefect, MergedDefectPage, Project, Stream, StreamDefect


class FakeDefectSource(DefectSource):
    def __init__(
        self,
        *,
        projects: list[Project] | None = None,
        defects: list[MergedDefect] | None = None,
        stream_defects: list[StreamDefect] | None = None,
        streams: list[Stream] | None = None,
        fail_on: str | None = None,
    ):
        self.projects = projects or []
        self.defects = defects or []
        self.stream_defects = {item.cid: item for item in stream_defects or []}
        self.streams = streams or []
        self.fail_on = fail_on
        self.calls: list[tuple] = []

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if self.fail_on == name:
            raise ServiceError(f"{name} failed")

    def calls_to(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def get_projects(self, name_pattern: str | None = None) -> list[Project]:
        self._record("get_projects", name_pattern)
        if name_pattern is None:
            return list(self.projects)
        return [project for project in self.projects if project.name == name_pattern]

    def get_streams(self, name_pattern: str | None = None) -> list[Stream]:
        self._record("get_streams", name_pattern)
        return [stream for stream in self.streams if name_pattern in (None, stream.name)]

    def get_merged_defects_for_project(
        self,
        project_name: str,
        *,
        start_index: int,
        page_size: int,
        status_names: Sequence[str] = (),
        action_names: Sequence[str] = (),
    ) -> MergedDefectPage:
        self._record(
            "get_merged_defects_for_project",
            project_name,
            start_index,
            page_size,
            tuple(status_names),
            tuple(action_names),
        )
        return MergedDefectPage(
            defects=tuple(self.defects[start_index : start_index + page_size]),
            total=len(self.defects),
        )

    def get_merged_defects_for_streams(
        self,
        stream_names: Sequence[str],
        *,
        start_index: int,
        page_size: int,
    ) -> MergedDefectPage:
        self._record("get_merged_defects_for_streams", tuple(stream_names), start_index, page_size)
        return MergedDefectPage(
            defects=tuple(self.defects[start_index : start_index + page_size]),
            total=len(self.defects),
        )

    def get_stream_defects(
        self,
        cids: Sequence[int],
        *,
        include_instances: bool = True,
    ) -> list[StreamDefect]:
        self._record("get_stream_defects", tuple(cids))
        return [self.stream_defects[cid] for cid in cids if cid in self.stream_defects]
