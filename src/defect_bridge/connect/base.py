from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from defect_bridge.models import MergedDefectPage, Project, Stream, StreamDefect


class ServiceError(RuntimeError):
    pass


class ProjectNotFoundError(LookupError):
    pass


class DefectSource(ABC):
    """Page-level operations of a remote defect service. Implementations do not cache."""

    @abstractmethod
    def get_projects(self, name_pattern: str | None = None) -> list[Project]:
        raise NotImplementedError

    @abstractmethod
    def get_streams(self, name_pattern: str | None = None) -> list[Stream]:
        raise NotImplementedError

    @abstractmethod
    def get_merged_defects_for_project(
        self,
        project_name: str,
        *,
        start_index: int,
        page_size: int,
        status_names: Sequence[str] = (),
        action_names: Sequence[str] = (),
    ) -> MergedDefectPage:
        raise NotImplementedError

    @abstractmethod
    def get_merged_defects_for_streams(
        self,
        stream_names: Sequence[str],
        *,
        start_index: int,
        page_size: int,
    ) -> MergedDefectPage:
        raise NotImplementedError

    @abstractmethod
    def get_stream_defects(
        self,
        cids: Sequence[int],
        *,
        include_instances: bool = True,
    ) -> list[StreamDefect]:
        raise NotImplementedError
