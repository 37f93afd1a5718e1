from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from typing import Any

from defect_bridge.connect import soap
from defect_bridge.connect.base import DefectSource, ServiceError
from defect_bridge.models import (
    ConnectSettings,
    DefectInstance,
    Event,
    MergedDefect,
    MergedDefectPage,
    Project,
    Stream,
    StreamDefect,
)

logger = logging.getLogger(__name__)

WS_VERSION = "v6"
NAMESPACE = f"http://ws.coverity.com/{WS_VERSION}"
CONFIGURATION_SERVICE_PATH = f"/ws/{WS_VERSION}/configurationservice"
DEFECT_SERVICE_PATH = f"/ws/{WS_VERSION}/defectservice"


class ConnectClient(DefectSource):
    """Coverity Connect v6 SOAP client for one server."""

    def __init__(self, settings: ConnectSettings):
        self.settings = settings
        if not settings.host:
            raise ValueError("Connect client requires 'host'")
        self.configuration_url = f"{settings.base_url}{CONFIGURATION_SERVICE_PATH}"
        self.defect_url = f"{settings.base_url}{DEFECT_SERVICE_PATH}"

    def get_projects(self, name_pattern: str | None = None) -> list[Project]:
        filter_spec = {"namePattern": name_pattern} if name_pattern else {}
        returned = self._call(
            self.configuration_url,
            "getProjects",
            {"filterSpec": filter_spec},
        )
        return [_to_project(item) for item in returned]

    def get_streams(self, name_pattern: str | None = None) -> list[Stream]:
        filter_spec = {"namePattern": name_pattern} if name_pattern else {}
        returned = self._call(
            self.configuration_url,
            "getStreams",
            {"filterSpec": filter_spec},
        )
        return [_to_stream(item) for item in returned]

    def get_merged_defects_for_project(
        self,
        project_name: str,
        *,
        start_index: int,
        page_size: int,
        status_names: Sequence[str] = (),
        action_names: Sequence[str] = (),
    ) -> MergedDefectPage:
        returned = self._call(
            self.defect_url,
            "getMergedDefectsForProject",
            {
                "projectId": {"name": project_name},
                "filterSpec": {
                    "componentIdExclude": False,
                    "statusNameList": list(status_names),
                    "actionNameList": list(action_names),
                },
                "pageSpec": {"pageSize": page_size, "startIndex": start_index},
            },
        )
        return _to_page(returned)

    def get_merged_defects_for_streams(
        self,
        stream_names: Sequence[str],
        *,
        start_index: int,
        page_size: int,
    ) -> MergedDefectPage:
        returned = self._call(
            self.defect_url,
            "getMergedDefectsForStreams",
            {
                "streamIds": [{"name": name} for name in stream_names],
                "filterSpec": {},
                "pageSpec": {"pageSize": page_size, "startIndex": start_index},
            },
        )
        return _to_page(returned)

    def get_stream_defects(
        self,
        cids: Sequence[int],
        *,
        include_instances: bool = True,
    ) -> list[StreamDefect]:
        returned = self._call(
            self.defect_url,
            "getStreamDefects",
            {
                "cids": [int(cid) for cid in cids],
                "filterSpec": {"includeDefectInstances": include_instances},
            },
        )
        return [_to_stream_defect(item) for item in returned]

    def _call(self, url: str, operation: str, params: dict[str, Any]) -> list[ET.Element]:
        logger.debug("Calling %s on %s", operation, url)
        return soap.call(
            url,
            operation,
            params,
            namespace=NAMESPACE,
            user=self.settings.user,
            password=self.settings.password,
            timeout=self.settings.timeout,
        )


def _to_project(element: ET.Element) -> Project:
    id_element = soap.find_child(element, "id")
    name = soap.child_text(id_element, "name") if id_element is not None else None
    return Project(
        name=name or "",
        project_key=_required_int(element, "projectKey"),
        description=soap.child_text(element, "description"),
        streams=tuple(_to_stream(item) for item in soap.children(element, "streams")),
    )


def _to_stream(element: ET.Element) -> Stream:
    id_element = soap.find_child(element, "id")
    name = soap.child_text(id_element, "name") if id_element is not None else None
    return Stream(
        name=name or "",
        language=soap.child_text(element, "language"),
        description=soap.child_text(element, "description"),
    )


def _to_page(returned: list[ET.Element]) -> MergedDefectPage:
    if not returned:
        raise ServiceError("Merged defect listing returned no page")
    page = returned[0]
    return MergedDefectPage(
        defects=tuple(_to_merged_defect(item) for item in soap.children(page, "mergedDefects")),
        total=_optional_int(soap.child_text(page, "totalNumberOfRecords")) or 0,
    )


def _to_merged_defect(element: ET.Element) -> MergedDefect:
    return MergedDefect(
        cid=_required_int(element, "cid"),
        file_path=soap.child_text(element, "filePathname") or "",
        checker_name=soap.child_text(element, "checkerName"),
        domain=soap.child_text(element, "domain"),
        status=soap.child_text(element, "status"),
        classification=soap.child_text(element, "classification"),
        action=soap.child_text(element, "action"),
        severity=soap.child_text(element, "severity"),
        function_name=soap.child_text(element, "functionDisplayName"),
    )


def _to_stream_defect(element: ET.Element) -> StreamDefect:
    stream_id = soap.find_child(element, "streamId")
    return StreamDefect(
        cid=_required_int(element, "cid"),
        stream_name=soap.child_text(stream_id, "name") if stream_id is not None else None,
        instances=tuple(
            _to_defect_instance(item, element)
            for item in soap.children(element, "defectInstances")
        ),
    )


def _to_defect_instance(element: ET.Element, parent: ET.Element) -> DefectInstance:
    # Older servers only report checker and domain on the stream defect.
    return DefectInstance(
        checker_name=soap.child_text(element, "checkerName")
        or soap.child_text(parent, "checkerName")
        or "",
        domain=soap.child_text(element, "domain") or soap.child_text(parent, "domain") or "",
        subcategory=soap.child_text(element, "subcategory"),
        events=tuple(_to_event(item) for item in soap.children(element, "events")),
    )


def _to_event(element: ET.Element) -> Event:
    file_id = soap.find_child(element, "fileId")
    return Event(
        main=(soap.child_text(element, "main") or "").lower() in {"true", "1"},
        line_number=_optional_int(soap.child_text(element, "lineNumber")),
        file_path=soap.child_text(file_id, "filePathname") if file_id is not None else None,
        tag=soap.child_text(element, "eventTag"),
        description=soap.child_text(element, "eventDescription"),
        number=_optional_int(soap.child_text(element, "eventNumber")),
    )


def _required_int(element: ET.Element, name: str) -> int:
    value = _optional_int(soap.child_text(element, name))
    if value is None:
        raise ServiceError(f"Response element {soap.local_name(element.tag)} is missing '{name}'")
    return value


def _optional_int(text: str | None) -> int | None:
    if text is None:
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise ServiceError(f"Expected an integer, got {text!r}") from exc
