from __future__ import annotations

from defect_bridge.connect.base import DefectSource, ProjectNotFoundError, ServiceError
from defect_bridge.connect.client import ConnectClient
from defect_bridge.connect.session import ConnectSession
from defect_bridge.models import ConnectSettings

__all__ = [
    "ConnectClient",
    "ConnectSession",
    "DefectSource",
    "ProjectNotFoundError",
    "ServiceError",
    "build_client",
]


def build_client(settings: ConnectSettings) -> DefectSource:
    return ConnectClient(settings)
