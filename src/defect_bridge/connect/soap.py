"""SOAP 1.1 envelopes for the Connect web services.

Requests carry a WS-Security UsernameToken header, which is how Connect
authenticates every call. Operation arguments are unqualified child
elements of the namespaced operation element.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

from defect_bridge.connect.base import ServiceError
from defect_bridge.http import HttpError, post_xml

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"
PASSWORD_TEXT_TYPE = (
    "http://docs.oasis-open.org/wss/2004/01/"
    "oasis-200401-wss-username-token-profile-1.0#PasswordText"
)

ET.register_namespace("soapenv", SOAP_ENV_NS)
ET.register_namespace("wsse", WSSE_NS)


def build_envelope(
    operation: str,
    params: Mapping[str, Any],
    *,
    namespace: str,
    user: str,
    password: str,
) -> str:
    envelope = ET.Element(f"{{{SOAP_ENV_NS}}}Envelope")
    header = ET.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Header")
    security = ET.SubElement(
        header,
        f"{{{WSSE_NS}}}Security",
        {f"{{{SOAP_ENV_NS}}}mustUnderstand": "1"},
    )
    token = ET.SubElement(security, f"{{{WSSE_NS}}}UsernameToken")
    ET.SubElement(token, f"{{{WSSE_NS}}}Username").text = user
    ET.SubElement(token, f"{{{WSSE_NS}}}Password", {"Type": PASSWORD_TEXT_TYPE}).text = password

    body = ET.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Body")
    op = ET.SubElement(body, f"{{{namespace}}}{operation}")
    _append_params(op, params)

    return ET.tostring(envelope, encoding="unicode")


def _append_params(parent: ET.Element, params: Mapping[str, Any]) -> None:
    for name, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            for item in value:
                _append_value(parent, name, item)
        else:
            _append_value(parent, name, value)


def _append_value(parent: ET.Element, name: str, value: Any) -> None:
    child = ET.SubElement(parent, name)
    if isinstance(value, Mapping):
        _append_params(child, value)
    elif isinstance(value, bool):
        child.text = "true" if value else "false"
    else:
        child.text = str(value)


def parse_response(text: str) -> list[ET.Element]:
    """Return the ``<return>`` elements of a response, raising on SOAP faults."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ServiceError(f"Unparsable SOAP response: {exc}") from exc

    body = find_child(root, "Body")
    if body is None:
        raise ServiceError("SOAP response has no Body")

    fault = find_child(body, "Fault")
    if fault is not None:
        raise ServiceError(f"SOAP fault: {_fault_message(fault)}")

    payload = list(body)
    if not payload:
        return []
    return children(payload[0], "return")


def fault_message(text: str) -> str | None:
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return None
    body = find_child(root, "Body")
    fault = find_child(body, "Fault") if body is not None else None
    if fault is None:
        return None
    return _fault_message(fault)


def _fault_message(fault: ET.Element) -> str:
    message = child_text(fault, "faultstring") or "unknown fault"
    code = child_text(fault, "faultcode")
    return f"{message} ({code})" if code else message


def call(
    url: str,
    operation: str,
    params: Mapping[str, Any],
    *,
    namespace: str,
    user: str,
    password: str,
    timeout: int = 60,
) -> list[ET.Element]:
    envelope = build_envelope(
        operation,
        params,
        namespace=namespace,
        user=user,
        password=password,
    )
    try:
        response = post_xml(url, envelope, headers={"SOAPAction": '""'}, timeout=timeout)
    except HttpError as exc:
        # Connect answers remote exceptions with HTTP 500 and a fault body.
        detail = fault_message(exc.body) if exc.body else None
        if detail:
            raise ServiceError(f"{operation} failed: {detail}") from exc
        raise ServiceError(f"{operation} failed: {exc}") from exc
    return parse_response(response.text)


def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def find_child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if local_name(child.tag) == name:
            return child
    return None


def children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if local_name(child.tag) == name]


def child_text(element: ET.Element, name: str) -> str | None:
    child = find_child(element, name)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None
