"""Decoding of CAS ticket validation responses.

The validation client hands back raw bodies; scenarios decide how to read
them. These helpers turn a JSON or XML ``serviceResponse`` document into a
:class:`ServiceResponse` so assertions can be written against fields rather
than substrings.
"""
from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

CAS_NAMESPACE = "http://www.yale.edu/tp/cas"
_NS = {"cas": CAS_NAMESPACE}

VALIDATION_ENDPOINTS = (
    "validate",
    "serviceValidate",
    "proxyValidate",
    "p3/serviceValidate",
    "p3/proxyValidate",
)
RESPONSE_FORMATS = ("JSON", "XML")


@dataclass
class ServiceResponse:
    """A decoded ``serviceResponse``; success and failure are exclusive."""

    success: bool
    user: Optional[str] = None
    attributes: Dict[str, List[Any]] = field(default_factory=dict)
    proxy_granting_ticket: Optional[str] = None
    failure_code: Optional[str] = None
    failure_description: Optional[str] = None
    raw: str = ""

    def assert_success(self) -> "ServiceResponse":
        if not self.success:
            raise AssertionError(
                f"Ticket validation failed: code={self.failure_code!r} "
                f"description={self.failure_description!r}"
            )
        if not self.user:
            raise AssertionError(f"Ticket validation succeeded without a user: {self.raw[:500]}")
        return self

    def attribute(self, name: str) -> Optional[Any]:
        """First value of an attribute, or None when it was not released."""
        values = self.attributes.get(name)
        return values[0] if values else None

    def assert_attributes(self, *names: str) -> None:
        missing = [name for name in names if name not in self.attributes]
        if missing:
            raise AssertionError(
                f"Attributes {missing} missing from response; released: {sorted(self.attributes)}"
            )


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    return [value]


def parse_json(body: str) -> ServiceResponse:
    document = json.loads(body)
    try:
        response = document["serviceResponse"]
    except (KeyError, TypeError):
        raise ValueError(f"Not a CAS JSON service response: {body[:200]}")

    if "authenticationSuccess" in response:
        success = response["authenticationSuccess"]
        attributes = {
            str(key): _as_list(value) for key, value in (success.get("attributes") or {}).items()
        }
        return ServiceResponse(
            success=True,
            user=success.get("user"),
            attributes=attributes,
            proxy_granting_ticket=success.get("proxyGrantingTicket"),
            raw=body,
        )

    failure = response.get("authenticationFailure") or {}
    return ServiceResponse(
        success=False,
        failure_code=failure.get("code"),
        failure_description=(failure.get("description") or "").strip() or None,
        raw=body,
    )


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_xml(body: str) -> ServiceResponse:
    try:
        root = ET.fromstring(body.strip())
    except ET.ParseError as exc:
        raise ValueError(f"Not a CAS XML service response: {exc}") from exc

    success = root.find("cas:authenticationSuccess", _NS)
    if success is not None:
        attributes: Dict[str, List[Any]] = {}
        attributes_node = success.find("cas:attributes", _NS)
        if attributes_node is not None:
            for child in attributes_node:
                attributes.setdefault(_local_name(child.tag), []).append((child.text or "").strip())
        return ServiceResponse(
            success=True,
            user=(success.findtext("cas:user", default="", namespaces=_NS) or "").strip() or None,
            attributes=attributes,
            proxy_granting_ticket=(
                success.findtext("cas:proxyGrantingTicket", default="", namespaces=_NS) or ""
            ).strip()
            or None,
            raw=body,
        )

    failure = root.find("cas:authenticationFailure", _NS)
    if failure is None:
        raise ValueError(f"Not a CAS XML service response: {body[:200]}")
    return ServiceResponse(
        success=False,
        failure_code=failure.get("code"),
        failure_description=(failure.text or "").strip() or None,
        raw=body,
    )


def parse_cas1(body: str) -> ServiceResponse:
    """Decode the two-line ``yes\\nuser`` / ``no`` answer of ``/validate``."""
    lines = [line.strip() for line in body.strip().splitlines()]
    if lines and lines[0] == "yes" and len(lines) > 1:
        return ServiceResponse(success=True, user=lines[1], raw=body)
    return ServiceResponse(success=False, failure_code="INVALID_TICKET", raw=body)


def parse_service_response(body: str) -> ServiceResponse:
    """Decode a validation body, picking the format from its first character."""
    stripped = body.lstrip()
    if stripped.startswith("{"):
        return parse_json(body)
    if stripped.startswith("<"):
        return parse_xml(body)
    return parse_cas1(body)


def validation_url(
    base_url: str,
    service: str,
    ticket: str,
    endpoint: str = "p3/serviceValidate",
    format: Optional[str] = None,
    pgt_url: Optional[str] = None,
) -> str:
    """Build a ticket validation URL below the CAS base URL."""
    if endpoint not in VALIDATION_ENDPOINTS:
        raise ValueError(f"Unknown validation endpoint {endpoint!r}; expected one of {VALIDATION_ENDPOINTS}")
    params = {"service": service, "ticket": ticket}
    if format:
        if format.upper() not in RESPONSE_FORMATS:
            raise ValueError(f"Unknown response format {format!r}; expected JSON or XML")
        params["format"] = format.upper()
    if pgt_url:
        params["pgtUrl"] = pgt_url
    return f"{base_url.rstrip('/')}/{endpoint}?{urlencode(params)}"
