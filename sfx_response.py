"""Parse SFX multi-object XML replies into the typed reply model.

Only the subset of the SFX ``multi_obj_xml`` schema needed to pull out links
is mapped: context objects, their target groups, targets and coverage.
See https://developers.exlibrisgroup.com/sfx/apis/web_services/openurl/
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, TypeVar

import requests

from errors import InvalidResponseError, NoContextObjectError
from models import (
    ContextObject,
    ContextObjectTargets,
    Coverage,
    CoverageText,
    Embargo,
    EmbargoStatement,
    FromTo,
    MultiObjectsResponseBody,
    Target,
    ThresholdText,
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_HTTP_VERSIONS = {10: "HTTP/1.0", 11: "HTTP/1.1"}
_CODING_HEADERS = frozenset({"content-encoding", "content-length"})


@dataclass(slots=True)
class SFXResponse:
    """Everything kept from one SFX exchange."""

    http_response: requests.Response | None = None
    dumped_http_response: str = ""
    xml_text: str = ""
    json_text: str = ""
    body: MultiObjectsResponseBody = field(default_factory=MultiObjectsResponseBody)

    def targets(self) -> list[Target]:
        """Targets of the first context object's first target group."""
        group = self._first_target_group()
        if group is None or group.target is None:
            return []
        return list(group.target)

    def remove_target(self, target_url: str) -> None:
        """Drop every target in the first target group whose URL equals ``target_url``.

        Matching is exact string equality. Missing context objects or target
        groups make this a no-op.
        """
        group = self._first_target_group()
        if group is None or group.target is None:
            return

        kept = [target for target in group.target if target.target_url != target_url]
        removed = len(group.target) - len(kept)
        group.target = kept
        if removed:
            self.json_text = to_json(self.body)
            LOGGER.info("Removed %s SFX target(s) with url=%s", removed, target_url)

    def _first_target_group(self) -> ContextObjectTargets | None:
        if not self.body.ctx_obj:
            return None
        groups = self.body.ctx_obj[0].ctx_obj_targets
        if not groups:
            return None
        return groups[0]


def new_sfx_response(response: requests.Response) -> SFXResponse:
    """Build an SFXResponse from an HTTP reply whose body has already been read.

    Raises:
        InvalidResponseError: the body is not well-formed XML.
        NoContextObjectError: the XML holds no ``ctx_obj`` element.
    """
    content = response.content or b""
    sfx_response = SFXResponse(
        http_response=response,
        dumped_http_response=dump_http_response(response),
        xml_text=content.decode("utf-8", errors="replace"),
    )

    sfx_response.body = parse_multi_objects_xml(content)
    sfx_response.json_text = to_json(sfx_response.body)
    return sfx_response


def parse_multi_objects_xml(data: bytes) -> MultiObjectsResponseBody:
    """Parse a ``multi_obj_xml`` document into the reply model."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise InvalidResponseError(f"could not parse SFX response XML: {exc}") from exc

    ctx_objs = _repeated(root, "ctx_obj", _parse_context_object)
    if ctx_objs is None:
        raise NoContextObjectError("could not identify context object in response")
    return MultiObjectsResponseBody(ctx_obj=ctx_objs)


def to_json(body: MultiObjectsResponseBody) -> str:
    """Indented JSON projection keyed by XML tag names; absent nodes are omitted."""
    return json.dumps(_jsonable(body), indent=4)


def dump_http_response(response: requests.Response) -> str:
    """Render the status line, the received headers and the decoded body.

    ``requests`` has already undone any content coding, so the
    ``Content-Encoding`` and ``Content-Length`` headers of an encoded reply
    are left out; they describe bytes the dump does not contain.
    """
    version = _HTTP_VERSIONS.get(getattr(response.raw, "version", 11), "HTTP/1.1")
    lines = [f"{version} {response.status_code} {response.reason}"]
    encoded = "Content-Encoding" in response.headers
    lines.extend(
        f"{name}: {value}"
        for name, value in response.headers.items()
        if not (encoded and name.lower() in _CODING_HEADERS)
    )
    body = (response.content or b"").decode("utf-8", errors="replace")
    return "\r\n".join(lines) + "\r\n\r\n" + body


def _parse_context_object(element: ET.Element) -> ContextObject:
    return ContextObject(
        ctx_obj_targets=_repeated(element, "ctx_obj_targets", _parse_target_group),
    )


def _parse_target_group(element: ET.Element) -> ContextObjectTargets:
    return ContextObjectTargets(target=_repeated(element, "target", _parse_target))


def _parse_target(element: ET.Element) -> Target:
    return Target(
        target_name=_text(element, "target_name") or "",
        target_public_name=_text(element, "target_public_name") or "",
        target_url=_text(element, "target_url") or "",
        authentication=_text(element, "authentication") or "",
        proxy=_text(element, "proxy") or "",
        coverage=_repeated(element, "coverage", _parse_coverage),
    )


def _parse_coverage(element: ET.Element) -> Coverage:
    embargo = _children(element, "embargo")
    return Coverage(
        coverage_text=_repeated(element, "coverage_text", _parse_coverage_text),
        from_=_repeated(element, "from", _parse_from_to),
        to=_repeated(element, "to", _parse_from_to),
        embargo=_parse_embargo(embargo[0]) if embargo else None,
    )


def _parse_coverage_text(element: ET.Element) -> CoverageText:
    return CoverageText(
        threshold_text=_repeated(element, "threshold_text", _parse_threshold_text),
        embargo_text=_repeated(element, "embargo_text", _parse_embargo_statement),
    )


def _parse_threshold_text(element: ET.Element) -> ThresholdText:
    statements = _children(element, "coverage_statement")
    return ThresholdText(
        coverage_statement=[_element_text(s) for s in statements] if statements else None,
    )


def _parse_embargo_statement(element: ET.Element) -> EmbargoStatement:
    return EmbargoStatement(embargo_statement=_text(element, "embargo_statement"))


def _parse_from_to(element: ET.Element) -> FromTo:
    return FromTo(
        year=_text(element, "year"),
        month=_text(element, "month"),
        day=_text(element, "day"),
        volume=_text(element, "volume"),
        issue=_text(element, "issue"),
    )


def _parse_embargo(element: ET.Element) -> Embargo:
    return Embargo(
        availability=_text(element, "availability"),
        month=_text(element, "month"),
        days=_text(element, "days"),
    )


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    # Matched by local name so namespaced replies parse the same way.
    return [child for child in element if _local_name(child.tag) == name]


def _repeated(
    element: ET.Element,
    name: str,
    parse: Callable[[ET.Element], T],
) -> list[T] | None:
    found = _children(element, name)
    if not found:
        return None
    return [parse(child) for child in found]


def _text(element: ET.Element, name: str) -> str | None:
    found = _children(element, name)
    return _element_text(found[0]) if found else None


def _element_text(element: ET.Element) -> str:
    return "".join(element.itertext()).strip()


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        projected: dict[str, Any] = {}
        for item in fields(value):
            child = getattr(value, item.name)
            if child is None:
                continue
            projected[item.metadata.get("tag", item.name)] = _jsonable(child)
        return projected
    if isinstance(value, list):
        return [_jsonable(child) for child in value]
    return value
