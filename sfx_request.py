"""Build SFX context object XML requests from OpenURL parameters."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Mapping, Sequence

import jinja2

from errors import InvalidRequestError, InvalidXMLError, RenderError
from genres import genre_format
from models import MultiObjectsRequestParams
from openurl import parse_openurl_params
from sfx_client import MultiObjectsRequest

LOGGER = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

CONTEXT_OBJECT_TEMPLATE = XML_DECLARATION + """
<ctx:context-objects xmlns:ctx="info:ofi/fmt:xml:xsd:ctx" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" xsi:schemaLocation="info:ofi/fmt:xml:xsd:ctx http://www.openurl.info/registry/docs/info:ofi/fmt:xml:xsd:ctx">
  <ctx:context-object timestamp="{{ timestamp }}" encoding="info:ofi/enc:UTF-8" version="Z39.88-2004" identifier="">
    <ctx:referent>
      <ctx:metadata-by-val>
        <ctx:format>info:ofi/fmt:xml:xsd:{{ format | lower }}</ctx:format>
        <ctx:metadata>
          <rft:{{ format | lower }} xmlns:rft="info:ofi/fmt:xml:xsd:{{ format | lower }}" xsi:schemaLocation="info:ofi/fmt:xml:xsd:{{ format | lower }} http://www.openurl.info/registry/docs/info:ofi/fmt:xml:xsd:{{ format | lower }}">
            {% if "genre" not in fields %}
            <rft:genre>{{ genre }}</rft:genre>
            {% endif %}
            {% for name, values in fields | dictsort %}
            {% for value in values %}
            <rft:{{ name }}>{{ value }}</rft:{{ name }}>
            {% endfor %}
            {% endfor %}
          </rft:{{ format | lower }}>
        </ctx:metadata>
      </ctx:metadata-by-val>
    </ctx:referent>
  </ctx:context-object>
</ctx:context-objects>
"""


def _environment(autoescape: bool) -> jinja2.Environment:
    return jinja2.Environment(
        autoescape=autoescape,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=jinja2.StrictUndefined,
    )


# Compiled once at import and only read afterwards.
_ESCAPED_TEMPLATE = _environment(autoescape=True).from_string(CONTEXT_OBJECT_TEMPLATE)
_RAW_TEMPLATE = _environment(autoescape=False).from_string(CONTEXT_OBJECT_TEMPLATE)


def new_multi_objects_request(query_params: Mapping[str, Sequence[str]]) -> MultiObjectsRequest:
    """Convert an OpenURL querystring mapping into a ready-to-send SFX request."""
    try:
        params = parse_openurl_params(query_params)
    except InvalidRequestError as exc:
        raise exc.wrap("could not parse required request body params from querystring") from exc

    try:
        request_xml = render_context_object_xml(params)
    except RenderError as exc:
        raise exc.wrap("could not convert multiple objects request to XML") from exc

    LOGGER.info("Built SFX context object request: genre=%s fields=%s", params.genre, sorted(params.fields))
    return MultiObjectsRequest(request_xml=request_xml)


def render_context_object_xml(params: MultiObjectsRequestParams, *, escape: bool = True) -> str:
    """Render the context object template and confirm the result is well-formed XML.

    Field values are XML-escaped unless ``escape`` is False, in which case a
    value such as ``<rft:`` corrupts the document and is reported by the
    well-formedness check instead.

    Raises:
        RenderError: the params are empty or the template failed to execute.
        InvalidXMLError: the rendered document is not well-formed.
    """
    if not params.fields or not params.genre or not params.timestamp:
        raise RenderError("no fields, genre or timestamp to render")

    template = _ESCAPED_TEMPLATE if escape else _RAW_TEMPLATE
    try:
        rendered = template.render(
            fields=params.fields,
            genre=params.genre,
            format=genre_format(params.genre),
            timestamp=params.timestamp,
        )
    except jinja2.TemplateError as exc:
        raise RenderError(f"could not execute context object template: {exc}") from exc

    try:
        ET.fromstring(rendered.encode("utf-8"))
    except (ET.ParseError, UnicodeEncodeError) as exc:
        raise InvalidXMLError(f"request multiple objects XML is not valid XML: {exc}") from exc

    return rendered


def is_valid_xml(data: bytes) -> bool:
    """Return True when ``data`` parses as a well-formed XML document."""
    if not data:
        return False
    try:
        ET.fromstring(data)
    except ET.ParseError:
        return False
    return True
