"""OpenURL querystring helpers: field extraction and parameter filtering."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime

from errors import InvalidRequestError, NoRecognizedFieldsError
from genres import resolve_genre
from models import MultiObjectsRequestParams

RFT_PREFIX = "rft."
SESSION_ID_KEY = "sid"
REFERRER_ID_KEY = "rfr_id"

_FIELD_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

LOGGER = logging.getLogger(__name__)


def parse_openurl_params(
    params: Mapping[str, Sequence[str]],
    timestamp: str | None = None,
) -> MultiObjectsRequestParams:
    """Turn an OpenURL querystring mapping into template values.

    Only ``rft.``-prefixed keys are used; the prefix is stripped, so
    ``rft.btitle`` becomes ``btitle``. A bare ``genre`` key is honoured only
    when namespaced fields exist and ``rft.genre`` is absent.

    Raises:
        NoRecognizedFieldsError: no ``rft.`` field survived extraction.
        MissingGenreError: no genre candidates were supplied.
        InvalidGenreError: no candidate genre is allow-listed.
    """
    fields: dict[str, list[str]] = {}
    for key, values in params.items():
        if not key.startswith(RFT_PREFIX):
            continue
        name = key[len(RFT_PREFIX):]
        if not _FIELD_NAME_RE.match(name):
            LOGGER.debug("Discarding OpenURL key that is not a field name: %r", key)
            continue
        fields[name] = list(values)

    if not fields:
        raise NoRecognizedFieldsError("no valid querystring values to parse")

    if "genre" not in fields and params.get("genre"):
        fields["genre"] = list(params["genre"])

    try:
        genre = resolve_genre(fields.get("genre"))
    except InvalidRequestError as exc:
        raise exc.wrap("genre is not valid") from exc

    return MultiObjectsRequestParams(
        fields=fields,
        genre=genre,
        timestamp=timestamp or rfc3339_nano_timestamp(),
    )


def filter_openurl_params(params: Mapping[str, Sequence[str]]) -> dict[str, list[str]]:
    """Rename the session identifier ``sid`` to the referrer identifier ``rfr_id``.

    All other keys pass through unchanged. An explicit ``rfr_id`` takes
    precedence over a renamed ``sid``.
    """
    filtered: dict[str, list[str]] = {}
    for key, values in params.items():
        if key == SESSION_ID_KEY:
            if REFERRER_ID_KEY in params:
                continue
            key = REFERRER_ID_KEY
        filtered[key] = list(values)
    return filtered


def rfc3339_nano_timestamp(ns: int | None = None) -> str:
    """Format a UTC timestamp as RFC3339 with up to nanosecond precision.

    Trailing zeros of the fraction are trimmed, matching RFC3339Nano.
    """
    if ns is None:
        ns = time.time_ns()
    seconds, nanos = divmod(ns, 1_000_000_000)
    stamp = datetime.fromtimestamp(seconds, UTC).strftime("%Y-%m-%dT%H:%M:%S")
    fraction = f"{nanos:09d}".rstrip("0")
    if fraction:
        stamp = f"{stamp}.{fraction}"
    return f"{stamp}Z"
