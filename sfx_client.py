"""SFX multi-object resolver client."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import requests

from errors import ResolverUnavailableError
from sfx_response import SFXResponse, new_sfx_response

DEFAULT_SFX_URL = "http://sfx.library.nyu.edu/sfxlcl41"
DEFAULT_TIMEOUT_SECONDS = 30.0

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MultiObjectsRequest:
    """A rendered context object, ready to be posted to SFX."""

    request_xml: str

    def form_params(self) -> dict[str, str]:
        """Fixed SFX form fields plus the context object itself."""
        return {
            "url_ctx_fmt": "info:ofi/fmt:xml:xsd:ctx",
            "sfx.response_type": "multi_obj_xml",
            "sfx.show_availability": "1",
            "sfx.ignore_date_threshold": "1",
            "sfx.doi_url": "http://dx.doi.org",
            "url_ctx_val": self.request_xml,
        }

    def do(self, session: requests.Session | None = None) -> SFXResponse:
        """POST the request to SFX once and parse the multi-object reply.

        The payload travels entirely in the form parameters. Non-2xx replies
        are parsed like any other, so an HTML error page surfaces as an
        InvalidResponseError rather than a transport error.

        Args:
            session: Optional pooled session; a one-off connection is used otherwise.

        Raises:
            ResolverUnavailableError: the request could not be sent or read.
            InvalidResponseError: the reply is not a usable multi-object document.
        """
        url = os.getenv("SFX_URL", DEFAULT_SFX_URL)
        timeout = _timeout_seconds()
        post = session.post if session is not None else requests.post

        LOGGER.info("Posting context object to SFX: url=%s", url)
        try:
            with post(
                url,
                data=self.form_params(),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=timeout,
            ) as response:
                # Drain the body before the connection goes back to the pool.
                content = response.content
        except requests.RequestException as exc:
            raise ResolverUnavailableError(f"could not do post to SFX server: {exc}") from exc

        LOGGER.info("SFX replied: status=%s bytes=%s", response.status_code, len(content))
        if not response.ok:
            LOGGER.warning(
                "SFX returned non-success status %s %s; parsing body anyway",
                response.status_code,
                response.reason,
            )

        return new_sfx_response(response)


def _timeout_seconds() -> float:
    raw = os.getenv("SFX_TIMEOUT_SECONDS")
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning(
            "Ignoring malformed SFX_TIMEOUT_SECONDS=%r; using %s", raw, DEFAULT_TIMEOUT_SECONDS
        )
        return DEFAULT_TIMEOUT_SECONDS
