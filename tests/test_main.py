"""Tests for the CLI wiring (main.run / main.resolve_links)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

import main

_SAMPLE_REPLY = (Path(__file__).parent / "testdata" / "multi_obj_response.xml").read_bytes()
_QUERY = "rft.genre=book&rft.btitle=dune&rft.au=Herbert&sid=primo"
_ASK_URL = "http://library.nyu.edu/ask/"


def _mock_resp(content: bytes) -> MagicMock:
    mock = MagicMock()
    mock.content = content
    mock.status_code = 200
    mock.ok = True
    mock.reason = "OK"
    mock.headers = {"Content-Type": "text/xml"}
    mock.raw.version = 11
    mock.__enter__.return_value = mock
    mock.__exit__.return_value = False
    return mock


def test_resolve_links_posts_rendered_query_and_removes_targets() -> None:
    with patch("sfx_client.requests.post", return_value=_mock_resp(_SAMPLE_REPLY)) as mock_post:
        response = main.resolve_links(_QUERY, remove_target_urls=[_ASK_URL])

    request_xml = mock_post.call_args.kwargs["data"]["url_ctx_val"]
    assert "<rft:btitle>dune</rft:btitle>" in request_xml
    assert "<rft:au>Herbert</rft:au>" in request_xml
    assert [t.target_url for t in response.targets()] == [
        "http://www.jstor.org/action/showPublication?journalCode=philtran",
        "http://rstl.royalsocietypublishing.org/",
    ]


def test_dry_run_prints_xml_without_posting(capsys: pytest.CaptureFixture[str]) -> None:
    args = main.parse_args([_QUERY, "--dry-run"])

    with patch("sfx_client.requests.post") as mock_post:
        code = main.run(args)

    assert code == main.EXIT_OK
    mock_post.assert_not_called()
    assert capsys.readouterr().out.startswith('<?xml version="1.0" encoding="UTF-8"?>')


def test_json_output_is_default(capsys: pytest.CaptureFixture[str]) -> None:
    args = main.parse_args([_QUERY])

    with patch.dict("os.environ", {"SFX_REMOVE_TARGET_URLS": _ASK_URL}), \
         patch("sfx_client.requests.post", return_value=_mock_resp(_SAMPLE_REPLY)):
        code = main.run(args)

    assert code == main.EXIT_OK
    data = json.loads(capsys.readouterr().out)
    targets = data["ctx_obj"][0]["ctx_obj_targets"][0]["target"]
    assert len(targets) == 2


def test_links_output(capsys: pytest.CaptureFixture[str]) -> None:
    args = main.parse_args([_QUERY, "--format", "links", "--remove-target", _ASK_URL])

    with patch.dict("os.environ", {}, clear=True), \
         patch("sfx_client.requests.post", return_value=_mock_resp(_SAMPLE_REPLY)):
        main.run(args)

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "JSTOR Early Journal Content <http://www.jstor.org/action/showPublication?journalCode=philtran>",
        "    Available from 1665 until 1922.",
        "    Most recent 5 year(s) not available.",
        "Royal Society Journals <http://rstl.royalsocietypublishing.org/>",
    ]


@pytest.mark.parametrize("query, post_kwargs, expected", [
    ("genre=book", {"return_value": _mock_resp(_SAMPLE_REPLY)}, main.EXIT_INVALID_REQUEST),
    ("rft.genre=podcast", {"return_value": _mock_resp(_SAMPLE_REPLY)}, main.EXIT_INVALID_REQUEST),
    ("rft.genre=book&rft.btitle=%01", {"return_value": _mock_resp(_SAMPLE_REPLY)}, main.EXIT_RENDER_FAILED),
    ("rft.genre=book&rft.btitle=\udcff", {"return_value": _mock_resp(_SAMPLE_REPLY)}, main.EXIT_RENDER_FAILED),
    ("rft.genre=&rft.btitle=dune", {"return_value": _mock_resp(_SAMPLE_REPLY)}, main.EXIT_INVALID_REQUEST),
    (_QUERY, {"side_effect": requests.ConnectionError("down")}, main.EXIT_RESOLVER_UNAVAILABLE),
    (_QUERY, {"return_value": _mock_resp(b"<ctx_obj_set/>")}, main.EXIT_INVALID_RESPONSE),
])
def test_errors_map_to_exit_codes(query: str, post_kwargs: dict, expected: int) -> None:
    with patch("sfx_client.requests.post", **post_kwargs):
        assert main.run(main.parse_args([query])) == expected
