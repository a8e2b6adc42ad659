"""CLI entrypoint: resolve an OpenURL querystring through SFX."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from urllib.parse import parse_qs

from dotenv import load_dotenv

from errors import (
    InvalidRequestError,
    InvalidResponseError,
    RenderError,
    ResolverUnavailableError,
    SFXError,
)
from openurl import filter_openurl_params
from sfx_request import new_multi_objects_request
from sfx_response import SFXResponse

EXIT_OK = 0
EXIT_INVALID_REQUEST = 2
EXIT_RENDER_FAILED = 3
EXIT_RESOLVER_UNAVAILABLE = 4
EXIT_INVALID_RESPONSE = 5

_EXIT_CODES: list[tuple[type[SFXError], int]] = [
    (InvalidRequestError, EXIT_INVALID_REQUEST),
    (RenderError, EXIT_RENDER_FAILED),
    (ResolverUnavailableError, EXIT_RESOLVER_UNAVAILABLE),
    (InvalidResponseError, EXIT_INVALID_RESPONSE),
]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Resolve an OpenURL querystring through SFX")
    parser.add_argument("query", help="OpenURL querystring, e.g. 'rft.genre=book&rft.btitle=dune'")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the context object XML that would be posted to SFX",
    )
    parser.add_argument(
        "--format",
        choices=["json", "xml", "links", "dump"],
        default="json",
        help=(
            "Output format. 'json' (default): JSON projection of the reply. "
            "'xml': raw reply XML. 'links': one line per target. 'dump': full HTTP reply."
        ),
    )
    parser.add_argument(
        "--remove-target",
        action="append",
        default=[],
        metavar="URL",
        help="Drop targets with this exact URL (repeatable; adds to SFX_REMOVE_TARGET_URLS)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def resolve_links(query: str, remove_target_urls: list[str] | None = None) -> SFXResponse:
    """Run one querystring through the whole OpenURL -> SFX chain."""
    params = filter_openurl_params(parse_qs(query, keep_blank_values=True))
    request = new_multi_objects_request(params)
    response = request.do()
    for url in remove_target_urls or []:
        response.remove_target(url)
    return response


def format_links(response: SFXResponse) -> str:
    """Render targets as 'public name <url>' lines followed by their coverage."""
    lines: list[str] = []
    for target in response.targets():
        lines.append(f"{target.target_public_name or target.target_name} <{target.target_url}>")
        lines.extend(f"    {statement}" for statement in target.coverage_statements())
    return "\n".join(lines)


def run(args: argparse.Namespace) -> int:
    """Execute one CLI invocation and return the process exit code."""
    remove_urls = [u.strip() for u in os.getenv("SFX_REMOVE_TARGET_URLS", "").split(",") if u.strip()]
    remove_urls.extend(args.remove_target)

    try:
        if args.dry_run:
            params = filter_openurl_params(parse_qs(args.query, keep_blank_values=True))
            print(new_multi_objects_request(params).request_xml)
            return EXIT_OK
        response = resolve_links(args.query, remove_target_urls=remove_urls)
    except SFXError as exc:
        logging.error("SFX lookup failed: %s", exc)
        return _exit_code(exc)

    if args.format == "xml":
        print(response.xml_text)
    elif args.format == "dump":
        print(response.dumped_http_response)
    elif args.format == "links":
        print(format_links(response))
    else:
        print(response.json_text)

    logging.info("SFX lookup complete: targets=%s", len(response.targets()))
    return EXIT_OK


def _exit_code(exc: SFXError) -> int:
    for error_type, code in _EXIT_CODES:
        if isinstance(exc, error_type):
            return code
    return 1


def main(argv: list[str] | None = None) -> None:
    """Initialize config and resolve the querystring."""
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    sys.exit(run(args))


if __name__ == "__main__":
    main()
