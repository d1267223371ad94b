from __future__ import annotations

import argparse
import importlib
import json
import os
from pathlib import Path
import sys

from streamrelay.config import load_dotenv, load_settings
from streamrelay.connectors.mirror import MirrorFetchError, fetch_profile_markdown
from streamrelay.constants import WEB_DEFAULT_HOST, WEB_DEFAULT_PORT
from streamrelay.logging_utils import get_request_logger, new_request_id, setup_logging
from streamrelay.pipeline.byline import extract_byline
from streamrelay.platforms import InvalidSourceUrl, validate_source_url


def _print_result(result, *, as_json: bool) -> None:
    if as_json:
        payload = {"byline": result.text, "platform": result.platform.value, "outcome": result.outcome}
        print(json.dumps(payload, ensure_ascii=False))
    elif result.text:
        print(result.text)


def _cmd_byline(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    try:
        source = validate_source_url(args.url, settings.allowed_hosts)
    except InvalidSourceUrl as exc:
        print(f"invalid url: {exc}", file=sys.stderr)
        return 2

    logger = get_request_logger(new_request_id())
    try:
        markdown = fetch_profile_markdown(
            source.normalized,
            template=settings.mirror.url_template,
            timeout=settings.mirror.timeout_seconds,
            user_agent=settings.mirror.user_agent,
            max_chars=settings.byline.max_markdown_chars,
        )
    except MirrorFetchError as exc:
        print(f"upstream unavailable: {exc.reason}", file=sys.stderr)
        return 1

    result = extract_byline(source.normalized, markdown, max_chars=settings.byline.max_chars, logger=logger)
    _print_result(result, as_json=args.json)
    return 0


def _cmd_extract(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    if args.file == "-":
        raw = sys.stdin.read()
    else:
        raw = Path(args.file).read_text(encoding="utf-8")
    markdown = raw[: settings.byline.max_markdown_chars]
    result = extract_byline(args.url, markdown, max_chars=settings.byline.max_chars)
    _print_result(result, as_json=args.json)
    return 0


def _cmd_web(args: argparse.Namespace) -> int:
    try:
        uvicorn = importlib.import_module("uvicorn")
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError(
            "uvicorn is required for web mode. Install the web dependencies."
        ) from exc

    from streamrelay.web.app import create_app

    app = create_app(load_settings(args.config))
    uvicorn.run(app, host=args.host, port=args.port, reload=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="streamrelay")
    parser.add_argument("--config", default="config/relay.yaml")

    sub = parser.add_subparsers(dest="command", required=True)

    byline = sub.add_parser("byline", help="Fetch a profile through the mirror and print its byline")
    byline.add_argument("url")
    byline.add_argument("--json", action="store_true", help="Output JSON with platform and outcome")
    byline.set_defaults(func=_cmd_byline)

    extract = sub.add_parser("extract", help="Run the byline pipeline on saved mirror markdown")
    extract.add_argument("url", help="Profile URL the markdown was scraped from")
    extract.add_argument("--file", default="-", help="Markdown file, '-' for stdin")
    extract.add_argument("--json", action="store_true", help="Output JSON with platform and outcome")
    extract.set_defaults(func=_cmd_extract)

    web = sub.add_parser("web", help="Run the SSE relay and byline HTTP server")
    web.add_argument("--host", default=WEB_DEFAULT_HOST)
    web.add_argument("--port", type=int, default=int(os.getenv("PORT", WEB_DEFAULT_PORT)))
    web.set_defaults(func=_cmd_web)
    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(".env")
    setup_logging()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
