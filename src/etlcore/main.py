# src/etlcore/main.py
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from etlcore.config import load_settings
from etlcore.extractors.errors import ExtractorError
from etlcore.extractors.rest import RestExtractor
from etlcore.logging import setup_logger
from etlcore.runlog import RunLog

logger = logging.getLogger(__name__)


def _header(value: str):
    key, sep, val = value.partition(":")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected KEY:VALUE, got {value!r}")
    return key.strip(), val.strip()


def _query(value: str):
    key, sep, val = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key, val


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="etlcore",
        description="Extract a value from a JSON REST endpoint.",
    )
    parser.add_argument("base_url", help="e.g. https://api.example.com")
    parser.add_argument("resource_path", help="endpoint path; its last segment is the default field")
    parser.add_argument("--field", help="field to extract instead of the resource path's last segment")
    parser.add_argument(
        "--format",
        choices=("field", "json", "text", "bytes"),
        default="field",
        help="field: one field of the JSON object (default); json: whole document; text/bytes: raw body",
    )
    parser.add_argument("--method", default="GET")
    parser.add_argument("--header", type=_header, action="append", default=[], metavar="KEY:VALUE")
    parser.add_argument("--query", type=_query, action="append", default=[], metavar="KEY=VALUE")
    parser.add_argument("--token", help="bearer token")
    parser.add_argument("--log-level", default=None, help="overrides ETL_LOG_LEVEL")
    return parser


def build_extractor(args: argparse.Namespace) -> RestExtractor:
    extractor = RestExtractor(args.base_url, args.resource_path, field=args.field)
    if args.method.upper() != "GET":
        extractor = extractor.with_method(args.method)
    for key, value in args.header:
        extractor = extractor.with_header(key, value)
    if args.query:
        extractor = extractor.with_query_param(*args.query)
    if args.token:
        extractor = extractor.with_auth_token(args.token)
    return extractor


async def run(args: argparse.Namespace, out=None) -> int:
    out = out or sys.stdout
    extractor = build_extractor(args)
    run_log = RunLog.start(f"{args.format}:{extractor.field}", source_uri=extractor.url)
    run_log.add_tag(extractor.source_name)
    run_log.mark_in_progress()

    try:
        if args.format == "field":
            result = await extractor.extract()
        elif args.format == "json":
            result = await extractor.extract_json()
        elif args.format == "text":
            result = await extractor.extract_text()
        else:
            result = await extractor.extract_bytes()
    except ExtractorError as e:
        run_log.mark_failed(str(e))
        logger.error("Extraction failed (%s): %s", e.kind.value, e.message)
        logger.info("Run summary: %s", json.dumps(run_log.to_dict()))
        return 1
    except asyncio.CancelledError:
        run_log.mark_cancelled()
        raise

    run_log.mark_completed()
    logger.info("Run summary: %s", json.dumps(run_log.to_dict()))

    if isinstance(result, bytes):
        print(f"{len(result)} bytes", file=out)
    elif isinstance(result, str) and args.format == "text":
        print(result, file=out)
    else:
        print(json.dumps(result, indent=2, ensure_ascii=False), file=out)
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings()
        setup_logger(args.log_level or settings.log_level)
    except ValueError as e:
        parser.error(str(e))
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
