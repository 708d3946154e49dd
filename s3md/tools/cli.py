"""
Command-line access to the document service.

Usage:
    python -m s3md.tools.cli render [FILE]   # print rendered HTML for FILE
    python -m s3md.tools.cli flush           # flush the configured cache

Configuration comes from the same S3MD_* environment variables as the web
service. `flush` is only meaningful with S3MD_CACHE_BACKEND=db; the memory
backend lives inside each process.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from s3md.storage.config import load_storage_settings
from s3md.web.wiring import build_document_cache, build_document_service

logger = logging.getLogger("s3md.tools.cli")


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render markdown documents from an S3 bucket")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Print the rendered HTML fragment for a document")
    render.add_argument("file", nargs="?", default=None, help="Document path, e.g. docs/guide.md")

    sub.add_parser("flush", help="Remove every cached document")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    level_name = os.getenv("LOG_LEVEL", "INFO")
    normalized_level = level_name.strip().upper() or "INFO"
    logging.basicConfig(level=normalized_level, format="%(levelname)s:%(name)s:%(message)s", stream=sys.stderr)
    args = _parse_args(argv)

    if args.command == "render":
        service = build_document_service()
        settings = load_storage_settings()
        if not settings.is_configured:
            logger.warning("S3MD_BUCKET, S3MD_ACCESS_KEY_ID and S3MD_SECRET_ACCESS_KEY must be set")
        sys.stdout.write(service.resolve(args.file, settings) + "\n")
        return 0

    cache = build_document_cache()
    flushed = cache.flush_all()
    logger.info("Flushed %d cached documents", flushed)
    sys.stdout.write(f"{flushed}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
