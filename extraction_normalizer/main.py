"""Command line entry point.

Sub-commands read extraction JSON from a file path (or "-" for stdin) and
write to stdout:

    extraction-normalizer clean payload.json [--extracted-only]
    extraction-normalizer flatten payload.json
    extraction-normalizer master-log normalized.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from extraction_normalizer.core.config import get_settings
from extraction_normalizer.export.flattener import flatten_extraction
from extraction_normalizer.export.master_log import get_csv_data
from extraction_normalizer.extraction.transformer import transform_extraction_results

logger = logging.getLogger("extraction_normalizer.cli")


def read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="extraction-normalizer",
        description="Reshape document extraction results into clean JSON, flat mappings or master-log rows",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    clean = sub.add_parser("clean", help="Print the clean hierarchical JSON document")
    clean.add_argument("source", help="Raw extraction JSON file, or - for stdin")
    clean.add_argument("--extracted-only", action="store_true",
                       help="Do not add taxonomy fields missing from the document")

    flatten = sub.add_parser("flatten", help="Print a flat field name -> value JSON object")
    flatten.add_argument("source", help="Normalized or raw extraction JSON file, or - for stdin")

    master = sub.add_parser("master-log", help="Print the master-log header line and data row")
    master.add_argument("source", help="Normalized JSON file, or - for stdin")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s",
                        stream=sys.stderr)
    args = build_parser().parse_args(argv)

    try:
        text = read_source(args.source)
    except OSError as exc:
        logger.error("read_failed source=%s error=%s", args.source, exc)
        return 2

    if args.command == "clean":
        output = transform_extraction_results(text, include_missing_fields=not args.extracted_only)
        print(output)
        return 1 if "ErrorMessage" in json.loads(output) else 0

    try:
        if args.command == "flatten":
            print(json.dumps(flatten_extraction(text), indent=settings.JSON_INDENT, ensure_ascii=False))
        else:
            headers, row = get_csv_data(text)
            print(headers)
            print(row)
    except ValueError as exc:
        # json.JSONDecodeError is a ValueError too
        logger.error("%s_failed error=%s", args.command.replace("-", "_"), exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
