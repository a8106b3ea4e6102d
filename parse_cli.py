#!/usr/bin/env python3
"""CLI for the DBS checking/savings statement CSV parser."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from dbs_statement_parser import (
    DEFAULT_CURRENCY,
    ParseError,
    StatementLoadError,
    load_statement_text,
    parse_statement_text,
    standardize_transactions,
    statement_to_json,
)
from statement_logging import configure_logging, get_logger

logger = get_logger("dbs_statement.cli")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Parse a DBS checking/savings statement CSV export into JSON."
    )
    parser.add_argument("csv_path", type=Path, help="Path to statement CSV")
    parser.add_argument("-o", "--output", type=Path, help="Output JSON file path")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument(
        "--connection-id",
        help="Emit standardized transactions keyed by this bank connection id",
    )
    parser.add_argument(
        "--currency",
        default=DEFAULT_CURRENCY,
        help=f"Currency for standardized transactions (default: {DEFAULT_CURRENCY})",
    )
    parser.add_argument("--log-level", help="Logging level (default: $DBS_STATEMENT_LOG_LEVEL or INFO)")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        statement = parse_statement_text(load_statement_text(args.csv_path))
    except (ParseError, StatementLoadError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if args.connection_id:
        result = standardize_transactions(statement, args.connection_id, currency=args.currency)
    else:
        result = statement_to_json(statement)
    logger.info("Parsed %d transactions from %s", len(statement.transactions), args.csv_path)

    indent = 2 if args.pretty or args.output else None
    rendered = json.dumps(result, ensure_ascii=False, indent=indent)

    if args.output:
        args.output.write_text(rendered + ("\n" if indent is not None else ""), encoding="utf-8")
    else:
        print(rendered)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
