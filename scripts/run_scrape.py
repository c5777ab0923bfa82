"""
Run one enforcement scrape session from the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import os

from app.scraping.errors import ScrapeError
from app.services.scraping_service import InlineTaskExecutor, ScrapingService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run an enforcement scrape session inline.")
    parser.add_argument("source", help="Source id, e.g. hse or ea.")
    parser.add_argument("enforcement_type", help="Enforcement type, e.g. case or notice.")
    parser.add_argument("--start-page", dest="start_page", default=None)
    parser.add_argument("--max-pages", dest="max_pages", default=None)
    parser.add_argument("--database", default=None, help="HSE case database: convictions or appeals.")
    parser.add_argument("--country", default=None, help="HSE notice country filter.")
    parser.add_argument("--date-from", dest="date_from", default=None, help="EA window start (YYYY-MM-DD).")
    parser.add_argument("--date-to", dest="date_to", default=None, help="EA window end (YYYY-MM-DD).")
    parser.add_argument(
        "--categories",
        default=None,
        help="Comma-separated EA action categories, e.g. court_case,caution.",
    )
    parser.add_argument("--batch-size", dest="batch_size", default=None)
    parser.add_argument(
        "--process-all-records",
        dest="process_all_records",
        action="store_true",
        help="Process every record, refreshing ones already stored, and disable early exit.",
    )
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    params = {
        name: getattr(args, name)
        for name in ("start_page", "max_pages", "database", "country", "date_from", "date_to", "categories", "batch_size")
        if getattr(args, name) is not None
    }

    service = ScrapingService()
    try:
        session = service.start_run(
            executor=InlineTaskExecutor(),
            source=args.source,
            enforcement_type=args.enforcement_type,
            params=params,
            process_all_records=args.process_all_records,
        )
    except ScrapeError as exc:
        print(json.dumps({"error": str(exc)}, indent=2))
        return 2

    payload = {
        "session_id": session.session_id,
        "status": session.status,
        "params": session.params,
        "counters": session.counters.as_dict(),
        "recent_errors": session.recent_errors,
        "error_message": session.error_message,
    }
    print(json.dumps(payload, indent=2, default=str))
    return 0 if session.status != "failed" else 1


if __name__ == "__main__":
    raise SystemExit(main())
