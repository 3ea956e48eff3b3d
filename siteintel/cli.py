"""
Command-line entry point: crawl one URL and print a summary.

Usage:
    python -m siteintel https://example.com
    python -m siteintel https://example.com --no-persist --output artifact.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from .config import configure_logging, get_settings
from .dom import is_http_url
from .errors import CrawlError
from .models import REPORT_SECTIONS
from .pipeline import CrawlPipeline, CrawlResult


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="siteintel",
        description="Crawl a web page, extract its structure and generate a business report"
    )
    parser.add_argument("url", help="Absolute http(s) URL to crawl")
    parser.add_argument("--no-persist", action="store_true",
                        help="Build the artifact without storing or archiving it")
    parser.add_argument("--output", type=Path, help="Write the artifact JSON to this file")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser


def print_summary(result: CrawlResult) -> None:
    artifact = result.artifact
    data = artifact.extracted_data
    report = artifact.business_report.to_json_dict()

    print("\n" + "=" * 70)
    print(f"✅ {artifact.url}")
    print("=" * 70)
    print(f"Title:       {data.title or '(none)'}")
    print(f"Description: {data.description or '(none)'}")
    print(f"Links: {len(data.links)} | Images: {len(data.images)} | Headings: {len(data.headings)}")
    if result.report_file:
        print(f"Report file: {result.report_file}")
    for name, title in REPORT_SECTIONS:
        print(f"\n## {title}\n{report[name]}")
    print(f"\n⏱️  {result.state.duration_seconds}s")


def write_output(result: CrawlResult, path: Path) -> None:
    payload = result.artifact.model_dump(mode="json", by_alias=True)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"💾 Artifact written to {path}")


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry"""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else None)

    if not is_http_url(args.url):
        print(f"Error: not an absolute http(s) URL: {args.url}", file=sys.stderr)
        return 1

    pipeline = CrawlPipeline.from_settings(get_settings(), persist=not args.no_persist)

    try:
        result = asyncio.run(pipeline.run(args.url))
    except CrawlError as e:
        print(f"❌ Crawl failed at stage '{e.stage.value}': {e}", file=sys.stderr)
        return 1
    finally:
        if pipeline.store is not None and hasattr(pipeline.store, "close"):
            pipeline.store.close()

    print_summary(result)
    if args.output:
        write_output(result, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
