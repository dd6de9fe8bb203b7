#!/usr/bin/env python3
"""
LinkedIn Profile Batch Scraper - CLI Version

Scrapes a list of LinkedIn profiles one tab at a time and saves each one to
the profile API. At least 3 URLs are required per batch.

Usage:
    python scraper.py <URL> <URL> <URL> [OPTIONS]
    python scraper.py --file urls.csv [OPTIONS]

Example:
    python scraper.py linkedin.com/in/alice linkedin.com/in/bob linkedin.com/in/carol
    python scraper.py --file leads.xlsx --use-cdp --cdp-url http://localhost:9222
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from profile_scraper_pkg import scraper_logging
from profile_scraper_pkg.api_client import ProfileApiClient
from profile_scraper_pkg.browser import BrowserSession
from profile_scraper_pkg.config import (
    API_BASE_URL,
    CDP_URL,
    COOKIES_FILE,
    MAX_RETRIES,
    MIN_BATCH_SIZE,
    PROCESSING_DELAY_MS,
    RETRY_BACKOFF_MS,
    SETTLE_DELAY_MS,
    TAB_TIMEOUT_MS,
)
from profile_scraper_pkg.messages import describe_outcome, summary_line
from profile_scraper_pkg.models import BatchResult, ProgressEvent
from profile_scraper_pkg.navigation import TabController
from profile_scraper_pkg.orchestrator import BatchOrchestrator, RetryPolicy
from profile_scraper_pkg.urls import normalize_urls, read_url_file


def collect_urls(urls: List[str], file: Optional[str]) -> List[str]:
    """Combine positional URLs and URLs from a CSV/XLSX file, normalized and in order."""
    raw = list(urls or [])
    if file:
        path = Path(file)
        raw.extend(read_url_file(path.name, path.read_bytes()))
    valid, invalid = normalize_urls(raw)
    for value in invalid:
        print(f"⚠️ Skipping invalid LinkedIn URL: {value}")
    return valid


def print_progress(event: ProgressEvent) -> None:
    print(f"   [{event.processed}/{event.total}] {event.progress}% - {event.current_url}")


async def run_batch(args: argparse.Namespace, urls: List[str]) -> BatchResult:
    session = BrowserSession(
        headless=args.headless,
        use_cdp=args.use_cdp,
        cdp_url=args.cdp_url,
        proxy=args.proxy,
        cookies_path=args.cookies or COOKIES_FILE,
    )
    api = ProfileApiClient(base_url=args.api_url)
    try:
        health = await api.check_health()
        if health["status"] != "online":
            print(f"⚠️ Profile API is offline ({health.get('error')}); profiles will be reported as errors")

        tabs = TabController(session, settle_delay_ms=args.settle_ms)
        orchestrator = BatchOrchestrator(
            tabs,
            api,
            retry_policy=RetryPolicy(max_attempts=args.retries, backoff_ms=RETRY_BACKOFF_MS),
            delay_ms=args.delay_ms,
            tab_timeout_ms=args.tab_timeout_ms,
        )
        orchestrator.add_progress_listener(print_progress)
        print(f"🚀 Processing {len(urls)} profiles...")
        return await orchestrator.run_batch(urls)
    finally:
        await api.aclose()
        await session.close()


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="LinkedIn Profile Batch Scraper - Save LinkedIn profiles to the profile API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s linkedin.com/in/alice linkedin.com/in/bob linkedin.com/in/carol
  %(prog)s --file leads.csv --output results.json
  %(prog)s --file leads.xlsx --use-cdp --cdp-url http://localhost:9222
        """
    )

    parser.add_argument(
        "urls",
        nargs="*",
        help="LinkedIn profile URLs (e.g., https://www.linkedin.com/in/username/)"
    )
    parser.add_argument(
        "--file",
        "-f",
        help="CSV or Excel file with a column of profile URLs"
    )
    parser.add_argument(
        "--api-url",
        default=API_BASE_URL,
        help=f"Profile API base URL (default: {API_BASE_URL})"
    )
    parser.add_argument(
        "--delay-ms",
        type=int,
        default=PROCESSING_DELAY_MS,
        help=f"Delay between profiles in milliseconds (default: {PROCESSING_DELAY_MS})"
    )
    parser.add_argument(
        "--tab-timeout-ms",
        type=int,
        default=TAB_TIMEOUT_MS,
        help=f"Maximum time for a tab to finish loading (default: {TAB_TIMEOUT_MS})"
    )
    parser.add_argument(
        "--settle-ms",
        type=int,
        default=SETTLE_DELAY_MS,
        help=f"Wait after load before extracting (default: {SETTLE_DELAY_MS})"
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=MAX_RETRIES,
        help=f"Attempts per profile (default: {MAX_RETRIES})"
    )
    parser.add_argument(
        "--headless",
        type=lambda x: x.lower() in ("true", "1", "yes"),
        default=True,
        help="Run browser in headless mode (default: true)"
    )
    parser.add_argument(
        "--use-cdp",
        action="store_true",
        help="Use Chrome DevTools Protocol (CDP) to drive your own Chrome"
    )
    parser.add_argument(
        "--cdp-url",
        default=CDP_URL,
        help=f"CDP endpoint URL (default: {CDP_URL})"
    )
    parser.add_argument(
        "--proxy",
        help="Proxy URL to use for requests (e.g., http://proxy.example.com:8080)"
    )
    parser.add_argument(
        "--cookies",
        help="Path to cookies.json file. If not specified, uses default location"
    )
    parser.add_argument(
        "--output",
        "-o",
        help="Output file path (JSON format) for the batch results"
    )

    args = parser.parse_args()
    scraper_logging.init_logging()

    try:
        urls = collect_urls(args.urls, args.file)
    except (OSError, ValueError) as e:
        print(f"❌ Error: could not read URL file: {e}")
        sys.exit(1)

    if len(urls) < MIN_BATCH_SIZE:
        print(f"❌ Error: at least {MIN_BATCH_SIZE} valid LinkedIn profile URLs are required (got {len(urls)})")
        sys.exit(1)

    try:
        result = asyncio.run(run_batch(args, urls))

        print()
        for outcome in result.outcomes:
            print(describe_outcome(outcome))
        print(f"\n🎉 {summary_line(result.summary)}")

        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                json.dump(result.to_dict(), f, indent=2)
            print(f"\n📁 Results saved to: {args.output}")

        if result.summary.success or result.summary.duplicates:
            sys.exit(0)
        else:
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n⚠️ Interrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"❌ Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
