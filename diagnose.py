#!/usr/bin/env python3
"""
Diagnostic tool for the LinkedIn Profile Scraper.
Loads one profile, reports which selector matched each field and saves a
screenshot plus the page HTML for offline selector work.
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path

from bs4 import BeautifulSoup

from profile_scraper_pkg.browser import BrowserSession
from profile_scraper_pkg.config import CDP_URL, TAB_TIMEOUT_MS
from profile_scraper_pkg.extraction import extract_profile, is_authwall
from profile_scraper_pkg.navigation import TabController, warm_up_scroll
from profile_scraper_pkg.scraper_logging import save_debug_files
from profile_scraper_pkg.urls import is_valid_linkedin_url, normalize_linkedin_url


REPORT_FIELDS = ("name", "headline", "location", "about", "profile_picture", "connection_count", "follower_count")


async def diagnose_url(url: str, output_dir: str, headless: bool = True, use_cdp: bool = False,
                       cdp_url: str = CDP_URL) -> dict:
    """
    Load a profile in a fresh tab and describe what the extractor sees.

    Args:
        url: LinkedIn profile URL to diagnose
        output_dir: Directory to save the HTML and a JSON report
    """
    print("\n" + "=" * 80)
    print("LinkedIn Profile Scraper Diagnostic Tool")
    print("=" * 80)
    print(f"\nTarget URL: {url}")
    print(f"Output directory: {output_dir}")
    print(f"Timestamp: {datetime.now().isoformat()}\n")

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    results = {"url": url, "timestamp": datetime.now().isoformat(), "steps": []}

    async with BrowserSession(headless=headless, use_cdp=use_cdp, cdp_url=cdp_url) as session:
        tabs = TabController(session, block_images=False)
        context = await session.get_context()
        page = await context.new_page()
        try:
            print("Step 1: Loading profile page...")
            try:
                await page.goto(url, wait_until="commit", timeout=TAB_TIMEOUT_MS)
                await tabs.wait_for_complete(page, TAB_TIMEOUT_MS)
            except Exception as e:
                print(f"  ❌ Failed to load: {str(e)[:100]}")
                results["steps"].append({"step": 1, "status": "failed", "error": str(e)})
                return results
            await asyncio.sleep(tabs.settle_delay_ms / 1000)
            await warm_up_scroll(page)
            print(f"  ✅ Loaded, final URL: {page.url}")
            results["steps"].append({"step": 1, "status": "success", "final_url": page.url})

            print("\nStep 2: Extracting profile...")
            html = await page.content()
            debug = []
            record = extract_profile(html, url=url, debug=debug)
            guest = is_authwall(BeautifulSoup(html, "html.parser"))
            values = record.model_dump()
            for field in REPORT_FIELDS:
                value = values.get(field)
                matched = [tag.split(":", 1)[1] for tag in debug if tag.startswith(f"{field}:")]
                mark = "✅" if value else "❌"
                print(f"  {mark} {field}: {str(value)[:60] if value else '-'}")
                if matched:
                    print(f"       via {matched[0]}")
            print(f"  📋 experience: {len(record.experience)}, education: {len(record.education)}, "
                  f"skills: {len(record.skills)}")
            print(f"  📊 status: {record.extraction_status.value}")
            if guest:
                print("  ⚠️  Authwall detected: save a session with save_cookies.py")
            results["steps"].append({
                "step": 2,
                "status": record.extraction_status.value,
                "debug": debug,
                "guest_mode": guest,
                "record": record.model_dump(by_alias=True, mode="json"),
            })

            print("\nStep 3: Saving debug files...")
            files = await save_debug_files(page, "diagnose")
            if files:
                print(f"  📁 Screenshot: {files['screenshot']}")
                print(f"  📁 HTML: {files['html']}")
            results["debug_files"] = files
        finally:
            await page.close()

    report = output_path / f"diagnose_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
    report.write_text(json.dumps(results, indent=2), encoding="utf-8")
    print(f"\n📁 Report saved to: {report}")
    return results


async def main():
    parser = argparse.ArgumentParser(description="Diagnose profile extraction for one LinkedIn URL")
    parser.add_argument("url", help="LinkedIn profile URL")
    parser.add_argument("--output-dir", default="/tmp", help="Where to write the report (default: /tmp)")
    parser.add_argument("--headless", type=lambda x: x.lower() in ("true", "1", "yes"), default=True)
    parser.add_argument("--use-cdp", action="store_true")
    parser.add_argument("--cdp-url", default=CDP_URL)
    args = parser.parse_args()

    if not is_valid_linkedin_url(args.url):
        print("❌ Error: URL must be a LinkedIn profile URL (linkedin.com/in/...)")
        sys.exit(1)

    await diagnose_url(
        normalize_linkedin_url(args.url),
        args.output_dir,
        headless=args.headless,
        use_cdp=args.use_cdp,
        cdp_url=args.cdp_url,
    )


if __name__ == "__main__":
    asyncio.run(main())
