#!/usr/bin/env python3
"""
Helper script to save a LinkedIn session for the scraper.
Opens a persistent browser window for you to log in to LinkedIn and writes
the LinkedIn cookies to cookies.json once the login is detected.
"""

import asyncio
from pathlib import Path

from playwright.async_api import async_playwright

from profile_scraper_pkg.browser import CHROMIUM_ARGS, apply_stealth
from profile_scraper_pkg.config import COOKIES_FILE
from profile_scraper_pkg.cookies_auth import SESSION_COOKIE, save_cookies

AUTH_PATHS = ("/authwall", "/login", "/signup", "/checkpoint", "/uas/")
LOGGED_IN_PATHS = ("/feed", "/mynetwork", "/in/", "/messaging")


def looks_logged_in(url: str) -> bool:
    if any(k in url for k in AUTH_PATHS):
        return False
    return any(k in url for k in LOGGED_IN_PATHS)


async def main(max_wait_s: int = 300):
    print("🔐 Opening browser for LinkedIn login...")
    print("   Please log in to LinkedIn in the browser window.")
    print("   The script will auto-detect when you're logged in.\n")

    async with async_playwright() as p:
        context = await p.chromium.launch_persistent_context(
            str(Path("browser_data")),
            headless=False,
            args=CHROMIUM_ARGS,
            viewport={"width": 1280, "height": 900},
            locale="en-US",
        )
        await apply_stealth(context)

        page = context.pages[0] if context.pages else await context.new_page()
        await page.goto("https://www.linkedin.com/login")

        print("⏳ Waiting for login... (navigate to any LinkedIn page after login)")
        for i in range(max_wait_s // 2):
            await asyncio.sleep(2)
            if looks_logged_in(page.url):
                print(f"\n✅ Login detected! (URL: {page.url[:60]})")
                break
            if i % 15 == 0 and i > 0:
                print(f"   Still waiting... ({i*2}s elapsed)")
        else:
            print("\n⚠️ Login not detected before timeout; saving whatever cookies exist")

        await asyncio.sleep(3)
        cookies = await context.cookies()
        count = save_cookies(cookies, COOKIES_FILE)
        has_session = any(c["name"] == SESSION_COOKIE for c in cookies)

        print(f"\n📁 Saved {COOKIES_FILE} ({count} cookies)")
        print(f"   {SESSION_COOKIE} cookie: {'✅ Found' if has_session else '❌ Not found'}")
        await context.close()


if __name__ == "__main__":
    asyncio.run(main())
