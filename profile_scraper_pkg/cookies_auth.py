import json
import logging
import os
import re
from typing import List, Tuple

from playwright.async_api import BrowserContext

from .config import COOKIES_FILE


logger = logging.getLogger(__name__)

SESSION_COOKIE = "li_at"


def sanitize_cookie(c: dict) -> dict | None:
    """Normalize one exported cookie for `BrowserContext.add_cookies`.

    Returns None for cookies that do not belong to LinkedIn or lack a
    name/value. Browser exports use `no_restriction`/`lax` spellings for
    `sameSite`; Playwright only accepts `None`, `Lax` and `Strict`.
    """
    if not isinstance(c, dict) or not c.get("name") or not isinstance(c.get("value"), str):
        return None
    domain = c.get("domain", "")
    if domain and not domain.startswith("."):
        domain = "." + domain
    if "linkedin.com" not in domain:
        return None
    cookie = {k: v for k, v in c.items() if k not in ("hostOnly", "session", "storeId", "id")}
    cookie["domain"] = domain
    cookie["value"] = re.sub(r"\s+", "", c["value"])
    if not cookie["value"]:
        return None
    if "sameSite" in cookie:
        same_site = str(cookie["sameSite"]).lower()
        if same_site in ("no_restriction", "none"):
            cookie["sameSite"] = "None"
        elif same_site in ("lax", "strict"):
            cookie["sameSite"] = same_site.capitalize()
        else:
            cookie["sameSite"] = "Lax"
    return cookie


def load_cookies(path: str = COOKIES_FILE) -> List[dict]:
    """Load LinkedIn cookies saved by `save_cookies.py`; [] when unavailable."""
    if not os.path.exists(path):
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("⚠️ Cookie load error: %s", e)
        return []
    if not isinstance(raw, list):
        return []
    return [c for c in (sanitize_cookie(item) for item in raw) if c is not None]


def save_cookies(cookies: List[dict], path: str = COOKIES_FILE) -> int:
    linkedin_cookies = [c for c in cookies if "linkedin.com" in c.get("domain", "")]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(linkedin_cookies, f, indent=2)
    return len(linkedin_cookies)


async def apply_cookies(context: BrowserContext, cookies: List[dict]) -> Tuple[bool, bool]:
    """Apply cookies to the context and return (cookies_loaded, has_session)."""
    has_session = any(c.get("name") == SESSION_COOKIE for c in cookies)
    if not cookies:
        return False, has_session
    try:
        await context.add_cookies(cookies)
        return True, has_session
    except Exception as e:
        logger.warning("⚠️ Could not apply cookies: %s", e)
        return False, has_session
