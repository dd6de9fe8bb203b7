import logging
import os
import sys
import tempfile
import time
from typing import List, Optional

from .config import LOG_LEVEL


_INITIALIZED = False


def init_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once with a single stdout handler."""
    global _INITIALIZED
    if _INITIALIZED:
        return
    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(handler)
    _INITIALIZED = True


def add_debug(debug_list: Optional[List[str]], tag: str) -> None:
    """Append a debug tag to the in-flight list, if one is being collected.

    Tags are short `Field:strategy` markers that show which selector won
    without dumping page content.
    """
    if debug_list is not None:
        debug_list.append(tag)


async def save_debug_files(page, prefix: str = "debug") -> Optional[dict]:
    """Save a full-page screenshot and the HTML of a tab to the temp dir.

    Returns a map with file paths or None if saving fails (for instance when
    the tab was already closed).
    """
    try:
        ts = int(time.time())
        base = os.path.join(tempfile.gettempdir(), f"{prefix}_{ts}")
        screenshot_path = f"{base}.png"
        html_path = f"{base}.html"
        await page.screenshot(path=screenshot_path, full_page=True)
        content = await page.content()
        with open(html_path, "w", encoding="utf-8") as f:
            f.write(content)
        return {"screenshot": screenshot_path, "html": html_path}
    except Exception as e:
        logging.getLogger(__name__).warning("⚠️ Could not save debug files: %s", e)
        return None
