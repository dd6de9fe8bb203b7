"""
One-command launcher: a CDP-enabled Chrome, the profile API and the control UI.

Environment:
  UI_HOST / UI_PORT      control UI bind (default 127.0.0.1:8787)
  API_PORT               profile API port (default 3000)
  SCRAPER_CDP_PORT       Chrome remote debugging port (default 9222)
  CHROME_PATH            explicit Chrome executable
"""
from __future__ import annotations

import os
import sys
import time
import shutil
import tempfile
import subprocess
import webbrowser
import importlib
from dataclasses import dataclass
from threading import Thread

import httpx
import uvicorn

CHROME_CANDIDATES = {
    "darwin": ["/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"],
    "win": [
        "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
        "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    ],
}
CHROME_BINARIES = ("google-chrome", "chrome", "chromium", "chromium-browser")


@dataclass
class Server:
    name: str
    module: str
    port: int
    health_path: str


def find_chrome() -> str | None:
    explicit = os.environ.get("CHROME_PATH")
    if explicit and os.path.exists(explicit):
        return explicit
    platform = "win" if sys.platform.startswith("win") else sys.platform
    for path in CHROME_CANDIDATES.get(platform, []):
        if os.path.exists(path):
            return path
    return next((found for found in map(shutil.which, CHROME_BINARIES) if found), None)


def is_up(url: str) -> bool:
    try:
        return httpx.get(url, timeout=2).status_code == 200
    except httpx.HTTPError:
        return False


def wait_until_up(url: str, timeout_s: float = 15) -> bool:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if is_up(url):
            return True
        time.sleep(0.25)
    return False


def start_chrome(port: int) -> subprocess.Popen | None:
    """Start a dedicated Chrome with remote debugging. Returns None when one already answers."""
    if is_up(f"http://127.0.0.1:{port}/json/version"):
        print(f"✅ Chrome CDP already running on port {port}")
        return None
    chrome_path = find_chrome()
    if not chrome_path:
        print("⚠️ Chrome executable not found. Install Chrome or set CHROME_PATH; the scraper will launch its own Chromium.")
        return None

    profile_dir = os.path.join(tempfile.gettempdir(), "linkedin_profile_cdp")
    cmd = [
        chrome_path,
        f"--remote-debugging-port={port}",
        f"--user-data-dir={profile_dir}",
        "--no-first-run",
        "--no-default-browser-check",
    ]
    detach = (
        {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
        if sys.platform.startswith("win")
        else {"start_new_session": True}
    )
    proc = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, **detach)
    if wait_until_up(f"http://127.0.0.1:{port}/json/version", timeout_s=10):
        print(f"✅ Chrome CDP started on port {port} (pid {proc.pid})")
    else:
        print(f"⚠️ Chrome started (pid {proc.pid}) but CDP is not answering on port {port}")
    return proc


def serve(server: Server, host: str) -> None:
    module = importlib.import_module(server.module)
    uvicorn.run(module.app, host=host, port=server.port, log_level="info")


def main() -> None:
    host = os.environ.get("UI_HOST", "127.0.0.1")
    cdp_port = int(os.environ.get("SCRAPER_CDP_PORT", "9222"))
    servers = [
        Server("Profile API", "app", int(os.environ.get("API_PORT", "3000")), "/api/health"),
        Server("Control UI", "ui_app", int(os.environ.get("UI_PORT", "8787")), "/"),
    ]
    api, ui = servers

    # Must be set before app modules import the config.
    os.environ.setdefault("SCRAPER_USE_CDP", "true")
    os.environ.setdefault("SCRAPER_CDP_URL", f"http://127.0.0.1:{cdp_port}")
    os.environ.setdefault("PROFILE_API_BASE_URL", f"http://{host}:{api.port}/api")

    chrome = start_chrome(cdp_port)

    for server in servers:
        url = f"http://{host}:{server.port}{server.health_path}"
        if is_up(url):
            print(f"✅ {server.name} already running on port {server.port}")
            continue
        Thread(target=serve, args=(server, host), daemon=True).start()
        if not wait_until_up(url):
            print(f"❌ {server.name} did not come up on port {server.port}")

    ui_url = f"http://{host}:{ui.port}"
    webbrowser.open(ui_url)
    print("\nLinkedIn Profile Scraper is running:")
    print(f"  UI:  {ui_url}")
    print(f"  API: http://{host}:{api.port}/api")
    print("Press Ctrl+C to stop.")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        if chrome is not None and chrome.poll() is None:
            chrome.terminate()


if __name__ == "__main__":
    main()
