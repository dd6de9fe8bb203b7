from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'profile_scraper_pkg.navigation'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    os.environ.setdefault("RUN_ENV", "test")


def profile_html(
    name: str = "Alice Example",
    headline: Optional[str] = "Software Engineer at Acme",
    location: Optional[str] = "Berlin, Germany",
    connections: str = "500+",
    followers: str = "1,234",
    extra: str = "",
) -> str:
    """Minimal top-card markup in the shape LinkedIn serves to logged-in members."""
    parts = ['<html><body><main><section class="artdeco-card"><div class="ph5">']
    if name:
        parts.append(f'<h1 class="text-heading-xlarge inline t-24 v-align-middle break-words">{name}</h1>')
    if headline:
        parts.append(f'<div class="text-body-medium break-words">{headline}</div>')
    if location:
        parts.append(f'<span class="text-body-small inline t-black--light break-words">{location}</span>')
    parts.append(
        '<ul class="pv-top-card--list-bullet">'
        f'<li><span class="t-black--light"><span class="t-bold">{connections}</span> connections</span></li>'
        f'<li><span class="t-black--light">{followers} followers</span></li>'
        "</ul>"
    )
    parts.append(f"</div></section>{extra}</main></body></html>")
    return "".join(parts)


class FakePage:
    """Stand-in for a Playwright page; records its lifecycle on the owning context."""

    def __init__(self, context: "FakeContext"):
        self.context = context
        self.url = ""
        self.routes = []
        self.evaluated = []
        self._closed = False
        self._states = []

    async def route(self, pattern, handler):
        self.routes.append(pattern)

    async def goto(self, url, timeout=None, wait_until=None):
        self.url = url
        self.context.visited.append(url)
        error = self.context.goto_errors.get(url)
        if error is not None:
            raise error
        self._states = list(self.context.ready_states.get(url, ("loading", "complete")))

    async def evaluate(self, script):
        self.evaluated.append(script)
        if script == "document.readyState":
            if self.url in self.context.close_while_loading:
                await self.close()
                raise RuntimeError("Target page, context or browser has been closed")
            if len(self._states) > 1:
                return self._states.pop(0)
            return self._states[0] if self._states else "loading"
        return None

    async def content(self):
        return self.context.profiles.get(self.url, "<html><body></body></html>")

    def is_closed(self):
        return self._closed

    async def close(self):
        if not self._closed:
            self._closed = True
            self.context.open_count -= 1


class FakeContext:
    def __init__(
        self,
        profiles: Optional[Dict[str, str]] = None,
        ready_states: Optional[Dict[str, Iterable[str]]] = None,
        goto_errors: Optional[Dict[str, Exception]] = None,
        close_while_loading: Iterable[str] = (),
    ):
        self.profiles = profiles or {}
        self.ready_states = ready_states or {}
        self.goto_errors = goto_errors or {}
        self.close_while_loading = set(close_while_loading)
        self.pages = []
        self.visited = []
        self.open_count = 0
        self.max_open = 0

    async def new_page(self):
        page = FakePage(self)
        self.pages.append(page)
        self.open_count += 1
        self.max_open = max(self.max_open, self.open_count)
        return page


class FakeSession:
    def __init__(self, context: FakeContext):
        self.context = context

    async def get_context(self):
        return self.context

    async def close(self):
        pass


class FakeApi:
    """Stores profiles by URL the way the backend's unique constraint does."""

    def __init__(self, fail_urls=(), raise_urls=()):
        self.stored = {}
        self.fail_urls = set(fail_urls)
        self.raise_urls = set(raise_urls)

    async def create_profile(self, record):
        from profile_scraper_pkg.api_client import CreateResult
        from profile_scraper_pkg.models import Outcome

        if record.url in self.raise_urls:
            raise RuntimeError("connection reset")
        if record.url in self.fail_urls:
            return CreateResult(Outcome.ERROR, message="Validation failed")
        if record.url in self.stored:
            return CreateResult(Outcome.DUPLICATE, self.stored[record.url], "Profile with this LinkedIn URL already exists")
        self.stored[record.url] = len(self.stored) + 1
        return CreateResult(Outcome.CREATED, self.stored[record.url], "Profile created successfully")

    async def check_health(self):
        return {"status": "online"}


def profile_urls(*slugs: str):
    return [f"https://www.linkedin.com/in/{slug}" for slug in slugs]


def context_for(*slugs: str, **kwargs) -> FakeContext:
    """Context serving a complete profile page for each slug."""
    profiles = {url: profile_html(name=slug.title()) for url, slug in zip(profile_urls(*slugs), slugs)}
    return FakeContext(profiles=profiles, **kwargs)
