"""Selector tables for LinkedIn profile pages.

Every field maps to an ordered chain of candidates: the current markup first,
then progressively more generic fallbacks. LinkedIn changes class names
regularly, so updating a selector should only ever mean editing these tables.
"""
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from .config import (
    CONNECTION_COUNT_CEILING,
    FOLLOWER_COUNT_CEILING,
    MAX_EDUCATION_ITEMS,
    MAX_EXPERIENCE_ITEMS,
)


Predicate = Callable[[str], bool]

BULLET = "•"
LOCATION_KEYWORDS = ("connection", "follower", "view", "profile", "contact", "mutual")


def non_empty(text: str) -> bool:
    return bool(text and text.strip())


def no_bullet(text: str) -> bool:
    return non_empty(text) and BULLET not in text


def plausible_location(text: str) -> bool:
    """Reject strings that are clearly not a place name.

    Top-card small text also holds counts ("500+ connections") and contact
    links, so anything with digits, bullets or count keywords is dropped.
    """
    if not text or BULLET in text or re.search(r"\d", text):
        return False
    if len(text) < 3 or len(text) > 100:
        return False
    lowered = text.lower()
    return not any(k in lowered for k in LOCATION_KEYWORDS)


def http_url(value: str) -> bool:
    return bool(value) and value.startswith("http") and not value.startswith("data:")


@dataclass(frozen=True)
class Candidate:
    selector: str
    accept: Predicate = non_empty
    attribute: Optional[str] = None


@dataclass(frozen=True)
class CountRule:
    keyword: str
    excluded: Tuple[str, ...]
    selectors: Tuple[str, ...]
    ceiling: int


@dataclass(frozen=True)
class ListRule:
    items: str
    fields: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    limit: int = 5


FIELD_SELECTORS: Dict[str, Tuple[Candidate, ...]] = {
    "name": (
        Candidate("h1.text-heading-xlarge.inline.t-24.v-align-middle.break-words"),
        Candidate("h1.text-heading-xlarge"),
        Candidate(".pv-text-details__left-panel h1"),
        Candidate(".ph5 h1"),
        Candidate("h1[aria-label]"),
        Candidate("main section h1"),
    ),
    "headline": (
        Candidate(".text-body-medium.break-words", no_bullet),
        Candidate(".pv-text-details__left-panel .text-body-medium", no_bullet),
        Candidate(".ph5 .text-body-medium", no_bullet),
        Candidate("div[data-generated-suggestion-target]", no_bullet),
    ),
    "location": (
        Candidate(".text-body-small.inline.t-black--light.break-words", plausible_location),
        Candidate(".pv-text-details__left-panel .text-body-small", plausible_location),
        Candidate(".pv-top-card--list-bullet li", plausible_location),
    ),
    "about": (
        Candidate("#about ~ * .inline-show-more-text"),
        Candidate(".pv-about-section .pv-shared-text-with-see-more"),
        Candidate(".pv-about__summary-text .inline-show-more-text"),
        Candidate("section[data-section='summary'] .inline-show-more-text"),
    ),
    "profile_picture": (
        Candidate(".pv-top-card__photo img", http_url, attribute="src"),
        Candidate(".profile-photo-edit__preview img", http_url, attribute="src"),
        Candidate(".pv-top-card-profile-picture img", http_url, attribute="src"),
        Candidate("img.pv-top-card-profile-picture__image", http_url, attribute="src"),
    ),
}


COUNT_RULES: Dict[str, CountRule] = {
    "connection_count": CountRule(
        keyword="connection",
        excluded=("mutual", "view"),
        selectors=(
            'a[href*="/search/results/people/?network=%5B%22F%22%5D"] .t-black--light .t-bold',
            'a[href*="search/results/people"] .t-black--light',
            ".pv-top-card--list-bullet li:first-child .t-black--light",
            ".pv-top-card__connections .t-black--light",
            ".t-black--light, .t-normal, .pv-top-card--list-bullet li",
            'a[href*="search/results/people"], a[href*="network"]',
        ),
        ceiling=CONNECTION_COUNT_CEILING,
    ),
    "follower_count": CountRule(
        keyword="follower",
        excluded=("following",),
        selectors=(
            'a[href*="/followers/"] .t-black--light .t-bold',
            'a[href*="followers"] .t-black--light',
            ".pv-top-card--list-bullet li:last-child .t-black--light",
            ".pv-top-card__followers .t-black--light",
            ".t-black--light, .t-normal, .pv-top-card--list-bullet li",
            'a[href*="followers"]',
        ),
        ceiling=FOLLOWER_COUNT_CEILING,
    ),
}


EXPERIENCE_RULE = ListRule(
    items='#experience ~ * .pvs-list__item, [data-section="experience"] .pvs-list__item',
    fields={
        "title": (".mr1.t-bold", ".t-bold", ".pvs-entity__caption-wrapper .t-bold"),
        "company": (".t-14.t-normal", ".pvs-entity__caption-wrapper .t-14"),
    },
    limit=MAX_EXPERIENCE_ITEMS,
)

EDUCATION_RULE = ListRule(
    items='#education ~ * .pvs-list__item, [data-section="education"] .pvs-list__item',
    fields={
        "school": (".mr1.t-bold", ".t-bold"),
        "degree": (".t-14.t-normal",),
    },
    limit=MAX_EDUCATION_ITEMS,
)

SKILL_ITEMS = '#skills ~ * .pvs-list__item .t-bold, [data-section="skills"] .t-bold'

AUTHWALL_SELECTORS = (
    ".authwall-join-form",
    "form.authwall-join-form",
    "[data-test-id='join-form']",
    "[data-test-id='header-join']",
)
