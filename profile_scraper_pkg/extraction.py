import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from .config import MAX_SKILLS
from .models import (
    EducationItem,
    ExperienceItem,
    ExtractionStatus,
    ProfileRecord,
    compute_extraction_status,
)
from .scraper_logging import add_debug
from .selectors import (
    AUTHWALL_SELECTORS,
    COUNT_RULES,
    EDUCATION_RULE,
    EXPERIENCE_RULE,
    FIELD_SELECTORS,
    SKILL_ITEMS,
    CountRule,
    ListRule,
)


logger = logging.getLogger(__name__)

_WS = re.compile(r"\s+")
_INT = re.compile(r"(\d+(?:,\d+)*)")


def clean_text(value: Optional[str]) -> str:
    return _WS.sub(" ", value or "").strip()


def element_text(el: Tag, prefer_aria: bool = True) -> str:
    """Visible text of an element.

    LinkedIn renders most labels twice (an `aria-hidden` copy and a
    visually-hidden copy for screen readers); reading the aria-hidden span
    avoids doubled strings like "EngineerEngineer".
    """
    if prefer_aria:
        aria = el.select_one("span[aria-hidden='true']")
        if aria is not None and clean_text(aria.get_text()):
            return clean_text(aria.get_text())
    return clean_text(el.get_text(" "))


def first_match(soup, field: str, debug: Optional[List[str]] = None) -> Optional[str]:
    """Walk the candidate chain of `field` and return the first plausible value."""
    for candidate in FIELD_SELECTORS[field]:
        for el in soup.select(candidate.selector):
            if candidate.attribute:
                value = clean_text(el.get(candidate.attribute))
            else:
                value = element_text(el)
            if candidate.accept(value):
                add_debug(debug, f"{field}:{candidate.selector}")
                return value
    return None


def parse_count(text: str, rule: CountRule) -> Optional[int]:
    """Parse the first integer out of a count label such as "1,234 followers".

    Returns None when the text is not about the rule's keyword or mentions one
    of its exclusions ("mutual connections", "following").
    """
    lowered = (text or "").lower()
    if rule.keyword not in lowered:
        return None
    if any(word in lowered for word in rule.excluded):
        return None
    match = _INT.search(lowered)
    if not match:
        return None
    return int(match.group(1).replace(",", ""))


def sanitize_count(value: int, ceiling: int) -> int:
    """Reset implausible counts to 0; they come from matching the wrong node."""
    if value > ceiling:
        logger.warning("⚠️ Count %s exceeds sanity ceiling %s, resetting to 0", value, ceiling)
        return 0
    return value


def extract_count(soup, field: str, debug: Optional[List[str]] = None) -> int:
    rule = COUNT_RULES[field]
    for selector in rule.selectors:
        for el in soup.select(selector):
            value = parse_count(element_text(el, prefer_aria=False), rule)
            if value is not None:
                add_debug(debug, f"{field}:{selector}")
                return sanitize_count(value, rule.ceiling)
    return 0


def _first_text(el: Tag, selectors) -> str:
    for selector in selectors:
        found = el.select_one(selector)
        if found is not None:
            text = element_text(found)
            if text:
                return text
    return ""


def extract_list(soup, rule: ListRule) -> List[Dict[str, str]]:
    return [
        {name: _first_text(item, selectors) for name, selectors in rule.fields.items()}
        for item in soup.select(rule.items)
    ]


def extract_experience(soup) -> List[ExperienceItem]:
    experience: List[ExperienceItem] = []
    for entry in extract_list(soup, EXPERIENCE_RULE):
        if len(experience) >= EXPERIENCE_RULE.limit:
            break
        title, company = entry["title"], entry["company"]
        if title and title in company:
            company = ""
        if title or company:
            experience.append(ExperienceItem(title=title, company=company, order=len(experience)))
    return experience


def extract_education(soup) -> List[EducationItem]:
    education: List[EducationItem] = []
    for entry in extract_list(soup, EDUCATION_RULE):
        if len(education) >= EDUCATION_RULE.limit:
            break
        if entry["school"] or entry["degree"]:
            education.append(EducationItem(school=entry["school"], degree=entry["degree"], order=len(education)))
    return education


def extract_skills(soup) -> List[str]:
    skills: List[str] = []
    for el in soup.select(SKILL_ITEMS):
        if len(skills) >= MAX_SKILLS:
            break
        text = element_text(el)
        if 1 < len(text) < 50 and text not in skills:
            skills.append(text)
    return skills


def is_authwall(soup) -> bool:
    return any(soup.select_one(sel) is not None for sel in AUTHWALL_SELECTORS)


def extract_profile(html: str, url: str = "", debug: Optional[List[str]] = None) -> ProfileRecord:
    """Extract a profile record from the HTML of a loaded LinkedIn profile.

    Never raises: any failure becomes a record with status `failed` and the
    error message in `extraction_errors`.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")

        name = first_match(soup, "name", debug) or ""
        headline = first_match(soup, "headline", debug)
        location = first_match(soup, "location", debug)
        about = first_match(soup, "about", debug)
        if about and len(about) <= len(headline or ""):
            about = None

        record = ProfileRecord(
            name=name,
            url=url,
            headline=headline,
            bio_line=headline,
            bio=headline,
            location=location,
            about=about,
            profile_picture=first_match(soup, "profile_picture", debug),
            connection_count=extract_count(soup, "connection_count", debug),
            follower_count=extract_count(soup, "follower_count", debug),
            experience=extract_experience(soup),
            education=extract_education(soup),
            skills=extract_skills(soup),
            extracted_at=datetime.now(timezone.utc),
        )
        record.extraction_status = compute_extraction_status(record.name, record.bio_line, record.location)
        if not record.name:
            if is_authwall(soup):
                add_debug(debug, "Authwall")
                record.extraction_errors = "Authwall/guest view: profile requires a logged-in session"
            else:
                record.extraction_errors = "Profile name not found on page"
        return record
    except Exception as e:
        logger.error("❌ Profile extraction failed: %s", e)
        return ProfileRecord(
            url=url,
            extraction_status=ExtractionStatus.FAILED,
            extraction_errors=str(e),
            extracted_at=datetime.now(timezone.utc),
        )
