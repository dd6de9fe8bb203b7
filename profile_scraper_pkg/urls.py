import io
from typing import Iterable, List, Tuple
from urllib.parse import urlparse

import pandas as pd


def _with_scheme(url: str) -> str:
    url = (url or "").strip()
    if not url.startswith("http://") and not url.startswith("https://"):
        url = f"https://{url}"
    return url


def is_valid_linkedin_url(url: str) -> bool:
    """True for profile URLs on linkedin.com whose path contains `/in/`."""
    if not url or not url.strip():
        return False
    try:
        parsed = urlparse(_with_scheme(url))
    except ValueError:
        return False
    return "linkedin.com" in (parsed.hostname or "") and "/in/" in parsed.path


def normalize_linkedin_url(url: str) -> str:
    """Canonical form used as the storage key: https://www.linkedin.com/in/<slug>."""
    try:
        parsed = urlparse(_with_scheme(url))
    except ValueError:
        return url
    return f"https://www.linkedin.com{parsed.path.rstrip('/')}"


def get_short_url(url: str) -> str:
    try:
        parts = urlparse(url).path.split("/")
    except ValueError:
        return url[:30] + "..."
    username = parts[-1] or (parts[-2] if len(parts) > 1 else "")
    return f"linkedin.com/in/{username}"


def normalize_urls(raw_urls: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Split raw input into (normalized valid URLs, rejected inputs), keeping order."""
    valid, invalid = [], []
    for raw in raw_urls:
        value = str(raw or "").strip()
        if not value:
            continue
        if is_valid_linkedin_url(value):
            valid.append(normalize_linkedin_url(value))
        else:
            invalid.append(value)
    return valid, invalid


def urls_from_dataframe(df: pd.DataFrame) -> List[str]:
    """Pull profile URLs out of the first URL-looking column of a sheet."""
    if df.empty:
        return []
    candidate_columns = [c for c in df.columns if "url" in str(c).lower() or "linkedin" in str(c).lower()]
    col = candidate_columns[0] if candidate_columns else df.columns[0]
    urls = []
    for raw in df[col].dropna().astype(str):
        value = raw.strip()
        if not value or value.lower() == "nan":
            continue
        if not is_valid_linkedin_url(value):
            continue
        url = normalize_linkedin_url(value)
        if url not in urls:
            urls.append(url)
    return urls


def read_url_file(filename: str, content: bytes) -> List[str]:
    """Parse an uploaded CSV or Excel file into normalized profile URLs."""
    if filename.lower().endswith(".csv"):
        df = pd.read_csv(io.BytesIO(content))
    else:
        df = pd.read_excel(io.BytesIO(content))
    return urls_from_dataframe(df)
