"""
Text and formatting helpers shared by adapters, the pipeline and the CLI.
"""

import math
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

_TAG_RE = re.compile(r"<[^>]*>")
_YEAR_RE = re.compile(r"(\d{4})")
_DOI_PREFIX_RE = re.compile(r"^https?://(dx\.)?doi\.org/")

_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


def clean_html(text: Optional[str]) -> str:
    """Strip markup and decode the common HTML entities."""
    if not text:
        return ""
    cleaned = _TAG_RE.sub("", text)
    for entity, char in _ENTITIES:
        cleaned = cleaned.replace(entity, char)
    return cleaned.strip()


def collapse_newlines(text: Optional[str]) -> str:
    """Replace embedded newlines with spaces, as feed titles wrap mid-sentence."""
    return (text or "").replace("\n", " ").strip()


def normalize_query(query: str) -> str:
    """Trim, lowercase and collapse whitespace."""
    return re.sub(r"\s+", " ", query.strip().lower())


def extract_year(date_string: Optional[str]) -> Optional[int]:
    """Return the first four-digit run of a date string."""
    if not date_string:
        return None
    match = _YEAR_RE.search(date_string)
    return int(match.group(1)) if match else None


def strip_doi_prefix(doi: str) -> str:
    return _DOI_PREFIX_RE.sub("", doi)


def get_doi_url(doi: str) -> str:
    return f"https://doi.org/{strip_doi_prefix(doi)}"


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date or datetime into an aware UTC datetime.

    Date-only values are taken as midnight UTC. Returns None when the
    value cannot be parsed.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(text[:10])
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_date(date_string: str) -> str:
    """Readable form such as ``Jan 15, 2023``; unparseable input comes back unchanged."""
    parsed = parse_date(date_string)
    if parsed is None:
        return date_string
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def format_number(num: float) -> str:
    """Format large numbers with K and M suffixes."""
    if num >= 1_000_000:
        return _trim_decimal(num / 1_000_000) + "M"
    if num >= 1_000:
        return _trim_decimal(num / 1_000) + "K"
    return str(num)


def _trim_decimal(value: float) -> str:
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length].strip() + "..."


def format_authors(authors: Iterable, max_authors: int = 3) -> str:
    """Display list of author names, shortened with ``et al.``."""
    names = [getattr(a, "name", a) for a in authors]
    if not names:
        return "Unknown Authors"
    if len(names) <= max_authors:
        return ", ".join(names)
    return f"{', '.join(names[:max_authors])} et al."


def calculate_reading_time(text: str, words_per_minute: int = 200) -> int:
    """Rough reading time in minutes."""
    word_count = len(re.split(r"\s+", text))
    return math.ceil(word_count / words_per_minute)
