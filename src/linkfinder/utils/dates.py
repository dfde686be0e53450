"""Date parsing utilities - extract a performance/release date from text"""
import re
from datetime import date
from typing import List, Optional, Tuple
from urllib.parse import unquote, urlparse

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

# Month name mappings
MONTHS = {
    'january': 1, 'jan': 1,
    'february': 2, 'feb': 2,
    'march': 3, 'mar': 3,
    'april': 4, 'apr': 4,
    'may': 5,
    'june': 6, 'jun': 6,
    'july': 7, 'jul': 7,
    'august': 8, 'aug': 8,
    'september': 9, 'sep': 9, 'sept': 9,
    'october': 10, 'oct': 10,
    'november': 11, 'nov': 11,
    'december': 12, 'dec': 12,
}

# Build regex for month names
MONTH_PATTERN = '|'.join(sorted(MONTHS.keys(), key=len, reverse=True))

# Storefront catalogue starts well after 2000
MIN_YEAR = 2000
MAX_YEAR = 2039


def _make_date(year: int, month: int, day: int) -> Optional[date]:
    """Build a date, returning None for impossible combinations."""
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _extract_all_dates(text: str) -> List[Tuple[date, int]]:
    """Extract ALL full dates from text, with their position.

    Handles:
    - 2025年3月8日 (Japanese, optional spaces)
    - 2025-03-08, 2025/03/08, 2025.03.08, 2025_03_08
    - 20250308 (YYYYMMDD compact)
    - 8 March 2025, March 8, 2025, mar-8-2025
    """
    text_lower = text.lower()
    results = []

    for match in re.finditer(r'(\d{4})\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})\s*日', text_lower):
        d = _make_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if d:
            results.append((d, match.start()))

    for match in re.finditer(r'(?<!\d)(\d{4})[-_/.](\d{1,2})[-_/.](\d{1,2})(?!\d)', text_lower):
        d = _make_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if d:
            results.append((d, match.start()))

    for match in re.finditer(r'(?<!\d)(\d{4})(\d{2})(\d{2})(?!\d)', text_lower):
        d = _make_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if d:
            results.append((d, match.start()))

    # Day before month name: "8 march 2025", "08-mar-2025"
    for match in re.finditer(rf'(?<!\d)(\d{{1,2}})[\s\-_]*({MONTH_PATTERN})[\s\-_,]*(\d{{4}})', text_lower):
        d = _make_date(int(match.group(3)), MONTHS[match.group(2)], int(match.group(1)))
        if d:
            results.append((d, match.start()))

    # Month name before day: "march 8, 2025"
    for match in re.finditer(rf'({MONTH_PATTERN})[\s\-_]*(\d{{1,2}})(?:st|nd|rd|th)?[\s\-_,]+(\d{{4}})', text_lower):
        d = _make_date(int(match.group(3)), MONTHS[match.group(1)], int(match.group(2)))
        if d:
            results.append((d, match.start()))

    # Sort by position, deduplicate
    results.sort(key=lambda x: x[1])
    seen = set()
    unique = []
    for d, pos in results:
        if d not in seen:
            seen.add(d)
            unique.append((d, pos))
    return unique


def parse_date(text: Optional[str]) -> Optional[date]:
    """
    Extract the first full date mentioned in text.

    Titles often carry a run like "2025年3月8日～4月13日"; the opening date is
    the one product codes are keyed on, so the FIRST date wins.

    Returns None if no complete date (year, month and day) is found.
    """
    if not text:
        return None

    found = _extract_all_dates(text)
    if found:
        return found[0][0]
    return None


def parse_date_loose(text: Optional[str]) -> Optional[date]:
    """
    Parse a date field typed by a person or exported from a spreadsheet.

    Tries the strict extractor first, then falls back to dateutil for
    anything it understands ("Mar 8 2025", "8/3/2025").
    """
    if not text or not str(text).strip():
        return None

    strict = parse_date(str(text))
    if strict:
        return strict

    try:
        parsed = date_parser.parse(str(text), fuzzy=True)
    except (ValueError, OverflowError):
        return None
    return _make_date(parsed.year, parsed.month, parsed.day)


def extract_date_from_url(url: Optional[str]) -> Optional[date]:
    """
    Extract a date from URL path segments.

    Only path segments are examined; query strings carry session junk.
    """
    if not url:
        return None

    path = unquote(urlparse(url).path)
    segments = [s for s in path.split('/') if s]

    for segment in segments:
        result = parse_date(segment)
        if result:
            return result

    return None


def extract_year(text: Optional[str]) -> Optional[int]:
    """Return the first plausible 4-digit year in text (2025, 2025年)."""
    if not text:
        return None
    match = re.search(r'(?<!\d)(20[0-3]\d)(?!\d)', text)
    if match:
        return int(match.group(1))
    return None


def shift_date(base: date, days: int) -> date:
    """Move a date by a number of days (negative moves backwards)."""
    return base + relativedelta(days=days)


def shift_offsets(window: int) -> List[int]:
    """
    Offsets used for date-shifted prefix variants.

    Ordered by absolute offset, negative first: window=2 -> [-1, 1, -2, 2].
    """
    offsets = []
    for n in range(1, window + 1):
        offsets.extend([-n, n])
    return offsets
