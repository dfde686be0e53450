"""Scrape storefront listing pages for seed items"""
import logging
import re
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from ..config import get_user_agent
from ..models import SeedItem
from ..utils.codes import normalize_code
from ..utils.dates import extract_date_from_url, extract_year, parse_date

logger = logging.getLogger(__name__)

DEFAULT_SHOP_URL = 'https://shop.tca-pictures.net'
SEARCH_PATH = '/shop/goods/search.aspx'

# Product pages: /shop/g/gAB100/
PRODUCT_LINK = re.compile(r'/shop/g/g(?P<code>[A-Za-z0-9][A-Za-z0-9_\-]*)/?$')

# Storefront search keywords per asset class
CARD_KEYWORD = 'コレクションカード'
PROGRAM_KEYWORD = '公演プログラム'


def search_listing(
    keyword: str,
    title_filters: Optional[Iterable[str]] = None,
    base_url: str = DEFAULT_SHOP_URL,
    session: Optional[requests.Session] = None,
    timeout: float = 30,
) -> List[SeedItem]:
    """
    Search one storefront listing page and return matching products as seeds.

    Args:
        keyword: Free-text storefront search keyword
        title_filters: Tokens that must ALL appear in a product title
                       (case-insensitive)
        base_url: Storefront root
        session: Optional requests.Session to reuse

    Returns:
        Seeds in listing order, deduplicated by code; [] if the page
        cannot be fetched
    """
    search_url = urljoin(base_url.rstrip('/') + '/', SEARCH_PATH.lstrip('/'))
    http = session or requests
    try:
        response = http.get(
            search_url,
            params={'keyword': keyword},
            headers={'User-Agent': get_user_agent()},
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Failed to fetch listing {search_url}: {e}")
        return []

    seeds = parse_listing(response.text, response.url or search_url)
    filtered = filter_by_title(seeds, title_filters)
    logger.info(
        f"Listing '{keyword}': {len(seeds)} products, {len(filtered)} after title filter"
    )
    return filtered


def parse_listing(html: str, page_url: str) -> List[SeedItem]:
    """Extract product links from listing HTML."""
    soup = BeautifulSoup(html, 'html.parser')
    seeds = []
    seen = set()

    for link in soup.find_all('a', href=True):
        full_url = urljoin(page_url, link['href'])
        match = PRODUCT_LINK.search(urlparse(full_url).path)
        if not match:
            continue

        code = normalize_code(match.group('code'))
        title = _get_link_context(link)

        # Listings link each product several times (image, name, button);
        # keep the first, but take a better title from a later link
        if code in seen:
            if title:
                for i, existing in enumerate(seeds):
                    if existing.seed_id == code and not existing.title:
                        seeds[i] = _make_seed(code, existing.source_url, title)
            continue

        seen.add(code)
        seeds.append(_make_seed(code, full_url, title))

    return seeds


def _make_seed(code: str, url: str, title: Optional[str]) -> SeedItem:
    return SeedItem(
        seed_id=code,
        source_url=url,
        title=title,
        observed_date=parse_date(title) or extract_date_from_url(url),
    )


def filter_by_title(seeds: Iterable[SeedItem], title_filters: Optional[Iterable[str]]) -> List[SeedItem]:
    """Keep seeds whose title contains every filter token (AND, case-insensitive)."""
    tokens = [t.strip().lower() for t in (title_filters or ()) if t and t.strip()]
    if not tokens:
        return list(seeds)
    return [s for s in seeds if s.title and all(t in s.title.lower() for t in tokens)]


def _in_year(seed: SeedItem, year: Optional[int]) -> bool:
    if year is None:
        return True
    seed_year = seed.observed_date.year if seed.observed_date else extract_year(seed.title)
    return seed_year == year


def search_programs(
    keywords: Iterable[str],
    year: Optional[int] = None,
    base_url: str = DEFAULT_SHOP_URL,
    session: Optional[requests.Session] = None,
) -> List[SeedItem]:
    """
    Find programme listings whose title contains all keywords.

    When year is given, only programmes dated in that year (from the title
    or URL) are returned.
    """
    seeds = search_listing(PROGRAM_KEYWORD, keywords, base_url=base_url, session=session)
    return [s for s in seeds if _in_year(s, year)]


def search_programs_batch(
    lines: Iterable[str],
    year: Optional[int] = None,
    base_url: str = DEFAULT_SHOP_URL,
    session: Optional[requests.Session] = None,
) -> Dict[str, List[SeedItem]]:
    """
    Run one programme search per line of a keyword batch.

    Each non-blank line is split on whitespace into AND-combined keywords
    ("花組 Goethe"). The programme listing is fetched once and filtered per
    line.

    Returns:
        {line: [SeedItem, ...]} in input order; repeated lines appear once
    """
    queries = []
    for line in lines:
        line = line.strip()
        if line and line not in queries:
            queries.append(line)
    if not queries:
        return OrderedDict()

    listing = search_listing(PROGRAM_KEYWORD, base_url=base_url, session=session)
    results: Dict[str, List[SeedItem]] = OrderedDict()
    for line in queries:
        matches = filter_by_title(listing, line.split())
        results[line] = [s for s in matches if _in_year(s, year)]
        logger.debug(f"Programme batch '{line}': {len(results[line])} match(es)")

    logger.info(f"Programme batch: {len(queries)} line(s), "
                f"{sum(len(v) for v in results.values())} match(es)")
    return results


def _get_link_context(link) -> Optional[str]:
    """Get text context around a link (link text, title/alt, enclosing item)"""
    # Try link text first
    text = link.get_text(' ', strip=True)
    if text and len(text) > 3:
        return text

    # Try title attribute, then image alt text
    title = link.get('title')
    if title:
        return title.strip()
    img = link.find('img', alt=True)
    if img and img['alt'].strip():
        return img['alt'].strip()

    # Try parent elements for context
    for parent in link.parents:
        if parent.name in ['li', 'dd', 'td', 'h2', 'h3']:
            text = parent.get_text(' ', strip=True)
            if text:
                return text[:200]  # Truncate long text
        if parent.name == 'body':
            break

    return None
