"""Seed items from files and command-line arguments"""
import csv
import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from ..errors import SeedError
from ..models import SeedItem
from ..utils.codes import normalize_code
from ..utils.dates import parse_date_loose

logger = logging.getLogger(__name__)

# Accepted column/key names for each seed field
FIELD_ALIASES = {
    'seed_id': ('id', 'seed_id', 'code'),
    'source_url': ('source_url', 'url'),
    'title': ('title', 'name'),
    'observed_date': ('observed_date', 'date'),
}


def _pick(record: dict, field_name: str) -> Optional[str]:
    for key in FIELD_ALIASES[field_name]:
        value = record.get(key)
        if value not in (None, ''):
            return str(value).strip()
    return None


def seed_from_record(record: dict) -> SeedItem:
    """Build a seed from a dict using any of the accepted field names."""
    code = _pick(record, 'seed_id')
    if not code:
        raise SeedError(f"Seed record has no id/code: {record}")
    return seed_from_args(
        code,
        url=_pick(record, 'source_url'),
        title=_pick(record, 'title'),
        observed_date=_pick(record, 'observed_date'),
    )


def seed_from_args(code: str, url: Optional[str] = None, title: Optional[str] = None,
                   observed_date: Optional[str] = None) -> SeedItem:
    """Build one seed from loose text values (CLI arguments, CSV cells)."""
    seed_id = normalize_code(code)
    if not seed_id:
        raise SeedError(f"Invalid product code: {code!r}")

    parsed_date = parse_date_loose(observed_date) if observed_date else None
    if observed_date and parsed_date is None:
        logger.warning(f"Seed {seed_id}: could not parse date {observed_date!r}, ignoring it")

    return SeedItem(
        seed_id=seed_id,
        source_url=url or '',
        title=title or None,
        observed_date=parsed_date,
    )


def load_seeds(path: Union[str, Path]) -> List[SeedItem]:
    """
    Load seeds from a JSON or CSV file.

    JSON: a list of objects ({"id": "AB100", "title": "...", ...}) or an
    object with a "results" list (the shape listing searches return).
    CSV: header row with id/code, url, title, date columns.
    Plain text: one product code per line.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8-sig')
    except OSError as e:
        raise SeedError(f"Cannot read seed file {path}: {e}") from e

    suffix = path.suffix.lower()
    if suffix == '.json':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SeedError(f"Invalid JSON in {path}: {e}") from e
        if isinstance(data, dict):
            data = data.get('results', [])
        if not isinstance(data, list):
            raise SeedError(f"{path} must contain a list of seed objects")
        records = data
    elif suffix == '.csv':
        records = list(csv.DictReader(text.splitlines()))
    else:
        records = [{'id': line.strip()} for line in text.splitlines()
                   if line.strip() and not line.lstrip().startswith('#')]

    seeds = []
    for record in records:
        if not isinstance(record, dict):
            raise SeedError(f"Seed entries must be objects, got {record!r}")
        seeds.append(seed_from_record(record))

    logger.info(f"Loaded {len(seeds)} seed(s) from {path}")
    return seeds
