"""Merge per-seed catalogs from a batch into one presentation-ordered catalog"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import SeedItem
from ..probing.prober import SessionDiagnostics
from ..utils.codes import code_number
from .classifier import PerSeedCatalog

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    """Session output handed back to the caller"""
    per_seed: Dict[str, PerSeedCatalog] = field(default_factory=OrderedDict)
    merged_order: List[str] = field(default_factory=list)
    truncated: bool = False
    diagnostics: SessionDiagnostics = field(default_factory=SessionDiagnostics)

    @property
    def hit_count(self) -> int:
        return len(self.merged_order)

    def to_dict(self) -> dict:
        return {
            'per_seed': {seed_id: c.to_dict() for seed_id, c in self.per_seed.items()},
            'merged_order': list(self.merged_order),
            'truncated': self.truncated,
            'diagnostics': self.diagnostics.to_dict(),
        }


def recency_key(seed: SeedItem) -> Optional[Tuple[int, date, int]]:
    """
    Sortable recency for a seed, or None if nothing sortable is known.

    A date (observed, from the title, or from the URL) outranks a code
    number; among seeds with neither, discovery order is kept.
    """
    seed_date = seed.base_date()
    if seed_date:
        return (1, seed_date, code_number(seed.seed_id) or 0)
    return _code_key(seed.seed_id)


def _code_key(seed_id: str) -> Optional[Tuple[int, date, int]]:
    number = code_number(seed_id)
    if number is not None:
        return (0, date.min, number)
    return None


def order_seeds(seed_ids: Sequence[str], seeds: Optional[Iterable[SeedItem]] = None) -> List[str]:
    """
    Most-recent-first for seeds with a recency key, then discovery order.

    Ids with no matching SeedItem are keyed on the number in the code.
    """
    by_id = {s.seed_id: s for s in (seeds or ())}
    keyed = []
    unkeyed = []
    for position, seed_id in enumerate(seed_ids):
        seed = by_id.get(seed_id)
        key = recency_key(seed) if seed else _code_key(seed_id)
        if key is None:
            unkeyed.append(seed_id)
        else:
            keyed.append((key, position, seed_id))

    # Newest first; equal keys keep discovery order
    keyed.sort(key=lambda item: (item[0], -item[1]), reverse=True)
    return [seed_id for _, _, seed_id in keyed] + unkeyed


def aggregate(
    per_seed_catalogs: Iterable[PerSeedCatalog],
    seeds: Optional[Iterable[SeedItem]] = None,
    truncated: bool = False,
    diagnostics: Optional[SessionDiagnostics] = None,
) -> Catalog:
    """
    Merge per-seed catalogs.

    Args:
        per_seed_catalogs: One catalog per seed, in discovery order
        seeds: The seeds themselves (for recency ordering); optional
        truncated: Whether generation or probing was cut short
        diagnostics: Session counters to attach

    Returns:
        Catalog whose merged_order holds every hit locator exactly once
    """
    catalogs = list(per_seed_catalogs)
    seeds = list(seeds or ())

    by_id: Dict[str, PerSeedCatalog] = OrderedDict()
    for c in catalogs:
        if c.seed_id in by_id:
            logger.warning(f"Seed {c.seed_id} appears twice in batch; keeping the first")
            continue
        by_id[c.seed_id] = c

    ordered_ids = order_seeds(list(by_id.keys()), seeds)

    per_seed: Dict[str, PerSeedCatalog] = OrderedDict()
    merged_order: List[str] = []
    seen = set()
    for seed_id in ordered_ids:
        seed_catalog = by_id[seed_id]
        per_seed[seed_id] = seed_catalog
        for locator in seed_catalog.locators():
            if locator not in seen:
                seen.add(locator)
                merged_order.append(locator)

    diagnostics = diagnostics or SessionDiagnostics()
    truncated = truncated or diagnostics.truncated
    diagnostics.truncated = truncated

    return Catalog(
        per_seed=per_seed,
        merged_order=merged_order,
        truncated=truncated,
        diagnostics=diagnostics,
    )
