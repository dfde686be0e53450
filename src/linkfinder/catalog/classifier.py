"""Group verified hits for one seed into a catalog the operator can browse.

Buckets:
- direct: one-per-code assets
- sequences: numbered assets grouped by prefix, derived prefixes first, then
  date-shifted variants by distance from the base date
- unknown_prefix_hits: hits that only an operator-supplied prefix produced
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..conventions.troupe import Troupe, infer_troupe
from ..models import CandidateTier, ConventionKind, SeedItem, VerifiedHit

logger = logging.getLogger(__name__)


@dataclass
class SequenceGroup:
    """Hits found under one prefix"""
    prefix_value: str
    date_offset_days: int = 0        # 0 for derived prefixes
    troupe: Optional[Troupe] = None
    hits: List[VerifiedHit] = field(default_factory=list)

    @property
    def is_shifted(self) -> bool:
        return self.date_offset_days != 0

    @property
    def locators(self) -> List[str]:
        return [h.locator for h in self.hits]

    def to_dict(self) -> dict:
        return {
            'prefix': self.prefix_value,
            'date_offset_days': self.date_offset_days,
            'troupe': self.troupe.to_dict() if self.troupe else None,
            'hits': [h.to_dict() for h in self.hits],
        }


@dataclass
class PerSeedCatalog:
    """Everything verified for one seed"""
    seed_id: str
    troupe: Optional[Troupe] = None
    direct: List[VerifiedHit] = field(default_factory=list)
    sequences: List[SequenceGroup] = field(default_factory=list)
    unknown_prefix_hits: List[VerifiedHit] = field(default_factory=list)
    derived_prefixes: List[str] = field(default_factory=list)            # Prefixes tried, in order
    shifted_prefixes: List[Tuple[str, int]] = field(default_factory=list)  # (prefix, offset_days)

    @property
    def hit_count(self) -> int:
        return (len(self.direct) + sum(len(g.hits) for g in self.sequences)
                + len(self.unknown_prefix_hits))

    @property
    def is_empty(self) -> bool:
        return self.hit_count == 0

    def locators(self) -> List[str]:
        """All hit locators in presentation order."""
        result = [h.locator for h in self.direct]
        for group in self.sequences:
            result.extend(group.locators)
        result.extend(h.locator for h in self.unknown_prefix_hits)
        return result

    @property
    def picked_prefix(self) -> Optional[str]:
        """Prefix of the first sequence group that produced hits."""
        return self.sequences[0].prefix_value if self.sequences else None

    def to_dict(self) -> dict:
        return {
            'seed_id': self.seed_id,
            'troupe': self.troupe.to_dict() if self.troupe else None,
            'derived_prefixes': list(self.derived_prefixes),
            'shifted_prefixes': [
                {'prefix': prefix, 'date_offset_days': offset}
                for prefix, offset in self.shifted_prefixes
            ],
            'picked_prefix': self.picked_prefix,
            'direct': [h.to_dict() for h in self.direct],
            'sequences': [g.to_dict() for g in self.sequences],
            'unknown_prefix_hits': [h.to_dict() for h in self.unknown_prefix_hits],
        }


def _group_order(group: SequenceGroup, first_rank: Dict[str, tuple]) -> tuple:
    # Derived before shifted; shifted by distance, earlier date first on ties
    return (
        1 if group.is_shifted else 0,
        abs(group.date_offset_days),
        group.date_offset_days,
        first_rank[group.prefix_value],
    )


def classify(
    hits: Iterable[VerifiedHit],
    seed: SeedItem,
    derived_prefixes: Optional[Iterable[str]] = None,
    shifted_prefixes: Optional[Iterable[Tuple[str, int]]] = None,
) -> PerSeedCatalog:
    """
    Classify one seed's verified hits.

    Args:
        hits: Verified hits for this seed (any order)
        seed: The seed they were generated from
        derived_prefixes: Prefixes the registry derived on its own; operator
                          prefixes outside this set land in unknown_prefix_hits
        shifted_prefixes: (prefix, offset_days) variants that were tried

    Returns:
        PerSeedCatalog with deterministic ordering
    """
    troupe = infer_troupe(seed.title)
    derived = list(derived_prefixes or ())
    known = set(derived)
    catalog = PerSeedCatalog(
        seed_id=seed.seed_id,
        troupe=troupe,
        derived_prefixes=derived,
        shifted_prefixes=list(shifted_prefixes or ()),
    )

    ordered = sorted(hits, key=lambda h: (h.candidate.sort_key(), h.locator))

    groups: Dict[str, SequenceGroup] = {}
    first_rank: Dict[str, tuple] = {}

    for hit in ordered:
        candidate = hit.candidate
        if candidate.source_seed_id != seed.seed_id:
            logger.debug(f"Ignoring hit for seed {candidate.source_seed_id} while classifying {seed.seed_id}")
            continue

        if candidate.convention_kind == ConventionKind.DIRECT:
            catalog.direct.append(hit)
            continue

        if candidate.tier == CandidateTier.MANUAL and candidate.prefix_value not in known:
            catalog.unknown_prefix_hits.append(hit)
            continue

        prefix = candidate.prefix_value or ''
        if prefix not in groups:
            groups[prefix] = SequenceGroup(
                prefix_value=prefix,
                date_offset_days=candidate.date_offset_days or 0,
                troupe=troupe,
            )
            first_rank[prefix] = (candidate.tier.value, candidate.prefix_rank)
        groups[prefix].hits.append(hit)

    for group in groups.values():
        group.hits.sort(key=lambda h: (h.candidate.sequence_index or 0, h.locator))

    catalog.sequences = sorted(groups.values(), key=lambda g: _group_order(g, first_rank))
    catalog.unknown_prefix_hits.sort(
        key=lambda h: (h.candidate.prefix_rank, h.candidate.sequence_index or 0, h.locator)
    )

    logger.debug(
        f"Seed {seed.seed_id}: {len(catalog.direct)} direct, {len(catalog.sequences)} sequence groups, "
        f"{len(catalog.unknown_prefix_hits)} from operator prefixes"
    )
    return catalog
