"""Candidate generation - turn one seed into an ordered list of guessed locators"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from ..conventions.registry import Convention, ConventionRegistry, default_registry
from ..models import Candidate, CandidateTier, ConventionKind, SeedItem
from ..config import ProbeOptions

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """Candidates for one seed plus what the generator had to leave out"""
    seed: SeedItem
    candidates: List[Candidate] = field(default_factory=list)
    derived_prefixes: List[str] = field(default_factory=list)
    shifted_prefixes: List[Tuple[str, int]] = field(default_factory=list)  # (prefix, offset_days)
    generated_count: int = 0     # Before dedupe and capping
    duplicate_count: int = 0
    truncated: bool = False      # max_candidates cut some candidates off

    @property
    def locators(self) -> List[str]:
        return [c.locator for c in self.candidates]


def _sequence_candidates(
    registry: ConventionRegistry,
    convention: Convention,
    seed: SeedItem,
    tier: CandidateTier,
    prefixes: Iterable[Tuple[str, int]],
    index_range: Tuple[int, int],
) -> Iterator[Candidate]:
    """Expand (prefix, offset) pairs over the index range."""
    index_min, index_max = index_range
    for rank, (prefix, offset) in enumerate(prefixes):
        for index in range(index_min, index_max + 1):
            yield Candidate(
                locator=registry.sequence(prefix, index, convention),
                convention_kind=convention.kind,
                convention_name=convention.name,
                source_seed_id=seed.seed_id,
                tier=tier,
                sequence_index=index,
                date_offset_days=offset,
                prefix_value=prefix,
                prefix_rank=rank,
            )


def iter_candidates(
    seed: SeedItem,
    options: ProbeOptions,
    registry: ConventionRegistry,
) -> Iterator[Candidate]:
    """
    Yield every candidate for a seed in priority order, before dedupe/capping.

    Order:
    1. Direct conventions (one asset per code)
    2. Auto-derived prefixes x index range
    3. Date-shifted prefixes x index range
    4. Operator-supplied prefixes x index range (least confident)
    """
    # Tier 1: direct
    for rank, (convention, locator) in enumerate(registry.direct(seed.seed_id)):
        yield Candidate(
            locator=locator,
            convention_kind=convention.kind,
            convention_name=convention.name,
            source_seed_id=seed.seed_id,
            tier=CandidateTier.DIRECT,
            prefix_rank=rank,
        )

    derived = [(p, 0) for p in registry.derive_prefixes(seed)]
    shifted = registry.shifted_prefixes(seed, options.shift_window)
    manual = [(p, 0) for p in options.extra_prefixes]

    # Tier 2: auto-derived
    for convention in registry.of_kind(ConventionKind.SEQUENCE):
        yield from _sequence_candidates(
            registry, convention, seed, CandidateTier.DERIVED, derived, options.index_range
        )

    # Tier 3: date-shifted
    for convention in registry.of_kind(ConventionKind.DATE_SHIFTED_SEQUENCE):
        yield from _sequence_candidates(
            registry, convention, seed, CandidateTier.SHIFTED, shifted, options.index_range
        )

    # Tier 4: manual
    for convention in registry.of_kind(ConventionKind.SEQUENCE):
        yield from _sequence_candidates(
            registry, convention, seed, CandidateTier.MANUAL, manual, options.index_range
        )


def generate_candidates(
    seed: SeedItem,
    options: Optional[ProbeOptions] = None,
    registry: Optional[ConventionRegistry] = None,
) -> GenerationResult:
    """
    Generate the candidate locators for one seed.

    Deduplicates by locator (first, highest-priority occurrence wins) and
    caps the list at options.max_candidates. Hitting the cap is not an
    error: the result is marked truncated.

    Args:
        seed: Seed item to guess assets for
        options: Session options (validated here)
        registry: Conventions to apply (default storefront registry if None)

    Returns:
        GenerationResult with candidates in priority order
    """
    options = (options or ProbeOptions()).validate()
    registry = registry or default_registry()

    result = GenerationResult(
        seed=seed,
        derived_prefixes=registry.derive_prefixes(seed),
        shifted_prefixes=registry.shifted_prefixes(seed, options.shift_window),
    )
    seen = set()

    for candidate in iter_candidates(seed, options, registry):
        result.generated_count += 1
        if candidate.locator in seen:
            result.duplicate_count += 1
            continue
        if len(result.candidates) >= options.max_candidates:
            result.truncated = True
            continue
        seen.add(candidate.locator)
        result.candidates.append(candidate)

    if result.truncated:
        logger.warning(
            f"Seed {seed.seed_id}: capped at {options.max_candidates} candidates "
            f"({result.generated_count} generated)"
        )
    logger.debug(
        f"Seed {seed.seed_id}: {len(result.candidates)} candidates, "
        f"{result.duplicate_count} duplicates, prefixes={result.derived_prefixes}"
    )
    return result
