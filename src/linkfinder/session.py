"""
Probing session - seed items in, catalog out.

Pipeline:
1. GENERATE: each seed -> candidate locators (pure)
2. PROBE: all unique locators in one worker pool under one deadline
3. CLASSIFY: each seed's hits -> PerSeedCatalog (pure)
4. AGGREGATE: per-seed catalogs -> Catalog with global de-dup (pure)

A locator guessed for two seeds is probed once and credited to both.
"""
import logging
import threading
from typing import Dict, Iterable, List, Optional

from .catalog import Catalog, aggregate, classify
from .config import ProbeOptions, get_base_url
from .conventions import ConventionRegistry, default_registry
from .discovery.generator import GenerationResult, generate_candidates
from .models import Candidate, ProbeOutcome, SeedItem, VerifiedHit
from .probing import ExistsCheck, SessionDiagnostics, probe

logger = logging.getLogger(__name__)


def _unique_seeds(seeds: Iterable[SeedItem]) -> List[SeedItem]:
    unique = []
    seen = set()
    for seed in seeds:
        if seed.seed_id in seen:
            logger.debug(f"Skipping repeated seed {seed.seed_id}")
            continue
        seen.add(seed.seed_id)
        unique.append(seed)
    return unique


def run_session(
    seeds: Iterable[SeedItem],
    exists: ExistsCheck,
    options: Optional[ProbeOptions] = None,
    registry: Optional[ConventionRegistry] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Catalog:
    """
    Discover assets for a batch of seeds.

    Args:
        seeds: Seed items, in discovery order
        exists: Callable(locator, timeout) -> ProbeOutcome | bool
        options: Session options (validated before any work)
        registry: Naming conventions (storefront defaults if None)
        cancel_event: Set it to stop early; the partial catalog is returned

    Returns:
        Catalog; truncated is set when the candidate cap, the deadline or a
        cancellation cut the session short

    Raises:
        ConfigurationError: invalid options
    """
    options = (options or ProbeOptions()).validate()
    registry = registry or default_registry(get_base_url())
    seeds = _unique_seeds(seeds)

    # 1. Generate
    generations: List[GenerationResult] = [generate_candidates(s, options, registry) for s in seeds]
    generation_truncated = any(g.truncated for g in generations)

    # Session-wide dedupe: each locator probed once
    to_probe: List[Candidate] = []
    seen = set()
    for generation in generations:
        for candidate in generation.candidates:
            if candidate.locator not in seen:
                seen.add(candidate.locator)
                to_probe.append(candidate)

    logger.info(
        f"Session: {len(seeds)} seed(s), {len(to_probe)} unique candidates"
        + (" (candidate cap reached)" if generation_truncated else "")
    )

    # 2. Probe
    result = probe(to_probe, exists, options, cancel_event=cancel_event)
    outcomes: Dict[str, ProbeOutcome] = result.outcomes

    # 3. Classify, crediting shared locators to every seed that guessed them
    per_seed = []
    for generation in generations:
        hits = [
            VerifiedHit(candidate=c)
            for c in generation.candidates
            if outcomes.get(c.locator) == ProbeOutcome.FOUND
        ]
        per_seed.append(classify(hits, generation.seed, generation.derived_prefixes,
                                 generation.shifted_prefixes))

    # 4. Aggregate
    diagnostics: SessionDiagnostics = result.diagnostics
    diagnostics.truncated = diagnostics.truncated or generation_truncated
    return aggregate(per_seed, seeds, truncated=diagnostics.truncated, diagnostics=diagnostics)


def run_seed(
    seed: SeedItem,
    exists: ExistsCheck,
    options: Optional[ProbeOptions] = None,
    registry: Optional[ConventionRegistry] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Catalog:
    """Single-seed convenience wrapper around run_session()."""
    return run_session([seed], exists, options, registry, cancel_event)
