"""
Shared option handling and rendering for linkfinder CLI commands.
"""
import json
import logging
from dataclasses import replace
from typing import List, Optional

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from linkfinder.catalog import Catalog, PerSeedCatalog
from linkfinder.cli.console import console
from linkfinder.config import ProbeOptions
from linkfinder.errors import ConfigurationError
from linkfinder.models import SeedItem


def configure_logging(verbose: int, quiet: bool) -> None:
    """Map -v/-q flags to a logging level."""
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')


def probe_options(func):
    """Attach the options shared by every probing command."""
    options = [
        click.option('--range', 'index_range', type=(int, int), default=None,
                     help='Sequence index range MIN MAX (inclusive)'),
        click.option('--asset-class', type=click.Choice(['card', 'program']), default=None,
                     help='Preset index range for an asset class'),
        click.option('--prefix', 'prefixes', multiple=True,
                     help='Extra sequence prefix to try (repeatable)'),
        click.option('--concurrency', type=int, default=None, help='Concurrent checks'),
        click.option('--timeout', type=float, default=None, help='Seconds per check'),
        click.option('--deadline', type=float, default=None, help='Seconds for the whole session'),
        click.option('--max-candidates', type=int, default=None, help='Cap on candidates per seed'),
        click.option('--shift-window', type=int, default=None,
                     help='Date-shifted variants: +/- this many days'),
        click.option('--stop-after-misses', type=int, default=None,
                     help='End a sequence after N consecutive misses (off by default)'),
        click.option('--min-interval', type=float, default=None,
                     help='Delay in seconds before each check, per worker'),
        click.option('--json', 'as_json', is_flag=True, help='Print the catalog as JSON'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_options(index_range=None, asset_class=None, prefixes=(), concurrency=None, timeout=None,
                  deadline=None, max_candidates=None, shift_window=None, stop_after_misses=None,
                  min_interval=None) -> ProbeOptions:
    """Environment defaults, then asset-class preset, then explicit flags."""
    try:
        options = ProbeOptions.from_env()
        if asset_class:
            options = options.for_asset_class(asset_class)

        overrides = {}
        if index_range:
            overrides['index_min'], overrides['index_max'] = index_range
        if concurrency is not None:
            overrides['concurrency'] = concurrency
        if timeout is not None:
            overrides['per_request_timeout'] = timeout
        if deadline is not None:
            overrides['overall_deadline'] = deadline
        if max_candidates is not None:
            overrides['max_candidates'] = max_candidates
        if shift_window is not None:
            overrides['shift_window'] = shift_window
        if stop_after_misses is not None:
            overrides['stop_after_misses'] = stop_after_misses
        if min_interval is not None:
            overrides['min_interval'] = min_interval

        return replace(options, **overrides).with_prefixes(prefixes).validate()
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e


def print_seeds(seeds: List[SeedItem], title: str) -> None:
    """Table of seeds found by a listing search."""
    if not seeds:
        console.print("[warning]No products found[/]")
        return

    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Code", style="bold")
    table.add_column("Title")
    table.add_column("Date")
    table.add_column("URL", style="url")
    for i, seed in enumerate(seeds, 1):
        table.add_row(
            str(i),
            seed.seed_id,
            escape(seed.title) if seed.title else '-',
            seed.observed_date.isoformat() if seed.observed_date else '-',
            seed.source_url,
        )
    console.print(table)


def _print_seed_catalog(seed_catalog: PerSeedCatalog, seed: Optional[SeedItem]) -> None:
    troupe = seed_catalog.troupe
    heading = f"[highlight]{seed_catalog.seed_id}[/]"
    if seed and seed.title:
        heading += f"  {escape(seed.title)}"
    if troupe:
        heading += f"  [{troupe.color}]{troupe.label}[/]"
    console.print(f"\n{heading}")

    tried = list(seed_catalog.derived_prefixes)
    tried += [f"{prefix} ({offset:+d}d)" for prefix, offset in seed_catalog.shifted_prefixes]
    if tried:
        console.print(f"  [muted]Prefixes tried: {', '.join(tried)}[/]")
    if seed_catalog.picked_prefix:
        console.print(f"  [muted]Picked prefix:[/] [prefix]{seed_catalog.picked_prefix}[/]")

    if seed_catalog.is_empty:
        console.print("  [muted]none found[/]")
        return

    if seed_catalog.direct:
        console.print("  [info]Direct[/]")
        for hit in seed_catalog.direct:
            console.print(f"    [url]{hit.locator}[/]")

    for group in seed_catalog.sequences:
        label = f"shifted {group.date_offset_days:+d}d" if group.is_shifted else "derived"
        console.print(f"  [prefix]{group.prefix_value}[/] [muted]({label}, {len(group.hits)} found)[/]")
        for hit in group.hits:
            console.print(f"    [url]{hit.locator}[/]")

    if seed_catalog.unknown_prefix_hits:
        console.print("  [warning]From operator prefixes[/]")
        for hit in seed_catalog.unknown_prefix_hits:
            console.print(f"    [url]{hit.locator}[/]")


def print_catalog(catalog: Catalog, seeds: List[SeedItem]) -> None:
    """Human-readable catalog plus diagnostics."""
    by_id = {s.seed_id: s for s in seeds}

    if catalog.truncated:
        console.print(Panel(
            "Results may be incomplete: the candidate cap, deadline or a "
            "cancellation cut the session short.",
            title="Truncated", style="warning",
        ))

    for seed_id, seed_catalog in catalog.per_seed.items():
        _print_seed_catalog(seed_catalog, by_id.get(seed_id))

    d = catalog.diagnostics
    table = Table(title="Session")
    table.add_column("Candidates", justify="right")
    table.add_column("Probed", justify="right")
    table.add_column("Found", justify="right")
    table.add_column("Missing", justify="right")
    table.add_column("Timed out", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_row(
        str(d.total_candidates), str(d.probed_count), str(d.verified_count),
        str(d.not_found_count), str(d.timed_out_count), str(d.error_count), str(d.skipped_count),
    )
    console.print()
    console.print(table)


def print_json(data) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))
