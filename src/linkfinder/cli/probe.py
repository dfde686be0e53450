"""
Probe commands - guess and verify asset locators for one seed or a batch.
"""
import threading
from typing import List, Optional

import click

from linkfinder.catalog import Catalog
from linkfinder.cli.console import console
from linkfinder.cli.helpers import build_options, print_catalog, print_json, probe_options
from linkfinder.config import ProbeOptions
from linkfinder.discovery import HttpExistsCheck, load_seeds, seed_from_args
from linkfinder.errors import SeedError
from linkfinder.models import SeedItem
from linkfinder.session import run_session


def probe_seeds(seeds: List[SeedItem], options: ProbeOptions, show_status: bool = True) -> Catalog:
    """Probe seeds over HTTP and return the catalog."""
    exists = HttpExistsCheck()
    cancel = threading.Event()
    try:
        if not show_status:
            return run_session(seeds, exists, options, cancel_event=cancel)
        with console.status(f"Probing {len(seeds)} seed(s)..."):
            return run_session(seeds, exists, options, cancel_event=cancel)
    except KeyboardInterrupt:
        cancel.set()
        console.print("[warning]Interrupted[/]")
        raise
    finally:
        exists.close()


def run_and_report(seeds: List[SeedItem], options: ProbeOptions, as_json: bool) -> None:
    """Probe seeds over HTTP and print the catalog."""
    catalog = probe_seeds(seeds, options, show_status=not as_json)
    if as_json:
        print_json(catalog.to_dict())
    else:
        print_catalog(catalog, seeds)


@click.command('probe')
@click.argument('code')
@click.option('--url', help='Product page URL the code came from')
@click.option('--title', help='Product title (used for troupe and date hints)')
@click.option('--date', 'observed_date', help='Opening/release date, e.g. 2025-03-08')
@probe_options
def probe_command(code: str, url: Optional[str], title: Optional[str], observed_date: Optional[str],
                  as_json: bool, **option_values):
    """Guess and verify asset URLs for one product CODE."""
    try:
        seed = seed_from_args(code, url=url, title=title, observed_date=observed_date)
    except SeedError as e:
        raise click.UsageError(str(e)) from e

    options = build_options(**option_values)
    if not as_json:
        console.print(f"\n[info]Probing:[/] {seed.seed_id}")
        console.print(f"[muted]Range: {options.index_min}-{options.index_max}, "
                      f"concurrency {options.concurrency}[/]")
    run_and_report([seed], options, as_json)


@click.command('batch')
@click.argument('seed_file', type=click.Path(exists=True, dir_okay=False))
@probe_options
def batch_command(seed_file: str, as_json: bool, **option_values):
    """Probe every seed listed in SEED_FILE (JSON, CSV or one code per line)."""
    try:
        seeds = load_seeds(seed_file)
    except SeedError as e:
        raise click.UsageError(str(e)) from e

    if not seeds:
        console.print("[warning]Seed file is empty[/]")
        return

    options = build_options(**option_values)
    if not as_json:
        console.print(f"\n[info]Batch:[/] {len(seeds)} seed(s) from {seed_file}")
    run_and_report(seeds, options, as_json)
