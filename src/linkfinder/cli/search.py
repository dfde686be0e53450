"""
Search commands - find seed products on storefront listing pages.
"""
from typing import Tuple

import click

from linkfinder.cli.console import console
from linkfinder.cli.helpers import build_options, print_catalog, print_json, print_seeds, probe_options
from linkfinder.cli.probe import probe_seeds, run_and_report
from linkfinder.discovery import search_listing, search_programs, search_programs_batch
from linkfinder.discovery.listing import CARD_KEYWORD, DEFAULT_SHOP_URL


@click.command('search')
@click.argument('keyword', default=CARD_KEYWORD)
@click.option('--filter', 'title_filters', multiple=True,
              help='Token that must appear in the title (repeatable, AND-combined)')
@click.option('--shop-url', default=DEFAULT_SHOP_URL, show_default=True, help='Storefront root URL')
@click.option('--probe', 'then_probe', is_flag=True, help='Probe every product found')
@probe_options
def search_command(keyword: str, title_filters: Tuple[str, ...], shop_url: str, then_probe: bool,
                   as_json: bool, **option_values):
    """Search the storefront listing for KEYWORD and list matching products."""
    # Options are validated up front so a bad flag fails before any fetch
    options = build_options(**option_values)

    if as_json:
        seeds = search_listing(keyword, title_filters, base_url=shop_url)
    else:
        with console.status(f"Searching '{keyword}'..."):
            seeds = search_listing(keyword, title_filters, base_url=shop_url)

    if not then_probe:
        if as_json:
            print_json({
                'keyword': keyword,
                'title_filter': list(title_filters),
                'results': [s.to_dict() for s in seeds],
            })
        else:
            print_seeds(seeds, f"Products: {keyword}")
        return

    if not seeds:
        if as_json:
            print_json({'keyword': keyword, 'results': []})
        else:
            console.print("[warning]No products found - nothing to probe[/]")
        return

    run_and_report(seeds, options, as_json)


@click.command('programs')
@click.argument('keywords', nargs=-1, required=True)
@click.option('--year', type=int, default=None, help='Only programmes dated in this year')
@click.option('--shop-url', default=DEFAULT_SHOP_URL, show_default=True, help='Storefront root URL')
@click.option('--json', 'as_json', is_flag=True, help='Print results as JSON')
def programs_command(keywords: Tuple[str, ...], year: int, shop_url: str, as_json: bool):
    """Find performance programmes whose title contains all KEYWORDS."""
    if as_json:
        seeds = search_programs(keywords, year=year, base_url=shop_url)
        print_json({'year': year, 'q': list(keywords), 'results': [s.to_dict() for s in seeds]})
        return

    with console.status("Searching programmes..."):
        seeds = search_programs(keywords, year=year, base_url=shop_url)
    print_seeds(seeds, f"Programmes: {' '.join(keywords)}" + (f" ({year})" if year else ""))


@click.command('programs-batch')
@click.argument('lines_file', type=click.File('r', encoding='utf-8'), default='-')
@click.option('--year', type=int, default=None, help='Only programmes dated in this year')
@click.option('--shop-url', default=DEFAULT_SHOP_URL, show_default=True, help='Storefront root URL')
@click.option('--probe', 'then_probe', is_flag=True, help='Probe every programme found')
@probe_options
def programs_batch_command(lines_file, year: int, shop_url: str, then_probe: bool, as_json: bool,
                           **option_values):
    """Run one programme search per line of LINES_FILE (default: stdin).

    Each line holds space-separated keywords that must all appear in the title.
    """
    options = build_options(**option_values) if then_probe else None
    lines = lines_file.read().splitlines()

    if as_json:
        results = search_programs_batch(lines, year=year, base_url=shop_url)
    else:
        with console.status("Searching programmes..."):
            results = search_programs_batch(lines, year=year, base_url=shop_url)

    # Programmes matched by several lines are probed once
    seeds = []
    seen = set()
    for matches in results.values():
        for seed in matches:
            if seed.seed_id not in seen:
                seen.add(seed.seed_id)
                seeds.append(seed)

    catalog = probe_seeds(seeds, options, show_status=not as_json) if then_probe and seeds else None

    if as_json:
        data = {
            'year': year,
            'results': {line: [s.to_dict() for s in matches] for line, matches in results.items()},
        }
        if then_probe:
            data['catalog'] = catalog.to_dict() if catalog else None
        print_json(data)
        return

    if not results:
        console.print("[warning]No keyword lines given[/]")
        return
    for line, matches in results.items():
        print_seeds(matches, f"{line} ({len(matches)} hit(s))" + (f" {year}" if year else ""))
    if catalog:
        print_catalog(catalog, seeds)
