"""
linkfinder CLI

Commands:
    probe       Guess and verify asset URLs for one product code
    batch       Probe every seed in a JSON/CSV/text file
    search      Find products on a storefront listing (optionally probe them)
    programs    Find performance programmes by keyword and year
    programs-batch  One programme search per line of a keyword file
"""
import click

from linkfinder import __version__
from linkfinder.cli.helpers import configure_logging
from linkfinder.cli.probe import batch_command, probe_command
from linkfinder.cli.search import programs_batch_command, programs_command, search_command


@click.group()
@click.version_option(__version__, prog_name='linkfinder')
@click.option('-v', '--verbose', count=True, help='More logging (-vv for debug)')
@click.option('-q', '--quiet', is_flag=True, help='Only log errors')
def cli(verbose: int, quiet: bool):
    """linkfinder - discover storefront media assets from product codes"""
    configure_logging(verbose, quiet)


cli.add_command(probe_command)
cli.add_command(batch_command)
cli.add_command(search_command)
cli.add_command(programs_command)
cli.add_command(programs_batch_command)


if __name__ == '__main__':
    cli()
