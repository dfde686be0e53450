"""
linkfinder CLI module - shared console and commands.
"""
from linkfinder.cli.console import console, custom_theme
from linkfinder.cli.helpers import build_options, print_catalog, print_seeds
from linkfinder.cli.probe import probe_command, batch_command
from linkfinder.cli.search import search_command, programs_command, programs_batch_command

__all__ = [
    'console',
    'custom_theme',
    'build_options',
    'print_catalog',
    'print_seeds',
    'probe_command',
    'batch_command',
    'search_command',
    'programs_command',
    'programs_batch_command',
]
