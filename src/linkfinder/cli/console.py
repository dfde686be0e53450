"""
Shared Rich console and theme for the linkfinder CLI.
"""
from rich.console import Console
from rich.theme import Theme

# Muted theme; troupe colours are applied per row
custom_theme = Theme({
    "info": "blue",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "highlight": "bold blue",
    "muted": "dim",
    "url": "underline blue",
    "prefix": "cyan",
    "count": "bold",
    "table.header": "bold blue",
})

console = Console(theme=custom_theme, highlight=False)
