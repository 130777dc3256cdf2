"""Shared Rich console for debug output."""
from rich.console import Console
from rich.markup import escape

# Debug traces go to stderr so they never mix with a host's stdout.
console = Console(stderr=True)


def print_debug(message: str) -> None:
    """Print a debug line.

    Args:
        message: Plain text to print. ARM expressions contain square
            brackets, so the text is escaped rather than read as markup.
    """
    console.print(f"[dim]Debug:[/dim] {escape(message)}", soft_wrap=True)
