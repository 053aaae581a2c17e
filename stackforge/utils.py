"""Shared utility functions for stackforge.

JSON I/O, tokenisation shared by the parser and the matcher, deep merging of
JSON-like trees, and Rich-based console reporting.
"""

from __future__ import annotations

import asyncio
import copy
import json
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Tokenisation
# ---------------------------------------------------------------------------

TOKEN_SEPARATORS = re.compile(r"[+,\s;|&]+")


def split_tokens(text: str) -> list[str]:
    """Split a stack string such as ``"vue3+vite, ts"`` into its tokens.

    Empty fragments are dropped; case is preserved.
    """
    return [token for token in TOKEN_SEPARATORS.split(text) if token.strip()]


# ---------------------------------------------------------------------------
# Deep merge
# ---------------------------------------------------------------------------


def deep_merge(target: Any, source: Any) -> Any:
    """Merge *source* into *target* and return the result.

    * ``None`` in *source* leaves *target* untouched.
    * Lists concatenate (a list replaces a non-list target).
    * Mappings recurse key by key.
    * Anything else in *source* wins.

    Neither argument is mutated.
    """
    if source is None:
        return copy.deepcopy(target)

    if isinstance(source, list):
        if isinstance(target, list):
            return [*copy.deepcopy(target), *copy.deepcopy(source)]
        return copy.deepcopy(source)

    if isinstance(source, dict):
        result = copy.deepcopy(target) if isinstance(target, dict) else {}
        for key, value in source.items():
            result[key] = deep_merge(result.get(key), value)
        return result

    return source


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed dictionary.  A top-level non-object is wrapped as ``{"_root": data}``.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        return {"_root": data}
    return data


def load_json_safe(path: str | Path) -> dict[str, Any] | None:
    """Like :func:`load_json` but returns ``None`` when the file is missing or invalid."""
    try:
        return load_json(path)
    except (OSError, ValueError):
        return None


async def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> None:
    """Save data as pretty-printed JSON.

    Parent directories are created automatically and the write runs in a
    thread-pool executor so the event loop is not blocked.
    """
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False, default=str)

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, file_path.write_text, content, "utf-8")


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="bold")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(key, str(value))
    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
