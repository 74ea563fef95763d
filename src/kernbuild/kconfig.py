"""In-place symbol edits on a kernel ``.config`` file.

Follows the ``scripts/config --enable/--disable`` contract: a symbol name
gains the ``CONFIG_`` prefix unless it already carries it, an enabled symbol
is written as ``CONFIG_FOO=y`` and a disabled one as
``# CONFIG_FOO is not set``. An existing assignment of the symbol is replaced
in place, otherwise the new line is appended.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

CONFIG_PREFIX = "CONFIG_"


def normalize_symbol(name: str) -> str:
    return name if name.startswith(CONFIG_PREFIX) else f"{CONFIG_PREFIX}{name}"


def _symbol_line_pattern(symbol: str) -> re.Pattern[str]:
    escaped = re.escape(symbol)
    return re.compile(rf"^(?:{escaped}=.*|# {escaped} is not set)$")


def _set_symbol(lines: list[str], symbol: str, replacement: str) -> None:
    pattern = _symbol_line_pattern(symbol)
    for index, line in enumerate(lines):
        if pattern.match(line):
            lines[index] = replacement
            return
    lines.append(replacement)


def set_symbols(
    config_path: Path,
    *,
    enable: Iterable[str] = (),
    disable: Iterable[str] = (),
) -> None:
    lines = config_path.read_text(encoding="utf-8").splitlines() if config_path.exists() else []
    for name in enable:
        symbol = normalize_symbol(name)
        _set_symbol(lines, symbol, f"{symbol}=y")
    for name in disable:
        symbol = normalize_symbol(name)
        _set_symbol(lines, symbol, f"# {symbol} is not set")
    config_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def symbol_value(config_path: Path, name: str) -> str | None:
    """Return the assigned value of *name*, ``"n"`` if unset, ``None`` if absent."""
    symbol = normalize_symbol(name)
    for line in config_path.read_text(encoding="utf-8").splitlines():
        if line == f"# {symbol} is not set":
            return "n"
        if line.startswith(f"{symbol}="):
            return line.split("=", 1)[1]
    return None
