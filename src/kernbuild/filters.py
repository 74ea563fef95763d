"""Composable line filters for build tool output."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from kernbuild.models import Verbosity

ERRORS_PATTERN = "error:"
WARNINGS_PATTERN = "error:|warning:"

# Known-benign kconfig chatter that matches the warning patterns
DISABLED_WARNINGS = (
    "which has unmet direct dependencies",
    "choice value used outside its choice group",
    "reassigning to symbol",
    "changes choice state",
)


@dataclass(frozen=True, slots=True)
class LineFilter:
    """Keep a line if ``keep`` matches (or is unset) and no ``drop`` pattern does."""

    keep: re.Pattern[str] | None = None
    drop: tuple[re.Pattern[str], ...] = ()
    discard_all: bool = False

    @classmethod
    def compile(
        cls,
        keep: str | None = None,
        drop: Iterable[str] = (),
    ) -> LineFilter:
        return cls(
            keep=re.compile(keep) if keep is not None else None,
            drop=tuple(re.compile(pattern) for pattern in drop),
        )

    def accepts(self, line: str) -> bool:
        if self.discard_all:
            return False
        if self.keep is not None and not self.keep.search(line):
            return False
        return not any(pattern.search(line) for pattern in self.drop)


DISCARD = LineFilter(discard_all=True)


@dataclass(frozen=True, slots=True)
class FilterPipeline:
    filters: tuple[LineFilter, ...] = field(default_factory=tuple)

    def then(self, *filters: LineFilter) -> FilterPipeline:
        return FilterPipeline(filters=(*self.filters, *filters))

    def accepts(self, line: str) -> bool:
        return all(line_filter.accepts(line) for line_filter in self.filters)

    def apply(self, lines: Iterable[str]) -> Iterator[str]:
        return (line for line in lines if self.accepts(line))


def exclude(*patterns: str) -> LineFilter:
    return LineFilter.compile(drop=patterns)


def verbosity_filter(verbosity: Verbosity) -> FilterPipeline:
    if verbosity is Verbosity.FULL:
        return FilterPipeline()
    if verbosity is Verbosity.SILENT:
        return FilterPipeline((DISCARD,))
    keep = ERRORS_PATTERN if verbosity is Verbosity.ERRORS else WARNINGS_PATTERN
    return FilterPipeline((LineFilter.compile(keep=keep, drop=DISABLED_WARNINGS),))
