"""Resolve starting pages and the table of contents for print output.

Page numbers in the contents depend on how tall every section is, and the
contents page is itself one of those sections. The resolver measures all
units, renders the contents with the resulting numbers, lets the layout
settle and repeats a fixed number of times.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from manuscript_export.core.layout import LayoutHost, pages_for
from manuscript_export.models.export import PagePosition, PaginationResult, TocEntry

log = logging.getLogger(__name__)

# Marks where rendered contents go inside the ToC unit's markup
TOC_SLOT = "<!--toc-entries-->"


@dataclass
class LayoutUnit:
    """One page-starting block of the print document (cover or section)."""

    key: str
    html: str
    is_cover: bool = False
    is_toc: bool = False
    # Title listed in the contents; None when the unit is not listed
    toc_title: str | None = None
    ordinal: int | None = None
    # Markup around the contents for the ToC unit, containing TOC_SLOT
    shell: str | None = None

    def fill_toc(self, rendered: str) -> None:
        self.html = (self.shell or TOC_SLOT).replace(TOC_SLOT, rendered)


class PaginationResolver:
    """Fixed-point page numbering against a layout host."""

    PASSES = 3

    def __init__(self, host: LayoutHost, passes: int = PASSES):
        self.host = host
        self.passes = passes

    async def settle(self) -> None:
        """Wait for two frame boundaries so the last change is laid out."""
        await self.host.next_frame()
        await self.host.next_frame()

    def span(self, unit: LayoutUnit) -> int:
        if unit.is_cover:
            return 1
        return pages_for(self.host.measure(unit.html), self.host.content_height)

    def measure_pass(self, units: Sequence[LayoutUnit]) -> tuple[list[TocEntry], list[PagePosition]]:
        """Walk units in order, accumulating the page counter."""
        entries = []
        positions = []
        page = 1
        for unit in units:
            span = self.span(unit)
            if unit.toc_title is not None:
                entries.append(TocEntry(title=unit.toc_title, ordinal=unit.ordinal, page=page))
            positions.append(PagePosition(key=unit.key, start_page=page, span=span))
            page += span
        return entries, positions

    async def resolve(
        self,
        units: Sequence[LayoutUnit],
        render_toc: Callable[[list[TocEntry]], str],
    ) -> PaginationResult:
        """Run all passes and return the committed numbering.

        Units without a ToC skip pagination entirely; that is not an error.
        The ToC unit's ``html`` is updated in place after every pass.
        """
        toc_units = [unit for unit in units if unit.is_toc]
        if not toc_units:
            log.info("No table of contents placeholder, skipping pagination")
            return PaginationResult(skipped=True)

        entries: list[TocEntry] = []
        positions: list[PagePosition] = []
        for number in range(1, self.passes + 1):
            entries, positions = self.measure_pass(units)
            rendered = render_toc(entries)
            for unit in toc_units:
                unit.fill_toc(rendered)
            log.debug(
                "Pagination pass %d: %s",
                number,
                ", ".join(f"{entry.title}={entry.page}" for entry in entries),
            )
            await self.settle()

        return PaginationResult(entries=entries, positions=positions, passes=self.passes)


def resolve_pagination(
    units: Sequence[LayoutUnit],
    host: LayoutHost,
    render_toc: Callable[[list[TocEntry]], str],
    passes: int = PaginationResolver.PASSES,
) -> PaginationResult:
    """Synchronous entry point; must not be called from a running event loop."""
    return asyncio.run(PaginationResolver(host, passes).resolve(units, render_toc))
