from __future__ import annotations

import logging
from pathlib import Path

from .layout import LayoutEngine
from .models import DividerElement, Element, Margins, Page, TextElement
from .writer import PDFDocumentWriter


log = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "ProjectReport.pdf"


class Report:
    """
    Ordered pages of layout elements plus document-level margins.

    This is the surface an editor, script or the CLI builds up; ``generate``
    and ``save`` hand a finished tree to the layout engine.
    """

    def __init__(self, file_name: str = DEFAULT_FILE_NAME,
                 margins: Margins | None = None,
                 pages: list[Page] | None = None):
        self.file_name = file_name
        self.margins = margins or Margins()
        self.pages: list[Page] = pages if pages is not None else []
        # Flat element list from single-page reports; rendered as one page
        # when no pages are defined.
        self.elements: list[Element] = []

    def _current_page(self) -> Page:
        if not self.pages:
            self.pages.append(Page("Main Page"))
        return self.pages[-1]

    def add_header(self, text: str) -> TextElement:
        element = TextElement.header(text)
        self._current_page().elements.append(element)
        return element

    def add_divider(self) -> DividerElement:
        element = DividerElement.default()
        self._current_page().elements.append(element)
        return element

    def add_element(self, element: Element) -> Element:
        self._current_page().elements.append(element)
        return element

    def add_page(self, name: str = "New Page") -> Page:
        page = Page(name)
        self.pages.append(page)
        return page

    def clear(self) -> None:
        self.pages.clear()
        self.elements.clear()

    def pages_to_render(self) -> list[Page]:
        if self.pages:
            return list(self.pages)
        if self.elements:
            log.info("Migrating %d page-less elements into one page", len(self.elements))
            return [Page("Migrated Content", elements=list(self.elements))]
        return []

    def build(self) -> PDFDocumentWriter:
        pages = self.pages_to_render()
        if not pages:
            log.warning("No pages or elements to generate; writing an empty page")
        writer = PDFDocumentWriter(
            top_margin=self.margins.top,
            bottom_margin=self.margins.bottom,
            left_margin=self.margins.left,
            right_margin=self.margins.right,
        )
        return LayoutEngine().render(writer, pages, self.margins)

    def generate(self) -> bytes:
        return self.build().to_bytes()

    def save(self, path: str | Path | None = None) -> Path:
        out_path = self.build().save(path or self.file_name)
        log.info("Report generated at: %s", out_path)
        return out_path
