from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from .constants import (
    DASHED_BORDER,
    DEFAULT_MARGIN,
    DEFAULT_SPACER,
    DIVIDER_GAP,
    LARGE_FONT_PADDING_FACTOR,
    LARGE_FONT_THRESHOLD,
)
from .models import (
    Alignment,
    BorderStyle,
    DividerElement,
    Element,
    ImageElement,
    Margins,
    Page,
    ShapeElement,
    ShapeKind,
    SpacerElement,
    TableCell,
    TableElement,
    TableRow,
    TextElement,
    VerticalAlignment,
)
from .utils import chars_per_line, str_width, wrap_text
from .writer import PDFDocumentWriter


log = logging.getLogger(__name__)

MIN_COLUMN_WIDTH = 10.0


@dataclass(frozen=True)
class Frame:
    """Horizontal placement of one element on the current page."""

    x: float
    left: float
    right: float


@dataclass(frozen=True)
class CellBox:
    cell: TableCell
    column: int
    x: float
    width: float


def table_column_count(rows: Sequence[TableRow]) -> int:
    return max((sum(max(1, c.colspan) for c in row.cells) for row in rows), default=0)


def compute_column_widths(column_count: int, table_width: float,
                          overrides: Sequence[float] = ()) -> list[float]:
    """
    Fixed overrides keep their width; the remainder is shared evenly by the
    other columns, never narrower than 10pt.
    """
    fixed = [
        overrides[i] if i < len(overrides) and overrides[i] > 0 else None
        for i in range(column_count)
    ]
    fixed_total = sum(w for w in fixed if w is not None)
    auto_count = sum(1 for w in fixed if w is None)
    auto_width = max(MIN_COLUMN_WIDTH, (table_width - fixed_total) / max(1, auto_count))
    return [auto_width if w is None else w for w in fixed]


def layout_row_cells(row: TableRow, col_widths: Sequence[float], start_x: float) -> list[CellBox]:
    """
    Place a row's cells left to right. A cell spanning n columns takes their
    combined width and the next cell starts n columns later; cells past the
    last column are dropped.
    """
    boxes: list[CellBox] = []
    column = 0
    x = start_x
    for cell in row.cells:
        if column >= len(col_widths):
            break
        span = max(1, cell.colspan)
        width = sum(col_widths[column : column + span])
        boxes.append(CellBox(cell=cell, column=column, x=x, width=width))
        x += width
        column += span
    return boxes


def parse_spacer_amount(text: str | float | None) -> float:
    try:
        amount = float(text)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_SPACER
    return amount if math.isfinite(amount) else DEFAULT_SPACER


def resolve_margin(element_value: float, page_value: float) -> float:
    return page_value if element_value == DEFAULT_MARGIN else element_value


class LayoutEngine:
    """
    Turns pages of layout elements into writer calls.

    The engine keeps no state between calls; the writer passed to ``render``
    owns the cursor, the page list and all resources.
    """

    def render(self, pdf: PDFDocumentWriter, pages: Sequence[Page],
               margins: Margins = Margins()) -> PDFDocumentWriter:
        self._apply_margins(pdf, margins)
        pdf.start()
        for index, page in enumerate(pages):
            page_margins = margins.for_page(page)
            self._apply_margins(pdf, page_margins)
            if index > 0:
                pdf.new_page()
            else:
                pdf.cursor_y = pdf.top_of_page
            log.debug("rendering page %d (%s): %d elements", index + 1, page.name, len(page.elements))
            for element in page.elements:
                self.render_element(pdf, element)
        return pdf

    @staticmethod
    def _apply_margins(pdf: PDFDocumentWriter, margins: Margins) -> None:
        pdf.top_margin = margins.top
        pdf.bottom_margin = margins.bottom
        pdf.left_margin = margins.left
        pdf.right_margin = margins.right

    def render_element(self, pdf: PDFDocumentWriter, el: Element) -> None:
        if el.spacing_before > 0:
            pdf.add_vertical_space(el.spacing_before)
        if el.custom_position is None:
            # Absolutely placed elements never break the flow.
            pdf.check_page_overflow(el.space_estimate())
        self._draw_element(pdf, el)
        pdf.add_vertical_space(el.spacing_after)

    def _draw_element(self, pdf: PDFDocumentWriter, el: Element) -> None:
        if el.font_size > LARGE_FONT_THRESHOLD:
            pdf.add_vertical_space((el.font_size - LARGE_FONT_THRESHOLD) * LARGE_FONT_PADDING_FACTOR)

        pdf.set_color(el.color)
        left = resolve_margin(el.left_margin, pdf.left_margin)
        right = resolve_margin(el.right_margin, pdf.right_margin)

        if el.custom_position is None:
            self._dispatch(pdf, el, Frame(x=left, left=left, right=right))
            return

        custom_x, custom_y = el.custom_position
        saved_y = pdf.cursor_y
        pdf.cursor_y = custom_y
        try:
            self._dispatch(pdf, el, Frame(x=custom_x, left=left, right=right))
        finally:
            pdf.cursor_y = saved_y

    def _dispatch(self, pdf: PDFDocumentWriter, el: Element, frame: Frame) -> None:
        handlers = (
            (TextElement, self._draw_text),
            (DividerElement, self._draw_divider),
            (SpacerElement, self._draw_spacer),
            (TableElement, self._draw_table),
            (ShapeElement, self._draw_shape),
            (ImageElement, self._draw_image),
        )
        for kind, handler in handlers:
            if isinstance(el, kind):
                handler(pdf, el, frame)
                return
        log.warning("Unsupported element type: %s", type(el).__name__)

    # ── Text ──────────────────────────────────────────────────────────

    @staticmethod
    def _aligned_text_x(pdf: PDFDocumentWriter, line: str, size: float,
                        alignment: Alignment, frame: Frame) -> float:
        if alignment is Alignment.CENTER:
            return (pdf.page_width - str_width(line, size)) / 2
        if alignment is Alignment.RIGHT:
            return pdf.page_width - frame.right - str_width(line, size)
        return frame.x

    def _draw_text(self, pdf: PDFDocumentWriter, el: TextElement, frame: Frame) -> None:
        if not el.text:
            return
        max_width = el.max_width if el.max_width > 0 else pdf.page_width - frame.x - frame.right
        lines = wrap_text(el.text, chars_per_line(max_width, el.font_size))
        step = el.font_size * el.line_height
        for index, line in enumerate(lines):
            if index > 0 and pdf.check_page_overflow(step):
                # A fresh content stream starts with the default color.
                pdf.set_color(el.color)
            if line:
                x = self._aligned_text_x(pdf, line, el.font_size, el.alignment, frame)
                pdf.draw_text(line, x, el.font_size, el.bold)
            pdf.add_vertical_space(step)

    # ── Divider / spacer ──────────────────────────────────────────────

    def _draw_divider(self, pdf: PDFDocumentWriter, el: DividerElement, frame: Frame) -> None:
        width = el.width if el.width > 0 else pdf.page_width - frame.x - frame.right
        pdf.set_line_width(el.thickness)
        pdf.draw_line(frame.x, pdf.cursor_y, frame.x + width, pdf.cursor_y)
        pdf.set_line_width(1)
        pdf.add_vertical_space(el.thickness + DIVIDER_GAP)

    def _draw_spacer(self, pdf: PDFDocumentWriter, el: SpacerElement, frame: Frame) -> None:
        pdf.add_vertical_space(parse_spacer_amount(el.text))

    # ── Tables ────────────────────────────────────────────────────────

    def _draw_table(self, pdf: PDFDocumentWriter, el: TableElement, frame: Frame) -> None:
        if not el.rows:
            log.warning("Table has no rows; skipped")
            return
        column_count = table_column_count(el.rows)
        if column_count == 0:
            log.warning("Table rows have no cells; skipped")
            return

        table_width = el.width if el.width > 0 else pdf.page_width - frame.left - frame.right
        col_widths = compute_column_widths(column_count, table_width, el.column_widths)
        total_width = sum(col_widths)
        start_x = frame.x
        if el.alignment is Alignment.CENTER:
            start_x = (pdf.page_width - total_width) / 2
        elif el.alignment is Alignment.RIGHT:
            start_x = pdf.page_width - frame.right - total_width

        font_size = el.font_size
        padding = el.cell_padding
        for row_index, row in enumerate(el.rows):
            if not row.cells:
                continue
            is_header = row_index == 0 and el.has_header
            boxes = layout_row_cells(row, col_widths, start_x)

            # Phase 1: wrap every cell and size the row.
            wrapped = [self._wrap_cell(box, font_size, padding) for box in boxes]
            row_height = max(
                [font_size + padding * 2]
                + [len(lines) * font_size + padding * 2 for lines in wrapped]
            )
            # Header rows are not repeated after a break.
            pdf.check_page_overflow(row_height)

            # Phase 2: paint.
            for box, lines in zip(boxes, wrapped):
                self._draw_cell(pdf, el, box, lines, row_height, is_header)

            if el.show_borders:
                pdf.set_line_width(1)
                pdf.set_dash_pattern(None)
            pdf.add_vertical_space(row_height)
        pdf.set_color(el.color)

    @staticmethod
    def _wrap_cell(box: CellBox, font_size: float, padding: float) -> list[str]:
        text = box.cell.text or ""
        if not box.cell.wrap_text:
            return [text]
        return wrap_text(text, chars_per_line(box.width - padding * 2, font_size))

    def _draw_cell(self, pdf: PDFDocumentWriter, el: TableElement, box: CellBox,
                   lines: list[str], row_height: float, is_header: bool) -> None:
        cell = box.cell
        top = pdf.cursor_y
        bottom = top - row_height
        left = box.x
        right = box.x + box.width

        background = cell.background_color
        if is_header and background.alpha < 0.01:
            background = el.header_color
        if background.alpha > 0.05:
            translucent = background.alpha < 1
            if translucent:
                pdf.save_state()
                pdf.set_opacity(background.alpha)
            pdf.set_color(background)
            pdf.draw_rect(left, bottom, box.width, row_height, fill=True)
            if translucent:
                pdf.restore_state()

        if el.show_borders:
            pdf.set_line_width(el.border_thickness)
            pdf.set_color(el.border_color)
            pdf.set_dash_pattern(DASHED_BORDER if el.border_style is BorderStyle.DASHED else None)
            # Four separate strokes, all drawn left-to-right / top-to-bottom,
            # keep the dash phase identical on every edge.
            pdf.draw_line(left, top, right, top)
            pdf.draw_line(left, bottom, right, bottom)
            pdf.draw_line(left, top, left, bottom)
            pdf.draw_line(right, top, right, bottom)

        pdf.set_color(el.color)
        size = el.font_size
        padding = el.cell_padding
        block_height = len(lines) * size
        bold = is_header or el.bold
        for index, line in enumerate(lines):
            if not line:
                continue
            width = str_width(line, size)
            if cell.alignment is Alignment.CENTER:
                x = left + box.width / 2 - width / 2
            elif cell.alignment is Alignment.RIGHT:
                x = right - width - padding
            else:
                x = left + padding

            if cell.vertical_alignment is VerticalAlignment.TOP:
                y = top - padding - size * 0.8 - index * size
            elif cell.vertical_alignment is VerticalAlignment.BOTTOM:
                y = bottom + padding + (len(lines) - 1 - index) * size
            else:
                y = top - row_height / 2 + block_height / 2 - size * 0.8 - index * size

            self._text_at(pdf, line, x + cell.offset_x, y + cell.offset_y, size, bold)

    @staticmethod
    def _text_at(pdf: PDFDocumentWriter, text: str, x: float, y: float,
                 size: float, bold: bool) -> None:
        saved_y = pdf.cursor_y
        pdf.cursor_y = y
        pdf.draw_text(text, x, size, bold)
        pdf.cursor_y = saved_y

    # ── Shapes / images ───────────────────────────────────────────────

    @staticmethod
    def _aligned_box_x(pdf: PDFDocumentWriter, alignment: Alignment,
                       frame: Frame, width: float) -> float:
        available = pdf.page_width - frame.x - frame.right
        if width >= available or alignment is Alignment.LEFT:
            return frame.x
        if alignment is Alignment.CENTER:
            return (pdf.page_width - width) / 2
        return pdf.page_width - frame.right - width

    def _draw_shape(self, pdf: PDFDocumentWriter, el: ShapeElement, frame: Frame) -> None:
        available = pdf.page_width - frame.x - frame.right
        width = el.width if el.width > 0 else available
        height = el.box_height()
        if el.kind is ShapeKind.CIRCLE:
            width = height = min(width, height) if el.width > 0 else height
        x = self._aligned_box_x(pdf, el.alignment, frame, width)
        top = pdf.cursor_y
        bottom = top - height
        fill, stroke = el.use_fill, el.use_stroke

        pdf.save_state()
        try:
            if el.opacity < 1:
                pdf.set_opacity(el.opacity)
            pdf.set_line_width(el.stroke_width)
            pdf.set_line_join(el.line_join)
            pdf.set_line_cap(el.line_cap)
            if el.dash_pattern:
                pdf.set_dash_pattern(el.dash_pattern)
            pdf.set_fill_color(el.fill_color)
            pdf.set_stroke_color(el.stroke_color)

            kind = el.kind
            if kind is ShapeKind.LINE:
                if stroke:
                    y = top - height / 2
                    pdf.draw_line(x, y, x + width, y)
            elif kind is ShapeKind.RECTANGLE:
                pdf.draw_rect(x, bottom, width, height, fill, stroke)
            elif kind is ShapeKind.ROUNDED_RECTANGLE:
                pdf.draw_rounded_rect(x, bottom, width, height, el.corner_radius, fill, stroke)
            elif kind is ShapeKind.CIRCLE:
                radius = width / 2
                pdf.draw_circle(x + radius, bottom + radius, radius, fill, stroke)
            elif kind is ShapeKind.ELLIPSE:
                pdf.draw_ellipse(x + width / 2, bottom + height / 2, width / 2, height / 2,
                                 fill, stroke)
            elif kind is ShapeKind.POLYGON:
                pdf.draw_polygon(el.points, fill, stroke, offset_x=x, offset_y=bottom)
            elif kind is ShapeKind.PATH:
                pdf.draw_path(el.segments, fill, stroke, offset_x=x, offset_y=bottom)
        finally:
            pdf.restore_state()
        pdf.add_vertical_space(height)

    def _draw_image(self, pdf: PDFDocumentWriter, el: ImageElement, frame: Frame) -> None:
        name = pdf.embed_image(el.path)
        if name is None:
            return
        info = pdf.images[str(el.path)].info
        available = pdf.page_width - frame.x - frame.right
        width, height = el.width, el.height
        if width <= 0 and height <= 0:
            width, height = float(info.width), float(info.height)
            if width > available > 0:
                height *= available / width
                width = available
        elif width <= 0:
            width = height * info.width / info.height
        elif height <= 0:
            height = width * info.height / info.width

        if el.height <= 0 and el.custom_position is None:
            # The element-level estimate did not know the image height.
            pdf.check_page_overflow(height)
        x = self._aligned_box_x(pdf, el.alignment, frame, width)

        scoped = el.opacity < 1
        if scoped:
            pdf.save_state()
            pdf.set_opacity(el.opacity)
        pdf.draw_image(name, x, pdf.cursor_y - height, width, height)
        if scoped:
            pdf.restore_state()
        pdf.add_vertical_space(height)
