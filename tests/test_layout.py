import unittest

from reportlab.lib.colors import Color

from minipdf.layout import (
    LayoutEngine,
    compute_column_widths,
    layout_row_cells,
    parse_spacer_amount,
    resolve_margin,
    table_column_count,
)
from minipdf.models import (
    Alignment,
    BorderStyle,
    DividerElement,
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
from minipdf.utils import chars_per_line, wrap_text
from minipdf.writer import PDFDocumentWriter


def _render(*elements, margins=Margins()):
    pdf = PDFDocumentWriter()
    LayoutEngine().render(pdf, [Page("Test", elements=list(elements))], margins)
    return pdf


class TestTextWrap(unittest.TestCase):
    def test_wrap_keeps_words_and_line_limit(self):
        max_chars = chars_per_line(100, 10)
        self.assertEqual(max_chars, 16)
        text = "The quick brown fox jumps"
        lines = wrap_text(text, max_chars)
        self.assertTrue(all(len(line) <= 16 for line in lines))
        self.assertEqual(" ".join(lines).split(), text.split())
        self.assertEqual(lines, ["The quick brown", "fox jumps"])

    def test_long_word_is_chunked(self):
        self.assertEqual(wrap_text("abcdefghij xy", 4), ["abcd", "efgh", "ij", "xy"])

    def test_newlines_start_paragraphs(self):
        self.assertEqual(wrap_text("one\n\ntwo\n", 10), ["one", "", "two"])
        self.assertEqual(wrap_text("", 10), [""])


class TestTableGeometry(unittest.TestCase):
    def test_column_widths_share_remainder(self):
        self.assertEqual(compute_column_widths(3, 300), [100, 100, 100])
        self.assertEqual(compute_column_widths(3, 300, [150]), [150, 75, 75])
        # Overrides that eat the whole width leave the 10pt floor.
        self.assertEqual(compute_column_widths(3, 300, [200, 150]), [200, 150, 10])

    def test_colspan_consumes_following_columns(self):
        widths = [100.0, 100.0, 100.0]
        row = TableRow([TableCell("wide", colspan=2), TableCell("last")])
        boxes = layout_row_cells(row, widths, start_x=50)
        self.assertEqual(len(boxes), 2)
        self.assertEqual((boxes[0].column, boxes[0].x, boxes[0].width), (0, 50, 200))
        # Cell 1 starts at column 2's offset, not column 1's.
        self.assertEqual((boxes[1].column, boxes[1].x, boxes[1].width), (2, 250, 100))

    def test_cells_past_last_column_are_dropped(self):
        row = TableRow([TableCell("a", colspan=3), TableCell("b")])
        self.assertEqual(len(layout_row_cells(row, [10, 10, 10], 0)), 1)

    def test_column_count_accounts_for_colspan(self):
        rows = [TableRow([TableCell("x", colspan=2), TableCell("y")]), TableRow.blank(2)]
        self.assertEqual(table_column_count(rows), 3)
        self.assertEqual(table_column_count([]), 0)


class TestHelpers(unittest.TestCase):
    def test_spacer_amount_falls_back(self):
        self.assertEqual(parse_spacer_amount("35"), 35)
        self.assertEqual(parse_spacer_amount("abc"), 20)
        self.assertEqual(parse_spacer_amount(""), 20)
        self.assertEqual(parse_spacer_amount("nan"), 20)

    def test_default_margin_inherits_page_margin(self):
        self.assertEqual(resolve_margin(50, 72), 72)
        self.assertEqual(resolve_margin(30, 72), 30)


class TestLayoutEngine(unittest.TestCase):
    def test_text_flow_advances_cursor(self):
        pdf = PDFDocumentWriter()
        LayoutEngine().render(pdf, [])
        start = pdf.cursor_y
        LayoutEngine().render_element(pdf, TextElement(text="Hello", font_size=10))
        # One line (10 * 1.2) plus the default spacing after (10).
        self.assertAlmostEqual(pdf.cursor_y, start - 22)
        self.assertIn("(Hello) Tj", pdf.page_stream(0))

    def test_custom_position_does_not_move_cursor(self):
        pdf = PDFDocumentWriter()
        LayoutEngine().render(pdf, [])
        before = pdf.cursor_y
        element = TextElement(text="Pinned", custom_position=(300, 100), spacing_after=0)
        LayoutEngine().render_element(pdf, element)
        self.assertEqual(pdf.cursor_y, before)
        self.assertIn("1 0 0 1 300 100 Tm", pdf.page_stream(0))

    def test_custom_position_does_not_break_page(self):
        pdf = PDFDocumentWriter()
        LayoutEngine().render(pdf, [])
        pdf.cursor_y = pdf.bottom_margin + 5
        element = TextElement(text="Stamp", font_size=20, custom_position=(400, 700),
                              spacing_after=0)
        LayoutEngine().render_element(pdf, element)
        self.assertEqual(pdf.page_count, 1)
        self.assertIn("1 0 0 1 400 700 Tm", pdf.page_stream(0))

    def test_centered_text(self):
        pdf = _render(TextElement(text="abcd", font_size=10, alignment=Alignment.CENTER))
        # width 4 * 10 * 0.6 = 24
        x = (595 - 24) / 2
        self.assertIn(f"1 0 0 1 {x:g} ", pdf.page_stream(0))

    def test_long_text_paginates(self):
        text = " ".join(["word"] * 4000)
        pdf = _render(TextElement(text=text, font_size=12))
        self.assertGreater(pdf.page_count, 1)
        for index in range(pdf.page_count):
            lines = pdf.page_stream(index).splitlines()
            self.assertEqual(lines.count("BT"), lines.count("ET"))

    def test_each_page_starts_new_pdf_page(self):
        pages = [
            Page("One", [TextElement(text="first")]),
            Page("Two", [TextElement(text="second")], left_margin=80),
        ]
        pdf = LayoutEngine().render(PDFDocumentWriter(), pages)
        self.assertEqual(pdf.page_count, 2)
        self.assertIn("1 0 0 1 50 ", pdf.page_stream(0))
        self.assertIn("1 0 0 1 80 ", pdf.page_stream(1))

    def test_large_font_gets_extra_padding(self):
        small = _render(TextElement(text="x", font_size=50, spacing_after=0))
        large = _render(TextElement(text="x", font_size=60, spacing_after=0))
        # 50 * 1.2 vs 60 * 1.2 + (60 - 50) * 0.3
        self.assertAlmostEqual(small.cursor_y - large.cursor_y, 12 + 3)

    def test_divider_and_spacer(self):
        pdf = PDFDocumentWriter()
        LayoutEngine().render(pdf, [])
        start = pdf.cursor_y
        engine = LayoutEngine()
        engine.render_element(pdf, DividerElement(thickness=2, spacing_after=0))
        self.assertAlmostEqual(pdf.cursor_y, start - 12)
        self.assertIn("\n2 w\n", pdf.page_stream(0))
        engine.render_element(pdf, SpacerElement(text="bogus", spacing_after=0))
        self.assertAlmostEqual(pdf.cursor_y, start - 32)

    def test_table_draws_cells_and_borders(self):
        table = TableElement(
            rows=[
                TableRow([TableCell("Name"), TableCell("Qty", alignment=Alignment.RIGHT)]),
                TableRow([TableCell("Apples"), TableCell("3")]),
            ],
            font_size=10,
        )
        pdf = _render(table)
        stream = pdf.page_stream(0)
        self.assertIn("(Name) Tj", stream)
        self.assertIn("(Apples) Tj", stream)
        # Header row is bold.
        self.assertIn("/F2 10 Tf", stream)
        # Header background is filled.
        self.assertIn("0.900 0.900 0.900 rg", stream)
        # Four independent edges per cell, four cells.
        self.assertEqual(stream.count(" l S"), 16)

    def test_dashed_table_border(self):
        table = TableElement(rows=[TableRow([TableCell("a")])], border_style=BorderStyle.DASHED)
        stream = _render(table).page_stream(0)
        self.assertIn("[3 3] 0 d", stream)
        self.assertIn("[] 0 d", stream)

    def test_translucent_cell_background_uses_opacity(self):
        table = TableElement(
            rows=[TableRow([TableCell("a", background_color=Color(1, 0, 0, alpha=0.5))])],
            has_header=False,
        )
        pdf = _render(table)
        self.assertEqual(pdf.opacity_states, {0.5: "GS1"})
        self.assertIn("q\nBT\nET\n/GS1 gs", pdf.page_stream(0))

    def test_cell_vertical_alignment(self):
        def first_text_y(valign):
            table = TableElement(
                rows=[TableRow([TableCell("a", vertical_alignment=valign)])],
                has_header=False, show_borders=False, font_size=10,
            )
            pdf = _render(table)
            for line in pdf.page_stream(0).splitlines():
                if line.startswith("1 0 0 1 "):
                    return float(line.split()[5])
            raise AssertionError("no text drawn")

        top = first_text_y(VerticalAlignment.TOP)
        middle = first_text_y(VerticalAlignment.MIDDLE)
        bottom = first_text_y(VerticalAlignment.BOTTOM)
        self.assertGreaterEqual(top, middle)
        self.assertGreaterEqual(middle, bottom)

    def test_empty_table_is_skipped_with_warning(self):
        pdf = PDFDocumentWriter()
        LayoutEngine().render(pdf, [])
        with self.assertLogs("minipdf.layout", level="WARNING") as cm:
            LayoutEngine().render_element(pdf, TableElement(rows=[]))
        self.assertIn("no rows", cm.output[0])
        with self.assertLogs("minipdf.layout", level="WARNING"):
            LayoutEngine().render_element(pdf, TableElement(rows=[TableRow([])]))

    def test_shape_is_scoped_and_advances_cursor(self):
        pdf = PDFDocumentWriter()
        LayoutEngine().render(pdf, [])
        start = pdf.cursor_y
        shape = ShapeElement(
            kind=ShapeKind.RECTANGLE, width=100, height=40, use_fill=True,
            opacity=0.25, spacing_after=0,
        )
        LayoutEngine().render_element(pdf, shape)
        self.assertAlmostEqual(pdf.cursor_y, start - 40)
        stream = pdf.page_stream(0)
        self.assertIn(f"50 {start - 40:g} 100 40 re\nB", stream)
        self.assertIn("/GS1 gs", stream)
        self.assertLess(stream.index("\nq\n"), stream.index("/GS1 gs"))
        self.assertLess(stream.index("/GS1 gs"), stream.index("\nQ\n"))

    def test_polygon_points_are_relative_to_box(self):
        pdf = PDFDocumentWriter()
        LayoutEngine().render(pdf, [])
        start = pdf.cursor_y
        shape = ShapeElement(kind=ShapeKind.POLYGON, points=[(0, 0), (10, 20)], height=20)
        LayoutEngine().render_element(pdf, shape)
        bottom = start - 20
        self.assertIn(f"50 {bottom:g} m\n60 {bottom + 20:g} l\nh", pdf.page_stream(0))

    def test_missing_image_draws_nothing(self):
        with self.assertLogs("minipdf.jpeg", level="WARNING"):
            pdf = _render(ImageElement(path="/definitely/missing.jpg"))
        self.assertNotIn(" Do", pdf.page_stream(0))


if __name__ == "__main__":
    unittest.main()
