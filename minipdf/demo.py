"""Built-in showcase documents used by ``minipdf demo``."""

from __future__ import annotations

from datetime import datetime

from reportlab.lib import colors
from reportlab.lib.colors import Color

from .models import (
    Alignment,
    DividerElement,
    LineCap,
    LineJoin,
    Page,
    PathCommand,
    PathSegment,
    ShapeElement,
    ShapeKind,
    TextElement,
)
from .report import Report
from .utils import chars_per_line, wrap_text
from .writer import PDFDocumentWriter


def _section(title: str, spacing_before: float = 0) -> TextElement:
    return TextElement(text=title, bold=True, font_size=14, spacing_before=spacing_before)


def _seg(command: PathCommand, *points: tuple[float, float]) -> PathSegment:
    return PathSegment(command, *points)


def build_shapes_demo() -> Report:
    report = Report(file_name="Shapes_Demo.pdf")
    page = Page("Vector Graphics Showcase")
    add = page.elements.append

    add(TextElement.header("Graphics & Drawing Primitives"))
    add(DividerElement.default())

    add(_section("1. Rectangles & Rounded Rectangles"))
    add(ShapeElement(
        kind=ShapeKind.RECTANGLE, height=50, use_fill=True,
        fill_color=Color(0.2, 0.6, 1.0), stroke_width=2, spacing_after=20,
    ))
    add(ShapeElement(
        kind=ShapeKind.ROUNDED_RECTANGLE, height=60, corner_radius=15,
        use_fill=True, fill_color=colors.green, opacity=0.5,
        stroke_width=1.5, spacing_after=20,
    ))

    add(_section("2. Circles & Ellipses", spacing_before=10))
    add(ShapeElement(
        kind=ShapeKind.CIRCLE, width=80, height=80, alignment=Alignment.CENTER,
        use_fill=True, fill_color=colors.red, spacing_after=20,
    ))
    add(ShapeElement(
        kind=ShapeKind.ELLIPSE, width=150, height=40, alignment=Alignment.CENTER,
        use_fill=True, fill_color=colors.yellow, stroke_color=colors.blue,
        stroke_width=3, line_join=LineJoin.ROUND, spacing_after=20,
    ))

    add(_section("3. Line Styling", spacing_before=10))
    add(ShapeElement(
        kind=ShapeKind.LINE, stroke_width=2, dash_pattern=[5, 2], spacing_after=10,
    ))
    add(ShapeElement(
        kind=ShapeKind.LINE, stroke_width=10, stroke_color=colors.gray,
        line_cap=LineCap.ROUND, spacing_after=20,
    ))

    add(_section("4. Polygons", spacing_before=10))
    add(ShapeElement(
        kind=ShapeKind.POLYGON, points=[(0, 0), (50, 50), (100, 0)], height=50,
        use_fill=True, fill_color=Color(1.0, 0.5, 0.0), line_join=LineJoin.BEVEL,
        spacing_after=20,
    ))

    add(_section("5. Curved Paths (Bezier)", spacing_before=10))
    add(ShapeElement(
        kind=ShapeKind.PATH, height=50,
        segments=[
            _seg(PathCommand.MOVE_TO, (0, 0)),
            _seg(PathCommand.CURVE_TO, (25, 50), (75, 50), (100, 0)),
            _seg(PathCommand.LINE_TO, (100, 20)),
            _seg(PathCommand.CLOSE),
        ],
        use_fill=True, fill_color=Color(0.5, 0.0, 1.0), opacity=0.3,
        stroke_color=colors.magenta, stroke_width=2, spacing_after=20,
    ))

    page_two = Page("Complex Paths")
    page_two.elements.append(_section("6. Complex Path: Heart"))
    page_two.elements.append(ShapeElement(
        kind=ShapeKind.PATH, height=100,
        segments=[
            _seg(PathCommand.MOVE_TO, (50, 70)),
            _seg(PathCommand.CURVE_TO, (50, 90), (100, 90), (100, 60)),
            _seg(PathCommand.CURVE_TO, (100, 30), (50, 10), (50, 0)),
            _seg(PathCommand.CURVE_TO, (50, 10), (0, 30), (0, 60)),
            _seg(PathCommand.CURVE_TO, (0, 90), (50, 90), (50, 70)),
            _seg(PathCommand.CLOSE),
        ],
        use_fill=True, fill_color=colors.red, stroke_color=Color(0.5, 0, 0),
        stroke_width=2, spacing_after=20,
    ))
    page_two.elements.append(_section("7. Open Path: Wave", spacing_before=20))
    page_two.elements.append(ShapeElement(
        kind=ShapeKind.PATH, height=100,
        segments=[
            _seg(PathCommand.MOVE_TO, (0, 50)),
            _seg(PathCommand.CURVE_TO, (50, 100), (100, 0), (150, 50)),
            _seg(PathCommand.CURVE_TO, (200, 100), (250, 0), (300, 50)),
        ],
        stroke_color=colors.blue, stroke_width=3, spacing_after=20,
    ))

    report.pages.extend([page, page_two])
    return report


SAMPLE_SUMMARY = (
    "This is a sample PDF generated with the dependency-light minipdf writer. "
    "It assembles content streams, fonts and cross-reference tables by hand, "
    "which makes it easy to produce documents, reports and logs from any "
    "script or service without a full layout toolkit."
)


def build_sample_report(title: str = "Sample Project Report",
                        user_name: str = "John Doe",
                        now: datetime | None = None) -> PDFDocumentWriter:
    """Drive the writer directly, the way a small script would."""
    now = now or datetime.now()
    pdf = PDFDocumentWriter()
    pdf.start()

    pdf.draw_centered_text(title.upper(), 18, bold=True)
    pdf.add_vertical_space(30)
    pdf.draw_centered_text("GENERATED WITH MINIPDF", 12)
    pdf.add_vertical_space(20)
    pdf.draw_horizontal_rule()
    pdf.add_vertical_space(30)

    pdf.draw_text(f"User: {user_name}", pdf.left_margin, 12, bold=True)
    pdf.add_vertical_space(15)
    pdf.draw_text(f"Date: {now:%Y-%m-%d %H:%M:%S}", pdf.left_margin, 10)
    pdf.add_vertical_space(30)

    pdf.draw_text("Project Summary", pdf.left_margin, 14, bold=True)
    pdf.add_vertical_space(20)
    content_width = pdf.page_width - pdf.left_margin - pdf.right_margin
    for line in wrap_text(SAMPLE_SUMMARY, chars_per_line(content_width, 10)):
        pdf.draw_text(line, pdf.left_margin, 10)
        pdf.add_vertical_space(12)
    pdf.add_vertical_space(28)

    pdf.draw_horizontal_rule()
    pdf.add_vertical_space(20)
    pdf.draw_centered_text("End of Report", 10)
    return pdf
