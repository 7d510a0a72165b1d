from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from reportlab.lib import colors
from reportlab.lib.colors import Color

from .constants import DEFAULT_MARGIN


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VerticalAlignment(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class BorderStyle(str, Enum):
    SOLID = "solid"
    DASHED = "dashed"


class LineJoin(IntEnum):
    MITER = 0
    ROUND = 1
    BEVEL = 2


class LineCap(IntEnum):
    BUTT = 0
    ROUND = 1
    SQUARE = 2


class ShapeKind(str, Enum):
    LINE = "line"
    RECTANGLE = "rectangle"
    ROUNDED_RECTANGLE = "rounded_rectangle"
    CIRCLE = "circle"
    ELLIPSE = "ellipse"
    POLYGON = "polygon"
    PATH = "path"


class PathCommand(str, Enum):
    MOVE_TO = "move_to"
    LINE_TO = "line_to"
    CURVE_TO = "curve_to"
    CLOSE = "close"


Point = tuple[float, float]


@dataclass
class PathSegment:
    command: PathCommand
    p1: Point = (0.0, 0.0)
    p2: Point = (0.0, 0.0)
    p3: Point = (0.0, 0.0)


@dataclass
class TableCell:
    text: str = ""
    alignment: Alignment = Alignment.LEFT
    vertical_alignment: VerticalAlignment = VerticalAlignment.MIDDLE
    offset_x: float = 0.0
    offset_y: float = 0.0
    background_color: Color = field(default_factory=lambda: Color(0, 0, 0, alpha=0))
    colspan: int = 1
    wrap_text: bool = True


@dataclass
class TableRow:
    cells: list[TableCell] = field(default_factory=list)

    @classmethod
    def blank(cls, column_count: int) -> "TableRow":
        return cls(cells=[TableCell() for _ in range(column_count)])


@dataclass
class Element:
    """
    Fields shared by every layout element.

    A ``left_margin``/``right_margin`` equal to the 50pt default means
    "use the page margin". ``custom_position`` places the element at an
    absolute (x, y) without moving the flow cursor.
    """

    font_size: float = 11
    bold: bool = False
    color: Color = field(default_factory=lambda: colors.black)
    alignment: Alignment = Alignment.LEFT
    spacing_before: float = 0.0
    spacing_after: float = 10.0
    left_margin: float = DEFAULT_MARGIN
    right_margin: float = DEFAULT_MARGIN
    line_height: float = 1.2
    custom_position: Point | None = None
    max_width: float = 0.0

    def space_estimate(self) -> float:
        return self.spacing_after + self.font_size * self.line_height


@dataclass
class TextElement(Element):
    text: str = ""

    @classmethod
    def header(cls, text: str) -> "TextElement":
        return cls(
            text=text,
            font_size=18,
            bold=True,
            alignment=Alignment.CENTER,
            spacing_after=20,
            line_height=1.3,
        )


@dataclass
class DividerElement(Element):
    thickness: float = 1.0
    width: float = 0.0  # 0 = span the margins

    @classmethod
    def default(cls) -> "DividerElement":
        return cls(spacing_after=20)


@dataclass
class SpacerElement(Element):
    # Amount as entered by the author; non-numeric falls back to 20pt.
    text: str = ""


@dataclass
class TableElement(Element):
    rows: list[TableRow] = field(default_factory=list)
    column_widths: list[float] = field(default_factory=list)
    width: float = 0.0  # 0 = span the margins
    show_borders: bool = True
    border_thickness: float = 1.0
    border_color: Color = field(default_factory=lambda: colors.black)
    border_style: BorderStyle = BorderStyle.SOLID
    cell_padding: float = 5.0
    has_header: bool = True
    header_color: Color = field(default_factory=lambda: Color(0.9, 0.9, 0.9))


@dataclass
class ShapeElement(Element):
    kind: ShapeKind = ShapeKind.RECTANGLE
    width: float = 0.0  # 0 = span the margins
    height: float = 50.0
    corner_radius: float = 0.0
    use_fill: bool = False
    fill_color: Color = field(default_factory=lambda: colors.white)
    use_stroke: bool = True
    stroke_color: Color = field(default_factory=lambda: colors.black)
    stroke_width: float = 1.0
    line_join: LineJoin = LineJoin.MITER
    line_cap: LineCap = LineCap.BUTT
    dash_pattern: list[float] = field(default_factory=list)
    points: list[Point] = field(default_factory=list)
    segments: list[PathSegment] = field(default_factory=list)
    opacity: float = 1.0

    def box_height(self) -> float:
        if self.kind is ShapeKind.LINE:
            return self.stroke_width
        return max(0.0, self.height)

    def space_estimate(self) -> float:
        return self.spacing_after + self.box_height()


@dataclass
class ImageElement(Element):
    path: str = ""
    width: float = 0.0
    height: float = 0.0
    opacity: float = 1.0

    def space_estimate(self) -> float:
        if self.height > 0:
            return self.spacing_after + self.height
        return super().space_estimate()


@dataclass
class Page:
    name: str = "New Page"
    elements: list[Element] = field(default_factory=list)
    # None inherits the document margin.
    top_margin: float | None = None
    bottom_margin: float | None = None
    left_margin: float | None = None
    right_margin: float | None = None


@dataclass(frozen=True)
class Margins:
    top: float = DEFAULT_MARGIN
    bottom: float = DEFAULT_MARGIN
    left: float = DEFAULT_MARGIN
    right: float = DEFAULT_MARGIN

    def for_page(self, page: Page) -> "Margins":
        return Margins(
            top=self.top if page.top_margin is None else page.top_margin,
            bottom=self.bottom if page.bottom_margin is None else page.bottom_margin,
            left=self.left if page.left_margin is None else page.left_margin,
            right=self.right if page.right_margin is None else page.right_margin,
        )
