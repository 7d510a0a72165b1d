from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from reportlab.lib.colors import Color

from .constants import (
    BEZIER_KAPPA,
    DEFAULT_MARGIN,
    FONT_BOLD,
    FONT_REGULAR,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    TOP_PADDING,
)
from .jpeg import JpegInfo, read_jpeg
from .models import LineCap, LineJoin, PathCommand, PathSegment
from .utils import fmt_num, is_finite, pdf_escape_literal, str_width


log = logging.getLogger(__name__)

_HEADER = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n"


@dataclass(frozen=True)
class EmbeddedImage:
    name: str
    source: str
    data: bytes
    info: JpegInfo


def _build_obj(obj_num: int, body: bytes) -> bytes:
    return b"%d 0 obj\n" % obj_num + body + b"\nendobj\n"


def _stream_obj(dictionary: str, data: bytes) -> bytes:
    head = dictionary.rstrip()
    head = head[:-2].rstrip() + " /Length %d >>" % len(data)
    return head.encode("ascii") + b"\nstream\n" + data + b"\nendstream"


def _paint_operator(fill: bool, stroke: bool) -> str | None:
    if fill and stroke:
        # Single pass: fill first, stroke painted on top.
        return "B"
    if fill:
        return "f"
    if stroke:
        return "S"
    return None


def _is_point(value) -> bool:
    return (
        isinstance(value, (tuple, list))
        and len(value) == 2
        and all(isinstance(c, (int, float)) for c in value)
        and is_finite(*value)
    )


def _rgb(color: Color) -> str:
    return f"{color.red:.3f} {color.green:.3f} {color.blue:.3f}"


class PDFDocumentWriter:
    """
    Byte-exact PDF 1.4 writer built from primitive drawing calls.

    Each page is an accumulating content stream that lives inside a text
    object (``BT``) between graphics calls; every path, state or image call
    leaves text mode, emits its operators and re-enters it. Object numbers
    are assigned at serialization time in a fixed order:

        1 Catalog, 2 Pages, (Page, Contents) per page, F1, F2,
        one ExtGState per distinct opacity, one XObject per distinct image.

    ``to_bytes()`` works on local copies, so it can be called any number of
    times and drawing may continue afterwards.
    """

    def __init__(
        self,
        page_width: float = PAGE_WIDTH,
        page_height: float = PAGE_HEIGHT,
        top_margin: float = DEFAULT_MARGIN,
        bottom_margin: float = DEFAULT_MARGIN,
        left_margin: float = DEFAULT_MARGIN,
        right_margin: float = DEFAULT_MARGIN,
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.top_margin = top_margin
        self.bottom_margin = bottom_margin
        self.left_margin = left_margin
        self.right_margin = right_margin
        self.cursor_y = 0.0
        self._pages: list[list[str]] = []
        self._in_text = False
        self._opacity_states: dict[float, str] = {}
        self._images: dict[str, EmbeddedImage] = {}

    # ── Lifecycle ─────────────────────────────────────────────────────

    @property
    def page_count(self) -> int:
        return len(self._pages)

    @property
    def opacity_states(self) -> dict[float, str]:
        return dict(self._opacity_states)

    @property
    def images(self) -> dict[str, EmbeddedImage]:
        return dict(self._images)

    @property
    def top_of_page(self) -> float:
        return self.page_height - self.top_margin - TOP_PADDING

    def start(self) -> None:
        self._pages = []
        self._in_text = False
        self._opacity_states = {}
        self._images = {}
        self.new_page()

    def new_page(self) -> None:
        if self._pages:
            self._exit_text()
            log.debug("page %d closed at y=%s", len(self._pages), fmt_num(self.cursor_y))
        self._pages.append([])
        self._in_text = False
        self._enter_text()
        self.cursor_y = self.top_of_page

    def check_page_overflow(self, space_needed: float) -> bool:
        if self.cursor_y - space_needed < self.bottom_margin:
            self.new_page()
            return True
        return False

    def add_vertical_space(self, amount: float) -> None:
        self.cursor_y -= amount

    def _stream(self) -> list[str]:
        if not self._pages:
            self.start()
        return self._pages[-1]

    def _emit(self, *lines: str) -> None:
        self._stream().extend(lines)

    def _enter_text(self) -> None:
        if not self._in_text:
            self._pages[-1].append("BT")
            self._in_text = True

    def _exit_text(self) -> None:
        if self._in_text:
            self._pages[-1].append("ET")
            self._in_text = False

    @contextmanager
    def _graphics(self):
        self._stream()
        self._exit_text()
        try:
            yield
        finally:
            self._enter_text()

    # ── Text ──────────────────────────────────────────────────────────

    def draw_text(self, text: str, x: float, size: float, bold: bool = False) -> None:
        if not is_finite(x, size, self.cursor_y):
            log.debug("skipped text at non-finite position")
            return
        self._stream()
        self._enter_text()
        font = "/F2" if bold else "/F1"
        self._emit(
            f"{font} {fmt_num(size)} Tf",
            f"1 0 0 1 {fmt_num(x)} {fmt_num(self.cursor_y)} Tm",
            f"({pdf_escape_literal(text)}) Tj",
        )

    def draw_centered_text(self, text: str, size: float, bold: bool = False) -> None:
        x = (self.page_width - str_width(text, size)) / 2
        self.draw_text(text, x, size, bold)

    # ── Graphics state ────────────────────────────────────────────────

    def set_color(self, color: Color) -> None:
        rgb = _rgb(color)
        self._emit(f"{rgb} rg", f"{rgb} RG")

    def set_fill_color(self, color: Color) -> None:
        self._emit(f"{_rgb(color)} rg")

    def set_stroke_color(self, color: Color) -> None:
        self._emit(f"{_rgb(color)} RG")

    def set_line_width(self, width: float) -> None:
        if not is_finite(width):
            return
        with self._graphics():
            self._emit(f"{fmt_num(max(0.0, width))} w")

    def set_line_join(self, join: LineJoin | int) -> None:
        with self._graphics():
            self._emit(f"{int(join)} j")

    def set_line_cap(self, cap: LineCap | int) -> None:
        with self._graphics():
            self._emit(f"{int(cap)} J")

    def set_dash_pattern(self, pattern: Sequence[float] | None, phase: float = 0) -> None:
        values = [v for v in (pattern or ()) if is_finite(v) and v >= 0]
        with self._graphics():
            if not values or not any(values):
                self._emit("[] 0 d")
            else:
                arr = " ".join(fmt_num(v) for v in values)
                self._emit(f"[{arr}] {fmt_num(phase)} d")

    def set_opacity(self, value: float) -> str | None:
        """Select fill/stroke opacity; returns the ExtGState name used."""
        if not is_finite(value) or value >= 1.0:
            return None
        key = round(max(0.0, value), 3)
        name = self._opacity_states.get(key)
        if name is None:
            name = f"GS{len(self._opacity_states) + 1}"
            self._opacity_states[key] = name
        with self._graphics():
            self._emit(f"/{name} gs")
        return name

    def save_state(self) -> None:
        with self._graphics():
            self._emit("q")

    def restore_state(self) -> None:
        with self._graphics():
            self._emit("Q")

    # ── Paths ─────────────────────────────────────────────────────────

    def _paint(self, path_ops: Iterable[str], fill: bool, stroke: bool | None) -> None:
        op = _paint_operator(fill, (not fill) if stroke is None else stroke)
        if op is None:
            return
        with self._graphics():
            self._emit(*path_ops, op)

    @staticmethod
    def _checked_box(x: float, y: float, width: float, height: float):
        if not is_finite(x, y, width, height):
            return None
        if width <= 0 or height <= 0:
            return None
        return x, y, width, height

    def draw_line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        if not is_finite(x1, y1, x2, y2):
            log.debug("skipped line with non-finite coordinates")
            return
        with self._graphics():
            self._emit(f"{fmt_num(x1)} {fmt_num(y1)} m {fmt_num(x2)} {fmt_num(y2)} l S")

    def draw_horizontal_rule(self) -> None:
        self.draw_line(self.left_margin, self.cursor_y,
                       self.page_width - self.right_margin, self.cursor_y)

    def draw_rect(self, x: float, y: float, width: float, height: float,
                  fill: bool = False, stroke: bool | None = None) -> None:
        box = self._checked_box(x, y, width, height)
        if box is None:
            log.debug("skipped degenerate rectangle %r", (x, y, width, height))
            return
        x, y, width, height = box
        self._paint(
            [f"{fmt_num(x)} {fmt_num(y)} {fmt_num(width)} {fmt_num(height)} re"],
            fill, stroke,
        )

    def draw_rounded_rect(self, x: float, y: float, width: float, height: float,
                          radius: float, fill: bool = False,
                          stroke: bool | None = None) -> None:
        box = self._checked_box(x, y, width, height)
        if box is None:
            log.debug("skipped degenerate rounded rectangle %r", (x, y, width, height))
            return
        x, y, width, height = box
        r = min(radius, width / 2, height / 2) if is_finite(radius) else 0.0
        if r <= 0:
            self.draw_rect(x, y, width, height, fill, stroke)
            return
        k = r * BEZIER_KAPPA
        right, top = x + width, y + height
        p = fmt_num
        ops = [
            f"{p(x + r)} {p(y)} m",
            f"{p(right - r)} {p(y)} l",
            f"{p(right - r + k)} {p(y)} {p(right)} {p(y + r - k)} {p(right)} {p(y + r)} c",
            f"{p(right)} {p(top - r)} l",
            f"{p(right)} {p(top - r + k)} {p(right - r + k)} {p(top)} {p(right - r)} {p(top)} c",
            f"{p(x + r)} {p(top)} l",
            f"{p(x + r - k)} {p(top)} {p(x)} {p(top - r + k)} {p(x)} {p(top - r)} c",
            f"{p(x)} {p(y + r)} l",
            f"{p(x)} {p(y + r - k)} {p(x + r - k)} {p(y)} {p(x + r)} {p(y)} c",
            "h",
        ]
        self._paint(ops, fill, stroke)

    def draw_ellipse(self, cx: float, cy: float, rx: float, ry: float,
                     fill: bool = False, stroke: bool | None = None) -> None:
        if not is_finite(cx, cy, rx, ry) or rx <= 0 or ry <= 0:
            log.debug("skipped degenerate ellipse %r", (cx, cy, rx, ry))
            return
        kx, ky = rx * BEZIER_KAPPA, ry * BEZIER_KAPPA
        p = fmt_num
        ops = [
            f"{p(cx + rx)} {p(cy)} m",
            f"{p(cx + rx)} {p(cy + ky)} {p(cx + kx)} {p(cy + ry)} {p(cx)} {p(cy + ry)} c",
            f"{p(cx - kx)} {p(cy + ry)} {p(cx - rx)} {p(cy + ky)} {p(cx - rx)} {p(cy)} c",
            f"{p(cx - rx)} {p(cy - ky)} {p(cx - kx)} {p(cy - ry)} {p(cx)} {p(cy - ry)} c",
            f"{p(cx + kx)} {p(cy - ry)} {p(cx + rx)} {p(cy - ky)} {p(cx + rx)} {p(cy)} c",
            "h",
        ]
        self._paint(ops, fill, stroke)

    def draw_circle(self, cx: float, cy: float, radius: float,
                    fill: bool = False, stroke: bool | None = None) -> None:
        self.draw_ellipse(cx, cy, radius, radius, fill, stroke)

    def draw_polygon(self, points: Sequence[tuple[float, float]],
                     fill: bool = False, stroke: bool | None = None,
                     offset_x: float = 0, offset_y: float = 0) -> None:
        pts = [(px + offset_x, py + offset_y) for px, py in points]
        if len(pts) < 2 or not all(is_finite(px, py) for px, py in pts):
            log.debug("skipped polygon with %d usable points", len(pts))
            return
        (x0, y0), rest = pts[0], pts[1:]
        ops = [f"{fmt_num(x0)} {fmt_num(y0)} m"]
        ops.extend(f"{fmt_num(px)} {fmt_num(py)} l" for px, py in rest)
        ops.append("h")
        self._paint(ops, fill, stroke)

    def draw_path(self, segments: Sequence[PathSegment],
                  fill: bool = False, stroke: bool | None = None,
                  offset_x: float = 0, offset_y: float = 0) -> None:
        ops: list[str] = []

        def pt(point: tuple[float, float]) -> str:
            return f"{fmt_num(point[0] + offset_x)} {fmt_num(point[1] + offset_y)}"

        for seg in segments:
            if not all(_is_point(p) for p in (seg.p1, seg.p2, seg.p3)):
                log.debug("skipped path with malformed or non-finite coordinates")
                return
            if seg.command is PathCommand.MOVE_TO:
                ops.append(f"{pt(seg.p1)} m")
            elif seg.command is PathCommand.LINE_TO:
                ops.append(f"{pt(seg.p1)} l")
            elif seg.command is PathCommand.CURVE_TO:
                ops.append(f"{pt(seg.p1)} {pt(seg.p2)} {pt(seg.p3)} c")
            elif seg.command is PathCommand.CLOSE:
                ops.append("h")
        if not ops or not ops[0].endswith(" m"):
            log.debug("skipped path that does not start with a move")
            return
        self._paint(ops, fill, stroke)

    # ── Images ────────────────────────────────────────────────────────

    def embed_image(self, path: str | Path) -> str | None:
        """
        Register a JPEG file as an image XObject.

        Returns the resource name (``Im1``, ``Im2``...) or None when the file
        is missing or not a parseable JPEG. The same path always yields the
        same resource.
        """
        key = str(path)
        existing = self._images.get(key)
        if existing is not None:
            return existing.name
        loaded = read_jpeg(path)
        if loaded is None:
            return None
        data, info = loaded
        name = f"Im{len(self._images) + 1}"
        self._images[key] = EmbeddedImage(name=name, source=key, data=data, info=info)
        log.debug("embedded %s as /%s (%dx%d)", key, name, info.width, info.height)
        return name

    def draw_image(self, name: str, x: float, y: float, width: float, height: float) -> None:
        if not any(img.name == name for img in self._images.values()):
            log.warning("Unknown image resource: %s", name)
            return
        box = self._checked_box(x, y, width, height)
        if box is None:
            log.debug("skipped degenerate image box %r", (x, y, width, height))
            return
        x, y, width, height = box
        with self._graphics():
            self._emit(
                "q",
                f"{fmt_num(width)} 0 0 {fmt_num(height)} {fmt_num(x)} {fmt_num(y)} cm",
                f"/{name} Do",
                "Q",
            )

    # ── Serialization ─────────────────────────────────────────────────

    def page_stream(self, index: int) -> str:
        """Content stream text of a page, closed as it will be serialized."""
        lines = list(self._pages[index])
        if index == len(self._pages) - 1 and self._in_text:
            lines.append("ET")
        return "\n".join(lines) + "\n" if lines else ""

    def _resources(self, font_id: int, gs_first: int, img_first: int) -> str:
        parts = [
            "/ProcSet [/PDF /Text /ImageB /ImageC]",
            f"/Font << /F1 {font_id} 0 R /F2 {font_id + 1} 0 R >>",
        ]
        if self._opacity_states:
            refs = " ".join(
                f"/{name} {gs_first + i} 0 R"
                for i, name in enumerate(self._opacity_states.values())
            )
            parts.append(f"/ExtGState << {refs} >>")
        if self._images:
            refs = " ".join(
                f"/{img.name} {img_first + i} 0 R"
                for i, img in enumerate(self._images.values())
            )
            parts.append(f"/XObject << {refs} >>")
        return "<< " + " ".join(parts) + " >>"

    def _image_obj(self, image: EmbeddedImage) -> bytes:
        info = image.info
        dictionary = (
            f"<< /Type /XObject /Subtype /Image /Width {info.width} /Height {info.height} "
            f"/ColorSpace /{info.color_space} /BitsPerComponent {info.bits_per_component} "
        )
        if info.components == 4:
            # Adobe CMYK JPEGs are stored inverted.
            dictionary += "/Decode [1 0 1 0 1 0 1 0] "
        dictionary += "/Filter /DCTDecode >>"
        return _stream_obj(dictionary, image.data)

    def to_bytes(self) -> bytes:
        streams = [self.page_stream(i) for i in range(len(self._pages))] or [""]
        page_count = len(streams)
        font_id = 3 + page_count * 2
        gs_first = font_id + 2
        img_first = gs_first + len(self._opacity_states)

        bodies: list[bytes] = [
            b"<< /Type /Catalog /Pages 2 0 R >>",
            (
                "<< /Type /Pages /Kids ["
                + " ".join(f"{3 + i * 2} 0 R" for i in range(page_count))
                + f"] /Count {page_count} >>"
            ).encode("ascii"),
        ]

        resources = self._resources(font_id, gs_first, img_first)
        media_box = f"[0 0 {fmt_num(self.page_width)} {fmt_num(self.page_height)}]"
        for index, stream in enumerate(streams):
            contents_id = 4 + index * 2
            bodies.append(
                (
                    f"<< /Type /Page /Parent 2 0 R /MediaBox {media_box} "
                    f"/Contents {contents_id} 0 R /Resources {resources} >>"
                ).encode("ascii")
            )
            bodies.append(_stream_obj("<< >>", stream.encode("latin-1", errors="replace")))

        for base_font in (FONT_REGULAR, FONT_BOLD):
            bodies.append(
                f"<< /Type /Font /Subtype /Type1 /BaseFont /{base_font} "
                f"/Encoding /WinAnsiEncoding >>".encode("ascii")
            )
        for value in self._opacity_states:
            alpha = fmt_num(value)
            bodies.append(f"<< /Type /ExtGState /ca {alpha} /CA {alpha} >>".encode("ascii"))
        for image in self._images.values():
            bodies.append(self._image_obj(image))

        buf = bytearray(_HEADER)
        offsets: list[int] = []
        for obj_num, body in enumerate(bodies, start=1):
            offsets.append(len(buf))
            buf += _build_obj(obj_num, body)

        xref_offset = len(buf)
        buf += b"xref\n"
        buf += b"0 %d\n" % (len(offsets) + 1)
        buf += b"0000000000 65535 f \n"
        for off in offsets:
            buf += f"{off:010d} 00000 n \n".encode("ascii")

        buf += (
            b"trailer\n"
            + b"<< /Size %d /Root 1 0 R >>\n" % (len(offsets) + 1)
            + b"startxref\n"
            + str(xref_offset).encode("ascii")
            + b"\n%%EOF\n"
        )
        return bytes(buf)

    def save(self, out_path: str | Path) -> Path:
        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(self.to_bytes())
        return out_path
