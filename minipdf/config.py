"""
JSON layout descriptions.

A layout file is an object with optional ``file_name`` and ``margins`` and a
list of ``pages``; each page holds a ``name``, optional ``margins`` and an
ordered list of ``elements`` tagged by ``type``. A top-level ``elements``
list (no pages) is accepted for single-page reports.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import fields
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any

from reportlab.lib.colors import Color, toColor

from .exceptions import LayoutError
from .models import (
    Alignment,
    BorderStyle,
    DividerElement,
    Element,
    ImageElement,
    LineCap,
    LineJoin,
    Margins,
    Page,
    PathCommand,
    PathSegment,
    ShapeElement,
    ShapeKind,
    SpacerElement,
    TableCell,
    TableElement,
    TableRow,
    TextElement,
    VerticalAlignment,
)
from .report import DEFAULT_FILE_NAME, Report


log = logging.getLogger(__name__)

ELEMENT_TYPES: dict[str, type[Element]] = {
    "text": TextElement,
    "divider": DividerElement,
    "spacer": SpacerElement,
    "vertical_space": SpacerElement,
    "table": TableElement,
    "shape": ShapeElement,
    "image": ImageElement,
}
_TYPE_NAMES = {
    TextElement: "text",
    DividerElement: "divider",
    SpacerElement: "spacer",
    TableElement: "table",
    ShapeElement: "shape",
    ImageElement: "image",
}

# Older layouts call the vertical spacing "margins".
FIELD_ALIASES = {"top_margin": "spacing_before", "bottom_margin": "spacing_after"}

_COLOR_FIELDS = {
    "color", "border_color", "header_color", "fill_color", "stroke_color", "background_color",
}
_ENUM_FIELDS: dict[str, type[Enum]] = {
    "alignment": Alignment,
    "vertical_alignment": VerticalAlignment,
    "border_style": BorderStyle,
    "kind": ShapeKind,
    "line_join": LineJoin,
    "line_cap": LineCap,
    "command": PathCommand,
}
_FLOAT_LIST_FIELDS = {"column_widths", "dash_pattern"}


# ── Scalars ───────────────────────────────────────────────────────────

def parse_color(value: Any, where: str = "color") -> Color:
    if isinstance(value, Color):
        return value
    if isinstance(value, (list, tuple)):
        if len(value) not in (3, 4):
            raise LayoutError(f"{where}: expected [r, g, b] or [r, g, b, a], got {value!r}")
        try:
            return Color(*(float(v) for v in value))
        except (TypeError, ValueError) as e:
            raise LayoutError(f"{where}: invalid color {value!r}") from e
    if isinstance(value, str):
        try:
            return toColor(value)
        except ValueError as e:
            raise LayoutError(f"{where}: invalid color {value!r}") from e
    raise LayoutError(f"{where}: invalid color {value!r}")


def _parse_enum(enum_cls: type[Enum], value: Any, where: str) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        if issubclass(enum_cls, IntEnum):
            if isinstance(value, int):
                return enum_cls(value)
            return enum_cls[str(value).upper()]
        return enum_cls(str(value).lower())
    except (KeyError, ValueError) as e:
        choices = ", ".join(m.name.lower() for m in enum_cls)
        raise LayoutError(f"{where}: invalid value {value!r} (expected one of: {choices})") from e


def _parse_point(value: Any, where: str) -> tuple[float, float]:
    try:
        x, y = value
        return float(x), float(y)
    except (TypeError, ValueError) as e:
        raise LayoutError(f"{where}: expected [x, y], got {value!r}") from e


def _parse_number(value: Any, where: str) -> float:
    if isinstance(value, bool):
        raise LayoutError(f"{where}: expected a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise LayoutError(f"{where}: expected a number, got {value!r}") from e
    if not math.isfinite(number):
        raise LayoutError(f"{where}: expected a finite number, got {value!r}")
    return number


def _parse_int(value: Any, where: str) -> int:
    number = _parse_number(value, where)
    if not number.is_integer():
        raise LayoutError(f"{where}: expected a whole number, got {value!r}")
    return int(number)


def _expect_list(value: Any, where: str) -> list:
    if not isinstance(value, list):
        raise LayoutError(f"{where}: expected a list, got {value!r}")
    return value


def _parse_float_list(value: Any, where: str) -> list[float]:
    if not isinstance(value, (list, tuple)):
        raise LayoutError(f"{where}: expected a list of numbers, got {value!r}")
    try:
        return [float(v) for v in value]
    except (TypeError, ValueError) as e:
        raise LayoutError(f"{where}: expected a list of numbers, got {value!r}") from e


# ── Compound values ───────────────────────────────────────────────────

def _build_dataclass(cls, data: dict, where: str):
    # Postponed annotations arrive as strings ("float", "int", ...).
    known = {
        f.name: f.type if isinstance(f.type, str) else getattr(f.type, "__name__", "")
        for f in fields(cls)
    }
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            raise LayoutError(f"{where}: unknown field '{key}'")
        kwargs[key] = _convert_field(key, value, f"{where}.{key}", known[key])
    return cls(**kwargs)


def _parse_cell(value: Any, where: str) -> TableCell:
    if isinstance(value, str):
        return TableCell(text=value)
    if not isinstance(value, dict):
        raise LayoutError(f"{where}: expected a string or an object")
    return _build_dataclass(TableCell, value, where)


def _parse_row(value: Any, where: str) -> TableRow:
    if isinstance(value, dict):
        value = value.get("cells", [])
    if not isinstance(value, list):
        raise LayoutError(f"{where}: expected a list of cells")
    return TableRow(cells=[_parse_cell(c, f"{where}[{i}]") for i, c in enumerate(value)])


def _parse_segment(value: Any, where: str) -> PathSegment:
    if not isinstance(value, dict) or "command" not in value:
        raise LayoutError(f"{where}: expected an object with a 'command'")
    return _build_dataclass(PathSegment, value, where)


def _convert_field(key: str, value: Any, where: str, type_name: str = "") -> Any:
    if key in _COLOR_FIELDS:
        return parse_color(value, where)
    if key in _ENUM_FIELDS:
        return _parse_enum(_ENUM_FIELDS[key], value, where)
    if key in _FLOAT_LIST_FIELDS:
        return _parse_float_list(value, where)
    if key == "custom_position":
        return None if value is None else _parse_point(value, where)
    if key in ("p1", "p2", "p3"):
        return (0.0, 0.0) if value is None else _parse_point(value, where)
    if key == "points":
        return [_parse_point(p, f"{where}[{i}]") for i, p in enumerate(_expect_list(value, where))]
    if key == "segments":
        return [_parse_segment(s, f"{where}[{i}]") for i, s in enumerate(_expect_list(value, where))]
    if key == "rows":
        return [_parse_row(r, f"{where}[{i}]") for i, r in enumerate(_expect_list(value, where))]
    if key == "text":
        return "" if value is None else str(value)
    if type_name == "float":
        return _parse_number(value, where)
    if type_name == "int":
        return _parse_int(value, where)
    if type_name == "bool":
        if not isinstance(value, bool):
            raise LayoutError(f"{where}: expected true or false, got {value!r}")
        return value
    if type_name == "str":
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise LayoutError(f"{where}: expected a string, got {value!r}")
        return str(value)
    return value


def element_from_dict(data: Any, where: str = "element") -> Element:
    if not isinstance(data, dict):
        raise LayoutError(f"{where}: expected an object")
    data = dict(data)
    type_name = str(data.pop("type", "text")).lower()
    cls = ELEMENT_TYPES.get(type_name)
    if cls is None:
        raise LayoutError(f"{where}: unknown element type '{type_name}'")
    for alias, target in FIELD_ALIASES.items():
        if alias in data:
            aliased = data.pop(alias)
            data.setdefault(target, aliased)
    return _build_dataclass(cls, data, f"{where}({type_name})")


def _parse_margins(data: Any, where: str) -> dict[str, float]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise LayoutError(f"{where}: expected an object")
    unknown = set(data) - {"top", "bottom", "left", "right"}
    if unknown:
        raise LayoutError(f"{where}: unknown margin(s): {', '.join(sorted(unknown))}")
    try:
        return {k: float(v) for k, v in data.items()}
    except (TypeError, ValueError) as e:
        raise LayoutError(f"{where}: margins must be numbers") from e


def page_from_dict(data: Any, where: str = "page") -> Page:
    if not isinstance(data, dict):
        raise LayoutError(f"{where}: expected an object")
    margins = _parse_margins(data.get("margins"), f"{where}.margins")
    elements = data.get("elements", [])
    if not isinstance(elements, list):
        raise LayoutError(f"{where}.elements: expected a list")
    return Page(
        name=str(data.get("name", "New Page")),
        elements=[element_from_dict(e, f"{where}.elements[{i}]") for i, e in enumerate(elements)],
        top_margin=margins.get("top"),
        bottom_margin=margins.get("bottom"),
        left_margin=margins.get("left"),
        right_margin=margins.get("right"),
    )


def layout_from_dict(data: Any, base_dir: Path | None = None) -> Report:
    """
    Build a :class:`Report` from parsed JSON.

    Relative image paths are resolved against ``base_dir`` when given.
    """
    if not isinstance(data, dict):
        raise LayoutError("layout: expected a JSON object at the top level")
    report = Report(
        file_name=str(data.get("file_name", DEFAULT_FILE_NAME)),
        margins=Margins(**_parse_margins(data.get("margins"), "margins")),
    )
    pages = data.get("pages", [])
    if not isinstance(pages, list):
        raise LayoutError("pages: expected a list")
    report.pages = [page_from_dict(p, f"pages[{i}]") for i, p in enumerate(pages)]
    flat = data.get("elements", [])
    if not isinstance(flat, list):
        raise LayoutError("elements: expected a list")
    report.elements = [element_from_dict(e, f"elements[{i}]") for i, e in enumerate(flat)]

    if base_dir is not None:
        all_elements = [e for page in report.pages for e in page.elements] + report.elements
        for element in all_elements:
            if isinstance(element, ImageElement) and element.path:
                image_path = Path(element.path)
                if not image_path.is_absolute():
                    element.path = str(base_dir / image_path)
    return report


def load_layout(path: str | Path) -> Report:
    layout_path = Path(path)
    try:
        text = layout_path.read_text(encoding="utf-8")
    except OSError as e:
        raise LayoutError(f"cannot read layout file {layout_path}: {e}") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LayoutError(f"{layout_path}: invalid JSON ({e})") from e
    report = layout_from_dict(data, base_dir=layout_path.parent)
    log.debug("loaded %d page(s) from %s", len(report.pages), layout_path)
    return report


# ── Dumping ───────────────────────────────────────────────────────────

def _dump_value(value: Any) -> Any:
    if isinstance(value, Color):
        rgb = [round(value.red, 4), round(value.green, 4), round(value.blue, 4)]
        alpha = getattr(value, "alpha", 1)
        return rgb if alpha == 1 else [*rgb, round(alpha, 4)]
    if isinstance(value, IntEnum):
        return value.name.lower()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, TableRow):
        return {"cells": [_dump_dataclass(c) for c in value.cells]}
    if isinstance(value, (TableCell, PathSegment)):
        return _dump_dataclass(value)
    if isinstance(value, (list, tuple)):
        return [_dump_value(v) for v in value]
    return value


def _dump_dataclass(obj: Any) -> dict[str, Any]:
    defaults = type(obj)(**({"command": obj.command} if isinstance(obj, PathSegment) else {}))
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if f.name != "command" and _dump_value(value) == _dump_value(getattr(defaults, f.name)):
            continue
        out[f.name] = _dump_value(value)
    return out


def element_to_dict(element: Element) -> dict[str, Any]:
    type_name = _TYPE_NAMES.get(type(element))
    if type_name is None:
        raise LayoutError(f"cannot serialize element type {type(element).__name__}")
    return {"type": type_name, **_dump_dataclass(element)}


def layout_to_dict(report: Report) -> dict[str, Any]:
    pages = []
    for page in report.pages:
        item: dict[str, Any] = {
            "name": page.name,
            "elements": [element_to_dict(e) for e in page.elements],
        }
        margins = {
            side: getattr(page, f"{side}_margin")
            for side in ("top", "bottom", "left", "right")
            if getattr(page, f"{side}_margin") is not None
        }
        if margins:
            item["margins"] = margins
        pages.append(item)
    data: dict[str, Any] = {
        "file_name": report.file_name,
        "margins": {
            "top": report.margins.top,
            "bottom": report.margins.bottom,
            "left": report.margins.left,
            "right": report.margins.right,
        },
        "pages": pages,
    }
    if report.elements:
        data["elements"] = [element_to_dict(e) for e in report.elements]
    return data
