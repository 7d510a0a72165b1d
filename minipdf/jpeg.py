from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .constants import SOF_MARKERS


log = logging.getLogger(__name__)

_SOI = b"\xff\xd8"
_EOI = 0xD9
_SOS = 0xDA
# Markers that carry no length field.
_STANDALONE = frozenset({0x01, *range(0xD0, 0xD8)})

_COLOR_SPACES = {1: "DeviceGray", 3: "DeviceRGB", 4: "DeviceCMYK"}


@dataclass(frozen=True)
class JpegInfo:
    width: int
    height: int
    components: int = 3
    bits_per_component: int = 8

    @property
    def color_space(self) -> str:
        return _COLOR_SPACES.get(self.components, "DeviceRGB")


def parse_jpeg_header(data: bytes) -> JpegInfo | None:
    """
    Walk the marker segments of a JPEG stream up to the first SOF marker.

    Only the frame header is read; pixel data is never decoded. Returns None
    when the data is not a JPEG or when scan data / end of image is reached
    before any frame header.
    """
    if not data.startswith(_SOI):
        return None

    pos = 2
    size = len(data)
    while pos + 1 < size:
        if data[pos] != 0xFF:
            return None
        marker = data[pos + 1]
        if marker == 0xFF:
            # Fill byte before the actual marker code.
            pos += 1
            continue
        if marker in (_EOI, _SOS):
            return None
        if marker in _STANDALONE:
            pos += 2
            continue
        if pos + 4 > size:
            return None
        length = int.from_bytes(data[pos + 2 : pos + 4], "big")
        if length < 2:
            return None
        if marker in SOF_MARKERS:
            if length < 8 or pos + 10 > size:
                return None
            precision = data[pos + 4]
            height = int.from_bytes(data[pos + 5 : pos + 7], "big")
            width = int.from_bytes(data[pos + 7 : pos + 9], "big")
            components = data[pos + 9]
            if width == 0 or height == 0:
                return None
            return JpegInfo(
                width=width,
                height=height,
                components=components,
                bits_per_component=precision,
            )
        pos += 2 + length
    return None


def read_jpeg(path: str | Path) -> tuple[bytes, JpegInfo] | None:
    """Read a JPEG file and its frame header; None if missing or unparseable."""
    file_path = Path(path)
    if not file_path.is_file():
        log.warning("Image not found: %s", file_path)
        return None
    try:
        data = file_path.read_bytes()
    except OSError as e:
        log.warning("Failed to read image %s (%s)", file_path, e)
        return None
    info = parse_jpeg_header(data)
    if info is None:
        log.warning("Not a supported JPEG (no frame header found): %s", file_path)
        return None
    return data, info
