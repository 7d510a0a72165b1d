PAGE_WIDTH = 595
PAGE_HEIGHT = 842

# An element margin equal to this value means "inherit the page margin".
DEFAULT_MARGIN = 50.0
# Room left above the first line so large glyphs are not clipped.
TOP_PADDING = 30.0

FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

# Approximate glyph advance as a fraction of the font size.
CHAR_WIDTH_FACTOR = 0.6

# Control-point offset for a quarter circle drawn as one cubic Bezier.
BEZIER_KAPPA = 0.552284749831

DEFAULT_SPACER = 20.0
DIVIDER_GAP = 10.0
DASHED_BORDER = (3.0, 3.0)

LARGE_FONT_THRESHOLD = 50
LARGE_FONT_PADDING_FACTOR = 0.3

SOF_MARKERS = frozenset({
    0xC0, 0xC1, 0xC2, 0xC3,
    0xC5, 0xC6, 0xC7,
    0xC9, 0xCA, 0xCB,
    0xCD, 0xCE, 0xCF,
})
