"""
Page Layout Parameters for Amendment Documents

Geometric values are in millimetres measured from the top-left corner of the
page, the way the layout engine tracks its vertical cursor. Font sizes are
in points.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Tuple

from reportlab.lib.pagesizes import letter
from reportlab.lib.units import mm

RGB = Tuple[int, int, int]


@dataclass
class PageLayout:
    """Every geometric/typographic constant of the generated document."""

    # Page (US Letter portrait, 215.9 x 279.4 mm)
    page_width: float = letter[0] / mm
    page_height: float = letter[1] / mm
    margin: float = 15.0

    # Title
    title_y: float = 40.0
    title_font_size: float = 16.0
    title_gap: float = 10.0            # title baseline -> first body line

    # Body text
    body_font_size: float = 11.0
    line_height: float = 5.0
    body_bottom_gap: float = 2.0       # last body line -> table top

    # Table
    table_font_size: float = 8.0
    table_cell_padding: float = 2.0
    table_top: float = 15.0            # table top on continuation pages
    header_fill: RGB = (41, 75, 160)
    header_text: RGB = (255, 255, 255)
    stripe_fill: RGB = (245, 245, 245)
    footer_fill: RGB = (240, 240, 240)
    highlight_fill: RGB = (255, 240, 100)

    # Signatures
    signature_font_size: float = 11.0
    signature_gap: float = 30.0        # table bottom -> first signature line
    signature_min_height: float = 30.0
    signature_top: float = 60.0        # first signature line on a fresh page

    # Fonts (standard PDF Type 1 faces)
    font_name: str = "Helvetica"
    bold_font_name: str = "Helvetica-Bold"

    @property
    def printable_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def bottom_limit(self) -> float:
        """Lowest cursor position content may reach before a page break."""
        return self.page_height - self.margin

    @property
    def page_size(self) -> Tuple[float, float]:
        """Page size in points for the PDF canvas."""
        return (self.page_width * mm, self.page_height * mm)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
