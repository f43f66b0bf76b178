#!/usr/bin/env python3
"""
Amendment Layout Engine
Lays out letterhead, title, justified body text, the portfolio table and signature blocks on US Letter pages.
"""

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, Table, TableStyle

from layout_params import PageLayout, RGB
from portfolio_table import TableContent


class LayoutError(Exception):
    """Raised when the document cannot be laid out or drawn."""


class LayoutStage(Enum):
    """Rendering stages, in the only order they may run."""
    LETTERHEAD = 1
    TITLE = 2
    BODY = 3
    TABLE = 4
    SIGNATURES = 5
    FINALIZED = 6


@dataclass
class DocumentContent:
    """Resolved text and table content of one document."""
    title: str
    body: str
    signature_left: str
    signature_right: str
    table: TableContent


@dataclass
class SignaturePlacement:
    y: float
    new_page: bool


@dataclass
class RenderedDocument:
    """A finished PDF plus where its main blocks ended up (positions in mm from page top)."""
    pdf_bytes: bytes
    page_count: int
    body_end_y: float
    table_end_y: float
    table_end_page: int
    signature_y: float
    signature_page: int
    signatures_on_new_page: bool


def _color(rgb: RGB) -> colors.Color:
    return colors.Color(rgb[0] / 255.0, rgb[1] / 255.0, rgb[2] / 255.0)


def _break_word(word: str, max_width: float, font_name: str, font_size: float) -> List[str]:
    if stringWidth(word, font_name, font_size) <= max_width:
        return [word]
    pieces = []
    current = ""
    for char in word:
        if current and stringWidth(current + char, font_name, font_size) > max_width:
            pieces.append(current)
            current = char
        else:
            current += char
    pieces.append(current)
    return pieces


def wrap_paragraph(text: str, max_width: float, font_name: str, font_size: float) -> List[str]:
    """
    Greedy word wrap of one paragraph to max_width points.

    An empty paragraph yields a single empty line so blank lines in the
    body still take up vertical space. Words wider than a line are broken
    by character.
    """
    words = text.split()
    if not words:
        return [""]

    lines = []
    current = ""
    for word in words:
        for piece in _break_word(word, max_width, font_name, font_size):
            candidate = f"{current} {piece}" if current else piece
            if not current or stringWidth(candidate, font_name, font_size) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = piece
    lines.append(current)
    return lines


def signature_lines(text: str) -> List[str]:
    return text.replace('\r\n', '\n').split('\n') if text else []


def signature_block_height(left: str, right: str, layout: PageLayout) -> float:
    """Height the two signature columns need, never below the fixed minimum."""
    tallest = max(len(signature_lines(left)), len(signature_lines(right)))
    return max(layout.signature_min_height, tallest * layout.line_height)


def place_signature_block(table_end_y: float, block_height: float,
                          layout: PageLayout) -> SignaturePlacement:
    """
    Decide where the signature block starts.

    It goes a fixed gap below the table; when it would run past the page
    height it moves to the top offset of a new page instead.
    """
    y = table_end_y + layout.signature_gap
    if y + block_height > layout.page_height:
        return SignaturePlacement(y=layout.signature_top, new_page=True)
    return SignaturePlacement(y=y, new_page=False)


class _PageCursor:
    """Per-render drawing state: canvas, current page and vertical position."""

    def __init__(self, pdf: canvas.Canvas, layout: PageLayout,
                 letterhead: Optional[ImageReader], stamp):
        self.canvas = pdf
        self.layout = layout
        self.letterhead = letterhead
        self._stamp = stamp
        self.page_number = 1
        self.y = 0.0
        self.fresh_page = True
        self.stage = None

    def enter(self, stage: LayoutStage):
        if self.stage is not None and stage.value <= self.stage.value:
            raise LayoutError(f"Cannot move from {self.stage.name} back to {stage.name}")
        self.stage = stage

    def pdf_y(self, y: Optional[float] = None) -> float:
        """Convert a top-origin mm position to a bottom-origin point position."""
        return (self.layout.page_height - (self.y if y is None else y)) * mm

    def new_page(self, top: float):
        self.canvas.showPage()
        self.page_number += 1
        self._stamp(self)
        self.y = top
        self.fresh_page = True


class LayoutEngine:
    """
    Draws an amendment document onto a single PDF.

    Every call to render works on its own canvas and cursor, so one engine
    can be shared between independent generation calls.
    """

    def __init__(self, layout: Optional[PageLayout] = None, debug: bool = False):
        self.debug = debug
        self.layout = layout or PageLayout()
        self.logger = self._setup_logger()

    def _setup_logger(self):
        """Set up logging for the layout engine."""
        logger = logging.getLogger('LayoutEngine')
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(levelname)s - %(message)s')
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False
        logger.setLevel(logging.DEBUG if self.debug else logging.INFO)
        return logger

    def render(self, content: DocumentContent,
               letterhead: Optional[ImageReader] = None) -> RenderedDocument:
        """Lay out and draw the whole document; returns the PDF bytes and block positions."""
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=self.layout.page_size)
        pdf.setTitle(content.title)
        cursor = _PageCursor(pdf, self.layout, letterhead, self._stamp_letterhead)

        try:
            cursor.enter(LayoutStage.LETTERHEAD)
            self._stamp_letterhead(cursor)

            cursor.enter(LayoutStage.TITLE)
            self._draw_title(cursor, content.title)

            cursor.enter(LayoutStage.BODY)
            self._draw_body(cursor, content.body)
            body_end_y = cursor.y

            cursor.enter(LayoutStage.TABLE)
            self._draw_table(cursor, content.table)
            table_end_y = cursor.y
            table_end_page = cursor.page_number

            cursor.enter(LayoutStage.SIGNATURES)
            placement = self._draw_signatures(cursor, content.signature_left,
                                              content.signature_right)

            cursor.enter(LayoutStage.FINALIZED)
            pdf.save()
        except LayoutError:
            raise
        except Exception as e:
            raise LayoutError(f"Failed to draw document '{content.title}': {e}") from e

        self.logger.debug(f"📐 Layout finished: {cursor.page_number} page(s), table ends at "
                          f"{table_end_y:.1f}mm on page {table_end_page}")

        return RenderedDocument(
            pdf_bytes=buffer.getvalue(),
            page_count=cursor.page_number,
            body_end_y=body_end_y,
            table_end_y=table_end_y,
            table_end_page=table_end_page,
            signature_y=placement.y,
            signature_page=cursor.page_number,
            signatures_on_new_page=placement.new_page,
        )

    # Drawing stages

    def _stamp_letterhead(self, cursor: _PageCursor):
        """Stretch the letterhead over the whole page, behind everything else."""
        if cursor.letterhead is None:
            return
        width, height = self.layout.page_size
        try:
            cursor.canvas.drawImage(cursor.letterhead, 0, 0, width=width, height=height)
        except Exception as e:
            raise LayoutError(f"Could not stamp letterhead on page {cursor.page_number}: {e}") from e

    def _draw_title(self, cursor: _PageCursor, title: str):
        layout = self.layout
        pdf = cursor.canvas
        pdf.setFont(layout.bold_font_name, layout.title_font_size)
        pdf.setFillColorRGB(0, 0, 0)
        cursor.y = layout.title_y
        pdf.drawCentredString(layout.page_width * mm / 2, cursor.pdf_y(),
                              ' '.join(title.splitlines()))
        cursor.y += layout.title_gap
        cursor.fresh_page = False

    def _draw_body(self, cursor: _PageCursor, body: str):
        """
        Draw the body paragraph by paragraph.

        Every wrapped line but the last of its paragraph is justified to the
        printable width; the last one is left-aligned.
        """
        layout = self.layout
        width = layout.printable_width * mm
        font, size = layout.font_name, layout.body_font_size

        for paragraph in body.replace('\r\n', '\n').split('\n'):
            lines = wrap_paragraph(paragraph, width, font, size)
            for index, line in enumerate(lines):
                if cursor.y > layout.bottom_limit:
                    cursor.new_page(top=layout.table_top)
                is_last_line = index == len(lines) - 1
                self._draw_text_line(cursor, line, width, justify=not is_last_line)
                cursor.y += layout.line_height
                cursor.fresh_page = False

        cursor.y += layout.body_bottom_gap

    def _draw_text_line(self, cursor: _PageCursor, line: str, width: float, justify: bool):
        layout = self.layout
        text = cursor.canvas.beginText(layout.margin * mm, cursor.pdf_y())
        text.setFont(layout.font_name, layout.body_font_size)
        text.setFillColorRGB(0, 0, 0)

        gaps = line.count(' ')
        if justify and gaps:
            natural = stringWidth(line, layout.font_name, layout.body_font_size)
            text.setWordSpace((width - natural) / gaps)

        text.textOut(line)
        cursor.canvas.drawText(text)

    def _draw_table(self, cursor: _PageCursor, content: TableContent):
        """Draw the table from the cursor, continuing on new pages while it overflows."""
        if content.column_count == 0:
            self.logger.warning("⚠️ No visible columns - table skipped")
            return

        layout = self.layout
        avail_width = layout.printable_width * mm
        pending = self.build_table(content)

        while pending is not None:
            avail_height = (layout.bottom_limit - cursor.y) * mm
            _, height = pending.wrapOn(cursor.canvas, avail_width, avail_height)
            if height <= avail_height:
                self._place_table(cursor, pending, height)
                pending = None
                continue

            parts = pending.split(avail_width, avail_height)
            if len(parts) < 2:
                if cursor.fresh_page:
                    raise LayoutError("A table row is taller than a full page")
                cursor.new_page(top=layout.table_top)
                continue

            first, pending = parts[0], parts[1]
            _, first_height = first.wrapOn(cursor.canvas, avail_width, avail_height)
            self._place_table(cursor, first, first_height)
            self.logger.debug(f"Table continues on page {cursor.page_number + 1}")
            cursor.new_page(top=layout.table_top)

    def _place_table(self, cursor: _PageCursor, table: Table, height: float):
        table.drawOn(cursor.canvas, self.layout.margin * mm, cursor.pdf_y() - height)
        cursor.y += height / mm
        cursor.fresh_page = False

    def _draw_signatures(self, cursor: _PageCursor, left: str, right: str) -> SignaturePlacement:
        """Draw both signature blocks, each centered in its half of the page."""
        layout = self.layout
        height = signature_block_height(left, right, layout)
        placement = place_signature_block(cursor.y, height, layout)

        if placement.new_page:
            self.logger.debug("✍️ Signatures do not fit - moving them to a new page")
            cursor.new_page(top=placement.y)
        else:
            cursor.y = placement.y

        pdf = cursor.canvas
        pdf.setFont(layout.bold_font_name, layout.signature_font_size)
        pdf.setFillColorRGB(0, 0, 0)
        page_width = layout.page_width * mm

        for center_x, text in ((page_width / 4, left), (page_width / 4 * 3, right)):
            y = placement.y
            for line in signature_lines(text):
                pdf.drawCentredString(center_x, cursor.pdf_y(y), line)
                y += layout.line_height

        cursor.fresh_page = False
        return placement

    # Table construction

    def _cell_styles(self) -> Tuple[ParagraphStyle, ParagraphStyle, ParagraphStyle, ParagraphStyle]:
        layout = self.layout
        size = layout.table_font_size
        body = ParagraphStyle('PortfolioBody', fontName=layout.font_name, fontSize=size,
                              leading=size * 1.15, alignment=TA_CENTER)
        head = ParagraphStyle('PortfolioHead', parent=body, fontName=layout.bold_font_name,
                              textColor=_color(layout.header_text))
        foot = ParagraphStyle('PortfolioFoot', parent=body, fontName=layout.bold_font_name)
        foot_left = ParagraphStyle('PortfolioFootLeft', parent=foot, alignment=TA_LEFT)
        return body, head, foot, foot_left

    def column_widths(self, content: TableContent) -> List[float]:
        """
        Share the printable width between columns in proportion to their content.

        Natural width is the widest cell of the column plus padding.
        """
        layout = self.layout
        size = layout.table_font_size
        padding = 2 * layout.table_cell_padding * mm

        natural = []
        for col in range(content.column_count):
            widths = [stringWidth(content.header[col], layout.bold_font_name, size),
                      stringWidth(content.footer[col], layout.bold_font_name, size)]
            widths.extend(stringWidth(row[col], layout.font_name, size) for row in content.body_rows)
            natural.append(max(widths) + padding)

        total = sum(natural)
        available = layout.printable_width * mm
        return [width * available / total for width in natural]

    def table_style_commands(self, content: TableContent) -> list:
        """Padding, fills and highlight commands for the portfolio table."""
        layout = self.layout
        padding = layout.table_cell_padding * mm
        body_count = len(content.body_rows)
        footer_row = body_count + 1

        commands = [
            ('LEFTPADDING', (0, 0), (-1, -1), padding),
            ('RIGHTPADDING', (0, 0), (-1, -1), padding),
            ('TOPPADDING', (0, 0), (-1, -1), padding),
            ('BOTTOMPADDING', (0, 0), (-1, -1), padding),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('BACKGROUND', (0, 0), (-1, 0), _color(layout.header_fill)),
        ]
        if body_count:
            commands.append(('ROWBACKGROUNDS', (0, 1), (-1, body_count),
                             [colors.white, _color(layout.stripe_fill)]))
        for position in sorted(content.highlighted_body_rows):
            row = position + 1
            commands.append(('BACKGROUND', (0, row), (-1, row), _color(layout.highlight_fill)))
        commands.append(('BACKGROUND', (0, footer_row), (-1, footer_row), _color(layout.footer_fill)))
        return commands

    def build_table(self, content: TableContent) -> Table:
        """Build the reportlab table: header row, body rows, one totals row."""
        body_style, head_style, foot_style, foot_left_style = self._cell_styles()

        def cell(text: str, style: ParagraphStyle) -> Paragraph:
            return Paragraph(escape(text), style)

        data = [[cell(text, head_style) for text in content.header]]
        data.extend([cell(text, body_style) for text in row] for row in content.body_rows)
        data.append([
            cell(text, foot_left_style if col in content.left_aligned_footer_columns else foot_style)
            for col, text in enumerate(content.footer)
        ])

        table = Table(data, colWidths=self.column_widths(content), repeatRows=1)
        table.setStyle(TableStyle(self.table_style_commands(content)))
        return table
