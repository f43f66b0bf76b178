"""
Tests for the layout engine: wrapping, signature placement, table styling and rendering.
"""
import io

import pdfplumber
import pytest
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth

from amendment_models import ColumnConfig
from layout_engine import (DocumentContent, LayoutEngine, LayoutError, LayoutStage, _PageCursor,
                           place_signature_block, signature_block_height, wrap_paragraph)
from layout_params import PageLayout
from portfolio_table import TableContent, build_table_content
from value_formatter import ColumnKind

LAYOUT = PageLayout()

COLUMNS = [
    ColumnConfig("Loan Account"),
    ColumnConfig("Borrower Name"),
    ColumnConfig("Loan Balance", kind=ColumnKind.CURRENCY),
]


def make_rows(count):
    return [{"Loan Account": f"ML-{i:03d}", "Borrower Name": f"Borrower {i}",
             "Loan Balance": 1000 * (i + 1)} for i in range(count)]


def make_content(body="Summary below:", rows=None, signature_right="Ana\nCo-Investor"):
    rows = make_rows(2) if rows is None else rows
    return DocumentContent(
        title="Amendment - Test",
        body=body,
        signature_left="Diego Felipe Quesada\nManager",
        signature_right=signature_right,
        table=build_table_content(rows, COLUMNS),
    )


def page_texts(pdf_bytes):
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        return [page.extract_text() or "" for page in pdf.pages]


class TestWrapParagraph:
    """Greedy word wrap."""

    def test_empty_paragraph_keeps_a_line(self):
        assert wrap_paragraph("", 200, "Helvetica", 11) == [""]
        assert wrap_paragraph("   ", 200, "Helvetica", 11) == [""]

    def test_short_text_single_line(self):
        assert wrap_paragraph("Hello there", 500, "Helvetica", 11) == ["Hello there"]

    def test_lines_fit_width(self):
        text = " ".join(["portfolio"] * 60)
        lines = wrap_paragraph(text, 150, "Helvetica", 11)
        assert len(lines) > 1
        assert all(stringWidth(line, "Helvetica", 11) <= 150 for line in lines)
        assert " ".join(lines) == text

    def test_long_word_is_broken(self):
        lines = wrap_paragraph("x" * 300, 100, "Helvetica", 11)
        assert len(lines) > 1
        assert "".join(lines) == "x" * 300
        assert all(stringWidth(line, "Helvetica", 11) <= 100 for line in lines)


class TestSignaturePlacement:
    """Signatures move to a new page when they would run past the page."""

    def test_fits_on_same_page(self):
        placement = place_signature_block(200, 30, LAYOUT)
        assert placement.new_page is False
        assert placement.y == 230

    def test_moves_to_new_page(self):
        placement = place_signature_block(230, 30, LAYOUT)
        assert placement.new_page is True
        assert placement.y == LAYOUT.signature_top

    def test_block_height_has_minimum(self):
        assert signature_block_height("A\nB", "C", LAYOUT) == 30
        assert signature_block_height("\n".join("abcdefgh"), "", LAYOUT) == 40

    def test_taller_block_moves_earlier(self):
        tall = signature_block_height("\n".join("abcdefgh"), "", LAYOUT)
        assert place_signature_block(215, 30, LAYOUT).new_page is False
        assert place_signature_block(215, tall, LAYOUT).new_page is True


class TestTableStyle:
    """Fill commands for header, stripes, highlights and footer."""

    @staticmethod
    def backgrounds(commands):
        return {cmd[1][1]: cmd[3].rgb() for cmd in commands if cmd[0] == "BACKGROUND"}

    def test_highlight_row_fill(self):
        content = TableContent(header=["A"], body_rows=[["1"], ["2"], ["3"]], footer=["Totals"],
                               highlighted_body_rows=frozenset({1}))
        fills = self.backgrounds(LayoutEngine().table_style_commands(content))
        assert fills[2] == pytest.approx((1.0, 240 / 255, 100 / 255))
        assert 1 not in fills and 3 not in fills
        assert fills[0] == pytest.approx((41 / 255, 75 / 255, 160 / 255))
        assert fills[4] == pytest.approx((240 / 255, 240 / 255, 240 / 255))

    def test_no_highlights(self):
        content = TableContent(header=["A"], body_rows=[["1"], ["2"]], footer=["Totals"])
        fills = self.backgrounds(LayoutEngine().table_style_commands(content))
        assert sorted(fills) == [0, 3]

    def test_column_widths_fill_printable_width(self):
        content = build_table_content(make_rows(3), COLUMNS)
        widths = LayoutEngine().column_widths(content)
        assert len(widths) == 3
        assert sum(widths) == pytest.approx(LAYOUT.printable_width * 72 / 25.4)


class TestRender:
    """End-to-end drawing into PDF bytes."""

    def test_single_page_document(self):
        result = LayoutEngine().render(make_content())
        assert result.pdf_bytes.startswith(b"%PDF")
        assert result.page_count == 1
        assert result.signatures_on_new_page is False
        assert result.signature_y == pytest.approx(result.table_end_y + LAYOUT.signature_gap)

        text = page_texts(result.pdf_bytes)[0]
        assert "Amendment - Test" in text
        assert "ML-001" in text
        assert "$3,000.00" in text
        assert "Diego Felipe Quesada" in text

    def test_table_near_bottom_pushes_signatures_to_new_page(self):
        body = "\n".join(f"Line {i}" for i in range(34))
        result = LayoutEngine().render(make_content(body=body))
        assert result.table_end_page == 1
        assert result.table_end_y > LAYOUT.page_height - 2 * LAYOUT.signature_gap
        assert result.signatures_on_new_page is True
        assert result.page_count == 2
        assert result.signature_page == 2
        assert result.signature_y == LAYOUT.signature_top

        texts = page_texts(result.pdf_bytes)
        assert "Diego Felipe Quesada" not in texts[0]
        assert "Diego Felipe Quesada" in texts[1]

    def test_long_table_repeats_header_and_draws_footer_once(self):
        result = LayoutEngine().render(make_content(rows=make_rows(80)))
        assert result.page_count >= 2
        texts = page_texts(result.pdf_bytes)
        assert all("Loan Account" in text for text in texts[:result.table_end_page])
        assert sum(text.count("Totals") for text in texts) == 1
        assert "ML-079" in "".join(texts)

    def test_body_lines_are_justified_except_the_last(self):
        paragraph = " ".join(["alpha"] * 61)
        result = LayoutEngine().render(make_content(body=paragraph))

        with pdfplumber.open(io.BytesIO(result.pdf_bytes)) as pdf:
            words = [w for w in pdf.pages[0].extract_words() if w["text"] == "alpha"]
        line_ends = {}
        for word in words:
            top = round(word["top"])
            line_ends[top] = max(line_ends.get(top, 0), word["x1"])
        ends = [line_ends[top] for top in sorted(line_ends)]

        width = LAYOUT.printable_width * mm
        lines = wrap_paragraph(paragraph, width, LAYOUT.font_name, LAYOUT.body_font_size)
        assert len(ends) == len(lines) > 1

        right_edge = (LAYOUT.page_width - LAYOUT.margin) * mm
        assert all(end == pytest.approx(right_edge, abs=1.0) for end in ends[:-1])

        natural = stringWidth(lines[-1], LAYOUT.font_name, LAYOUT.body_font_size)
        assert ends[-1] == pytest.approx(LAYOUT.margin * mm + natural, abs=1.0)
        assert ends[-1] < right_edge - 10

    def test_long_body_flows_to_next_page(self):
        body = "\n".join(f"Clause {i}" for i in range(60))
        result = LayoutEngine().render(make_content(body=body))
        assert result.page_count >= 2
        assert "Clause 59" in page_texts(result.pdf_bytes)[1]

    def test_letterhead_on_every_page(self, letterhead_png):
        image = ImageReader(io.BytesIO(letterhead_png))
        result = LayoutEngine().render(make_content(rows=make_rows(80)), image)
        with pdfplumber.open(io.BytesIO(result.pdf_bytes)) as pdf:
            assert len(pdf.pages) == result.page_count
            assert all(len(page.images) == 1 for page in pdf.pages)

    def test_no_visible_columns_skips_table(self):
        content = make_content()
        content.table = build_table_content(make_rows(2), [ColumnConfig("Loan Account", visible=False)])
        result = LayoutEngine().render(content)
        assert result.page_count == 1
        assert result.table_end_y == result.body_end_y

    def test_row_taller_than_page_fails(self):
        rows = [{"Loan Account": "ML-1", "Borrower Name": "word " * 6000, "Loan Balance": 1}]
        with pytest.raises(LayoutError):
            LayoutEngine().render(make_content(rows=rows))


class TestStages:

    def test_stages_only_move_forward(self):
        cursor = _PageCursor(None, LAYOUT, None, lambda c: None)
        cursor.enter(LayoutStage.LETTERHEAD)
        cursor.enter(LayoutStage.TABLE)
        with pytest.raises(LayoutError):
            cursor.enter(LayoutStage.BODY)
