"""
Pytest configuration and shared fixtures.
"""
import io
from typing import List

import pytest
from PIL import Image

from amendment_models import ColumnConfig, Row, Template
from column_config import build_column_configs


@pytest.fixture
def sample_rows() -> List[Row]:
    """Two loans followed by the spreadsheet's own subtotal row."""
    return [
        {
            "Loan Account": "ML-001",
            "Borrower Name": "Projects and Services LLC",
            "Interest Rate": "8.50%",
            "Maturity Date": "01/15/2027",
            "Term Left": "14",
            "Regular Payment": "$708.33",
            "Loan Balance": "$100,000.00",
            "Percent Owned": "0.46",
        },
        {
            "Loan Account": "ML-002",
            "Borrower Name": "Gerardo Chirinos",
            "Interest Rate": "9.00%",
            "Maturity Date": 46000,
            "Term Left": "6",
            "Regular Payment": 375,
            "Loan Balance": 50000,
            "Percent Owned": "1",
        },
        {
            "Loan Account": "Totals",
            "Borrower Name": "",
            "Interest Rate": "",
            "Maturity Date": "",
            "Term Left": "",
            "Regular Payment": "$1,083.33",
            "Loan Balance": "$150,000.00",
            "Percent Owned": "",
        },
    ]


@pytest.fixture
def sample_columns(sample_rows: List[Row]) -> List[ColumnConfig]:
    """Columns as configured right after loading sample_rows."""
    return build_column_configs(sample_rows)


@pytest.fixture
def sample_template() -> Template:
    return Template(
        id="t-1",
        name="Amendment - Test",
        title="Amendment for {{ClientName}}",
        body="The Co-Investor {{ClientName}} joins the portfolio.\n\nSummary below:",
        signature_left="Diego Felipe Quesada\nManager",
        signature_right="{{ClientName}}\nCo-Investor",
    )


@pytest.fixture
def letterhead_png() -> bytes:
    """A small letter-proportioned PNG used as letterhead."""
    image = Image.new("RGB", (85, 110), (230, 236, 250))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
