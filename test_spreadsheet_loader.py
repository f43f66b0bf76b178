"""
Tests for loading loan spreadsheets.
"""
from datetime import datetime

import pytest
from openpyxl import Workbook

from spreadsheet_loader import SpreadsheetLoader, load_rows, percent_decimals, unique_headers


@pytest.fixture
def loader():
    return SpreadsheetLoader()


@pytest.fixture
def portfolio_xlsx(tmp_path):
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Portfolio"
    sheet.append(["Loan Account", "Borrower Name", "Interest Rate", "Maturity Date",
                  "Loan Balance", "Notes", "Notes", None])
    sheet.append(["ML-023", "Projects and Services LLC", 0.088, datetime(2026, 1, 15),
                  125000.5, "ext", None, "ignored"])
    sheet.append([None] * 8)
    sheet.append(["ML-087", "Gerardo Chirinos", 0.0801, datetime(2025, 12, 1), 50000])
    sheet["C2"].number_format = "0.00%"
    sheet["C4"].number_format = "0.00%"
    sheet["D2"].number_format = "mm/dd/yyyy"
    sheet["D4"].number_format = "mm/dd/yyyy"

    path = tmp_path / "portfolio.xlsx"
    workbook.save(path)
    return path


class TestExcel:
    """Rows read from the first worksheet with displayed values."""

    def test_rows_and_headers(self, loader, portfolio_xlsx):
        rows = loader.load(portfolio_xlsx)
        assert len(rows) == 2
        assert list(rows[0]) == ["Loan Account", "Borrower Name", "Interest Rate",
                                 "Maturity Date", "Loan Balance", "Notes", "Notes_1"]

    def test_percent_cells_use_displayed_value(self, loader, portfolio_xlsx):
        rows = loader.load(portfolio_xlsx)
        assert rows[0]["Interest Rate"] == "8.80%"
        assert rows[1]["Interest Rate"] == "8.01%"

    def test_dates_and_numbers(self, loader, portfolio_xlsx):
        rows = loader.load(portfolio_xlsx)
        assert rows[0]["Maturity Date"] == "01/15/2026"
        assert rows[0]["Loan Balance"] == 125000.5
        assert rows[1]["Loan Balance"] == 50000

    def test_missing_cells_are_empty(self, loader, portfolio_xlsx):
        rows = loader.load(portfolio_xlsx)
        assert rows[0]["Notes_1"] == ""
        assert rows[1]["Notes"] == ""

    def test_header_only(self, loader, tmp_path):
        workbook = Workbook()
        workbook.active.append(["Loan Account", "Loan Balance"])
        path = tmp_path / "empty.xlsx"
        workbook.save(path)
        assert loader.load(path) == []


class TestCsv:

    def test_values_are_strings(self, loader, tmp_path):
        path = tmp_path / "portfolio.csv"
        path.write_text("Loan Account,Interest Rate,Loan Balance\n"
                        "ML-1,8.50%,\"$100,000.00\"\n"
                        ",,\n"
                        "ML-2,9,50000\n", encoding="utf-8")
        rows = loader.load(path)
        assert rows == [
            {"Loan Account": "ML-1", "Interest Rate": "8.50%", "Loan Balance": "$100,000.00"},
            {"Loan Account": "ML-2", "Interest Rate": "9", "Loan Balance": "50000"},
        ]

    def test_empty_file(self, loader, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        assert loader.load(path) == []


class TestErrors:

    def test_missing_file(self, loader, tmp_path):
        with pytest.raises(FileNotFoundError):
            loader.load(tmp_path / "nope.xlsx")

    def test_unsupported_type(self, loader, tmp_path):
        path = tmp_path / "portfolio.txt"
        path.write_text("x", encoding="utf-8")
        with pytest.raises(ValueError):
            load_rows(path)


class TestHelpers:

    def test_unique_headers(self):
        assert unique_headers(["A", "A", " ", None, "B", "A"]) == ["A", "A_1", None, None, "B", "A_2"]

    @pytest.mark.parametrize("fmt,expected", [("0%", 0), ("0.00%", 2), ("0.0%;[Red]-0.0%", 1)])
    def test_percent_decimals(self, fmt, expected):
        assert percent_decimals(fmt) == expected
