#!/usr/bin/env python3
"""
Spreadsheet Loader
Reads loan portfolio spreadsheets (.xlsx / .csv) into rows of displayed cell values.
"""

import logging
import re
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, List, Optional, Union

import pandas as pd
from openpyxl import load_workbook
from openpyxl.cell.cell import Cell

from amendment_models import Row

EXCEL_SUFFIXES = {'.xlsx', '.xlsm'}
CSV_SUFFIXES = {'.csv'}


class SpreadsheetLoader:
    """
    Loads the first worksheet of a spreadsheet into a list of rows.

    Cells come back the way the spreadsheet displays them where that matters
    downstream: percentage-formatted numbers as "8.01%" and dates as
    MM/DD/YYYY. Other numbers stay numeric and missing cells are "".
    """

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.logger = self._setup_logger()

    def _setup_logger(self):
        """Set up logging for the spreadsheet loader."""
        logger = logging.getLogger('SpreadsheetLoader')
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(levelname)s - %(message)s')
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False
        logger.setLevel(logging.DEBUG if self.debug else logging.INFO)
        return logger

    def load(self, file_path: Union[str, Path]) -> List[Row]:
        """
        Load rows from a spreadsheet file.

        Args:
            file_path: Path to an .xlsx, .xlsm or .csv file

        Returns:
            One dict per non-blank data row, keyed by header name
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"Spreadsheet not found: {path}")

        suffix = path.suffix.lower()
        if suffix in EXCEL_SUFFIXES:
            rows = self._load_workbook(path)
        elif suffix in CSV_SUFFIXES:
            rows = self._load_csv(path)
        else:
            raise ValueError(f"Unsupported spreadsheet type '{suffix}' - use .xlsx, .xlsm or .csv")

        self.logger.info(f"📋 Loaded {len(rows)} rows from {path.name}")
        return rows

    def _load_workbook(self, path: Path) -> List[Row]:
        workbook = load_workbook(path, data_only=True)
        try:
            sheet = workbook.worksheets[0]
            self.logger.debug(f"Reading worksheet '{sheet.title}'")

            sheet_rows = sheet.iter_rows()
            header_cells = next(sheet_rows, None)
            if header_cells is None:
                return []

            headers = unique_headers([cell.value for cell in header_cells])
            rows = []
            for cells in sheet_rows:
                values = [display_value(cell) for cell in cells]
                if all(value == '' for value in values):
                    continue
                row = {}
                for index, header in enumerate(headers):
                    if header is None:
                        continue
                    row[header] = values[index] if index < len(values) else ''
                rows.append(row)
            return rows
        finally:
            workbook.close()

    def _load_csv(self, path: Path) -> List[Row]:
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            self.logger.warning(f"⚠️ {path.name} is empty")
            return []
        df = df[~(df == '').all(axis=1)]
        return df.to_dict('records')


def unique_headers(raw_headers: List[Any]) -> List[Optional[str]]:
    """
    Header names with duplicates suffixed _1, _2, ...

    Blank header cells map to None and their column is skipped.
    """
    seen = {}
    headers = []
    for raw in raw_headers:
        if raw is None or str(raw).strip() == '':
            headers.append(None)
            continue
        name = str(raw).strip()
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        headers.append(name)
    return headers


def percent_decimals(number_format: str) -> int:
    """Decimal places shown by a percentage number format such as "0.00%"."""
    section = number_format.split(';')[0]
    match = re.search(r'\.([0#]+)', section)
    return len(match.group(1)) if match else 0


def display_value(cell: Cell) -> Any:
    """The value a spreadsheet user sees in the cell, where it differs from the raw value."""
    value = cell.value
    if value is None:
        return ''
    if isinstance(value, (datetime, date)):
        return value.strftime('%m/%d/%Y')
    if isinstance(value, time):
        return value.strftime('%H:%M:%S')
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, (int, float)):
        number_format = cell.number_format or 'General'
        if '%' in number_format:
            return f"{value * 100:.{percent_decimals(number_format)}f}%"
        return value
    return value


def load_rows(file_path: Union[str, Path], debug: bool = False) -> List[Row]:
    """Convenience wrapper around SpreadsheetLoader.load."""
    return SpreadsheetLoader(debug=debug).load(file_path)
