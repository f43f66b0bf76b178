#!/usr/bin/env python3
"""
Portfolio Table Content
Turns loan rows, column settings and highlights into the text of the rendered table.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence

from amendment_models import ColumnConfig, HighlightedRows, Row
from column_config import visible_columns
from portfolio_aggregator import (PortfolioAggregates, PortfolioFields,
                                  compute_aggregates, exclude_total_rows)
from value_formatter import DASH, ColumnKind, format_cell, format_currency

TOTALS_LABEL = "Totals"


@dataclass
class TableContent:
    """
    Everything the layout engine needs to draw the table.

    body_rows holds formatted strings only; highlighted_body_rows are
    positions within body_rows; left_aligned_footer_columns are positions
    within the visible columns.
    """
    header: List[str]
    body_rows: List[List[str]]
    footer: List[str]
    highlighted_body_rows: FrozenSet[int] = field(default_factory=frozenset)
    left_aligned_footer_columns: FrozenSet[int] = field(default_factory=frozenset)
    source_indices: List[int] = field(default_factory=list)

    @property
    def column_count(self) -> int:
        return len(self.header)


def yield_summary(aggregates: PortfolioAggregates) -> str:
    """Footer text for the borrower column, e.g. "Portfolio Yield: 8.7500% (2 loans)"."""
    return f"Portfolio Yield: {aggregates.portfolio_yield:.4f}% ({aggregates.loan_count} loans)"


def format_row(row: Row, columns: Sequence[ColumnConfig]) -> List[str]:
    """
    Format each visible column of one row.

    An absent cell is an empty value to the typed formatters (currency shows
    "$0.00"); only plain columns render it as a dash.
    """
    return [DASH if col.kind is ColumnKind.PLAIN and col.key not in row
            else format_cell(col.kind, row.get(col.key, ''))
            for col in columns]


def build_footer(columns: Sequence[ColumnConfig], aggregates: PortfolioAggregates,
                 fields: PortfolioFields = PortfolioFields()) -> List[str]:
    footer = []
    for index, col in enumerate(columns):
        if index == 0:
            footer.append(TOTALS_LABEL)
        elif col.key == fields.borrower:
            footer.append(yield_summary(aggregates))
        elif col.key == fields.balance:
            footer.append(format_currency(aggregates.total_balance))
        elif col.key == fields.payment:
            footer.append(format_currency(aggregates.total_regular_payment))
        else:
            footer.append('')
    return footer


def build_table_content(rows: Sequence[Row], columns: Sequence[ColumnConfig],
                        highlighted_rows: Optional[HighlightedRows] = None,
                        fields: PortfolioFields = PortfolioFields(),
                        aggregates: Optional[PortfolioAggregates] = None) -> TableContent:
    """
    Build header, formatted body and totals footer for the visible columns.

    Subtotal rows already present in the spreadsheet are left out of the body.
    Highlights refer to positions in the original row sequence.
    """
    shown = visible_columns(columns)
    highlighted_rows = highlighted_rows or HighlightedRows()
    if aggregates is None:
        aggregates = compute_aggregates(rows, fields)

    kept = exclude_total_rows(rows, fields)
    body_rows = [format_row(row, shown) for _, row in kept]
    highlighted = frozenset(position for position, (index, _) in enumerate(kept)
                            if index in highlighted_rows)

    left_aligned = {0}
    left_aligned.update(i for i, col in enumerate(shown) if col.key == fields.borrower)

    return TableContent(
        header=[col.label for col in shown],
        body_rows=body_rows,
        footer=build_footer(shown, aggregates, fields),
        highlighted_body_rows=highlighted,
        left_aligned_footer_columns=frozenset(left_aligned) if shown else frozenset(),
        source_indices=[index for index, _ in kept],
    )
