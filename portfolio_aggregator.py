#!/usr/bin/env python3
"""
Portfolio Aggregator
Derives portfolio-level totals (balance, payment, weighted yield, loan count) from loan rows.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import pandas as pd

from amendment_models import Row
from value_formatter import clean_number

TOTAL_MARKER = "total"


@dataclass(frozen=True)
class PortfolioFields:
    """Names of the columns the aggregates and the totals row are read from."""
    account: str = "Loan Account"
    borrower: str = "Borrower Name"
    balance: str = "Loan Balance"
    payment: str = "Regular Payment"
    rate: str = "Interest Rate"


@dataclass(frozen=True)
class PortfolioAggregates:
    """Totals recomputed on every generation call."""
    total_balance: float = 0.0
    total_regular_payment: float = 0.0
    portfolio_yield: float = 0.0
    loan_count: int = 0


def is_total_row(row: Row, fields: PortfolioFields = PortfolioFields()) -> bool:
    """True when the account cell holds a spreadsheet subtotal ("Totals", "Grand Total", ...)."""
    value = row.get(fields.account)
    if value is None:
        return False
    return TOTAL_MARKER in str(value).lower()


def exclude_total_rows(rows: Sequence[Row],
                       fields: PortfolioFields = PortfolioFields()) -> List[Tuple[int, Row]]:
    """Rows that are not subtotal rows, paired with their original index."""
    return [(index, row) for index, row in enumerate(rows) if not is_total_row(row, fields)]


def compute_aggregates(rows: Sequence[Row],
                       fields: PortfolioFields = PortfolioFields()) -> PortfolioAggregates:
    """
    Sum balances and payments and compute the balance-weighted mean rate.

    Subtotal rows are dropped first so they are not counted twice. Missing or
    non-numeric cells contribute zero; a zero total balance gives a zero yield.
    """
    kept = [row for _, row in exclude_total_rows(rows, fields)]
    if not kept:
        return PortfolioAggregates()

    df = pd.DataFrame(kept)
    balance = _numeric_column(df, fields.balance)
    payment = _numeric_column(df, fields.payment)
    rate = _numeric_column(df, fields.rate)

    total_balance = float(balance.sum())
    weighted_rate_sum = float((rate * balance).sum())
    portfolio_yield = weighted_rate_sum / total_balance if total_balance > 0 else 0.0

    return PortfolioAggregates(
        total_balance=total_balance,
        total_regular_payment=float(payment.sum()),
        portfolio_yield=portfolio_yield,
        loan_count=len(df),
    )


def _numeric_column(df: pd.DataFrame, column: str) -> pd.Series:
    if column not in df.columns:
        return pd.Series(0.0, index=df.index)
    return df[column].map(clean_number).astype(float)
