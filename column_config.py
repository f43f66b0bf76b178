#!/usr/bin/env python3
"""
Column Configuration
Builds and curates the column set shown in the portfolio table.
"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from amendment_models import DEFAULT_COLUMNS, ColumnConfig, Row
from value_formatter import ColumnKind, column_kind_for


def distinct_keys(rows: Iterable[Row]) -> List[str]:
    """Every column key in the rows, in first-seen order."""
    seen = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(key, None)
    return list(seen)


def build_column_configs(rows: Iterable[Row],
                         default_visible: Optional[Iterable[str]] = None,
                         kinds: Optional[Dict[str, ColumnKind]] = None) -> List[ColumnConfig]:
    """
    Rebuild the column set from freshly loaded rows.

    One config per distinct key; visibility starts from the default column
    list and earlier operator choices are not carried over. Each column's
    formatter kind is resolved here, once.
    """
    visible = set(DEFAULT_COLUMNS if default_visible is None else default_visible)
    return [
        ColumnConfig(
            key=key,
            label=key,
            visible=key in visible,
            kind=column_kind_for(key, kinds),
        )
        for key in distinct_keys(rows)
    ]


def toggle_column(columns: List[ColumnConfig], key: str) -> List[ColumnConfig]:
    """Return a new column list with the visibility of key flipped."""
    return [replace(col, visible=not col.visible) if col.key == key else col
            for col in columns]


def set_visibility(columns: List[ColumnConfig], keys: Iterable[str], visible: bool) -> List[ColumnConfig]:
    wanted = set(keys)
    return [replace(col, visible=visible) if col.key in wanted else col
            for col in columns]


def visible_columns(columns: Iterable[ColumnConfig]) -> List[ColumnConfig]:
    """Visible columns in configured order."""
    return [col for col in columns if col.visible]
