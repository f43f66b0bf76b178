#!/usr/bin/env python3
"""
Amendment Data Model
Plain records shared by the composer, the loaders and the template store.
"""

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from merge_resolver import merge_key_for_label
from value_formatter import ColumnKind

# A spreadsheet row: column name -> cell value
Row = Dict[str, Any]

# Operator-entered values keyed by MergeField.key
MergeFieldValues = Dict[str, str]

# Columns shown right after a spreadsheet is loaded
DEFAULT_COLUMNS = [
    "Loan Account",
    "Borrower Name",
    "Interest Rate",
    "Maturity Date",
    "Term Left",
    "Regular Payment",
    "Loan Balance",
]


@dataclass
class Template:
    """Document template; title, body and both signatures may hold merge placeholders."""
    id: str
    name: str
    title: str
    body: str
    signature_left: str
    signature_right: str
    allowed_merge_field_ids: Optional[List[str]] = None

    def allows_all_merge_fields(self) -> bool:
        return not self.allowed_merge_field_ids

    def toggle_merge_field(self, field_id: str) -> 'Template':
        """Return a copy with field_id added to or removed from the allowed list."""
        current = list(self.allowed_merge_field_ids or [])
        if field_id in current:
            current.remove(field_id)
        else:
            current.append(field_id)
        return replace(self, allowed_merge_field_ids=current)


@dataclass
class MergeField:
    """Named placeholder; key is derived from the label when the field is created."""
    id: str
    label: str
    key: str

    @classmethod
    def from_label(cls, label: str, field_id: Optional[str] = None) -> 'MergeField':
        return cls(
            id=field_id or str(uuid.uuid4()),
            label=label,
            key=merge_key_for_label(label),
        )


@dataclass
class ColumnConfig:
    """Display settings for one spreadsheet column."""
    key: str
    label: str = ""
    visible: bool = True
    kind: ColumnKind = ColumnKind.PLAIN

    def __post_init__(self):
        if not self.label:
            self.label = self.key


@dataclass(frozen=True)
class HighlightedRows:
    """Immutable set of 0-based row indices flagged for highlighting."""
    indices: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def of(cls, indices: Iterable[int]) -> 'HighlightedRows':
        return cls(frozenset(int(i) for i in indices))

    def toggle(self, index: int) -> 'HighlightedRows':
        if index in self.indices:
            return HighlightedRows(self.indices - {index})
        return HighlightedRows(self.indices | {index})

    def clear(self) -> 'HighlightedRows':
        return HighlightedRows()

    def __contains__(self, index: object) -> bool:
        return index in self.indices

    def __len__(self) -> int:
        return len(self.indices)

    def __iter__(self):
        return iter(sorted(self.indices))


DEFAULT_TEMPLATES: List[Template] = [
    Template(
        id='1',
        name='Amendment - New Co-investor',
        title='Amendment – Jul 10, 2025',
        body=('The Co-Investor JOHANNA ANDREA CUELLAR is entering with $50,000 to participate '
              'as the beneficiary of the mortgages that are list below.\n\n'
              'Here is a summary of the composition of your portfolio:'),
        signature_left='Diego Felipe Quesada\nManager',
        signature_right='JOHANNA ANDREA CUELLAR\nCo-Investor',
    ),
    Template(
        id='2',
        name='Amendment - Addition',
        title='Amendment – Nov 12, 2025',
        body=('The Co-Investor VANESSA GARCIA has increased its value by $6,600.00 leaving its '
              'total investment to date at $135,750.00.\n\n'
              'Below is a summary of the composition of your portfolio:'),
        signature_left='Diego Felipe Quesada\nManager',
        signature_right='VANESSA GARCIA\nCo-Investor',
    ),
    Template(
        id='3',
        name='Amendment - Extension',
        title='Amendment – Jul 10, 2025',
        body=('Due to the loan ML-023 from Projects and Services LLC has requested a 3-month '
              'extension, by mutual agreement, co-investor MAURICIO CHARRY and MYKAP have decided '
              'to maintain the position at a rate of 8.80%, leaving his total portfolio as shown below.'),
        signature_left='Diego Felipe Quesada\nManager',
        signature_right='MAURICIO CHARRY\nCo-Investor',
    ),
    Template(
        id='4',
        name='Amendment - Funds Return',
        title='Amendment – Jul 10, 2025',
        body=('Since GERARDO CHIRINOS loan ML-087, in which INVERSIONES TRES VELAS SAS held a '
              'participation, has made a payoff, the co-investor has been decided to request the '
              'return of his funds, which will be deposited into his bank account. This table '
              'provides a summary of your portfolio terms as of today.'),
        signature_left='Diego Felipe Quesada\nManager',
        signature_right='MAURICIO CHARRY\nCo-Investor',
    ),
]


def new_template() -> Template:
    """Blank template with a fresh id, ready for the operator to fill in."""
    return Template(
        id=str(uuid.uuid4()),
        name='New Template',
        title='Document Title',
        body='Write the body of the document here...',
        signature_left='Left Signature\nPosition',
        signature_right='Right Signature\nPosition',
    )


def fields_for_template(fields: List[MergeField], template: Template) -> List[MergeField]:
    """Merge fields exposed by a template; all of them when it has no allow-list."""
    if template.allows_all_merge_fields():
        return list(fields)
    allowed = set(template.allowed_merge_field_ids)
    return [f for f in fields if f.id in allowed]
