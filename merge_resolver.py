#!/usr/bin/env python3
"""
Merge Field Resolver
Substitutes {{Placeholder}} tokens in template text with operator-entered values.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Mapping, Optional

OPEN = "{{"
CLOSE = "}}"

logger = logging.getLogger(__name__)


class MergeFieldSyntaxError(ValueError):
    """Raised for an unclosed or nested placeholder token."""

    def __init__(self, message: str, position: int):
        super().__init__(f"{message} at position {position}")
        self.position = position


@dataclass(frozen=True)
class Token:
    """A slice of template text: literal text or a complete placeholder."""
    text: str
    is_placeholder: bool = False


def tokenize(text: str) -> Iterator[Token]:
    """
    Split text into literal and placeholder tokens.

    A placeholder is "{{" + name + "}}" where name holds no braces. A lone
    "}}" outside a placeholder is literal text.
    """
    pos = 0
    length = len(text)
    while pos < length:
        start = text.find(OPEN, pos)
        if start == -1:
            yield Token(text[pos:])
            return
        if start > pos:
            yield Token(text[pos:start])

        end = text.find(CLOSE, start + len(OPEN))
        if end == -1:
            raise MergeFieldSyntaxError("Unclosed merge placeholder", start)

        nested = text.find(OPEN, start + len(OPEN), end)
        if nested != -1:
            raise MergeFieldSyntaxError("Nested merge placeholder", nested)

        name = text[start + len(OPEN):end]
        if '{' in name or '}' in name:
            raise MergeFieldSyntaxError("Malformed merge placeholder", start)

        yield Token(text[start:end + len(CLOSE)], is_placeholder=True)
        pos = end + len(CLOSE)


def placeholders_in(text: str) -> List[str]:
    """Return the placeholder tokens found in text, in order of appearance."""
    if not text:
        return []
    return [token.text for token in tokenize(text) if token.is_placeholder]


def resolve_merge_fields(text: str, values: Optional[Mapping[str, str]]) -> str:
    """
    Replace every placeholder that has a value; leave the others verbatim.

    Substitution is a single pass over the tokenized text, so substituted
    values are never scanned again for placeholders.
    """
    if not values or not text:
        return text

    parts = []
    unresolved = []
    for token in tokenize(text):
        if token.is_placeholder and token.text in values:
            parts.append(str(values[token.text]))
        else:
            if token.is_placeholder:
                unresolved.append(token.text)
            parts.append(token.text)

    if unresolved:
        logger.debug(f"Unresolved merge fields left verbatim: {', '.join(unresolved)}")
    return ''.join(parts)


def merge_key_for_label(label: str) -> str:
    """Build the placeholder key for a label: "Client Name" -> "{{ClientName}}"."""
    return OPEN + re.sub(r'[^a-zA-Z0-9]', '', label) + CLOSE
