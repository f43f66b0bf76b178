#!/usr/bin/env python3
"""
Amendment Document Composer
Single entry point that turns a template, loan rows and operator choices into a saved PDF.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from amendment_models import (ColumnConfig, HighlightedRows, MergeFieldValues,
                              Row, Template)
from layout_engine import DocumentContent, LayoutEngine, LayoutError, RenderedDocument
from layout_params import PageLayout
from letterhead import LetterheadError, LetterheadRef, load_letterhead
from merge_resolver import MergeFieldSyntaxError, resolve_merge_fields
from portfolio_aggregator import PortfolioFields, compute_aggregates
from portfolio_table import build_table_content

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\?%*:|"<>]')


class DocumentGenerationError(Exception):
    """A document could not be generated; no file was written."""


def document_filename(title: str) -> str:
    """PDF file name for a resolved title with filesystem-unsafe characters replaced."""
    stem = _UNSAFE_FILENAME_CHARS.sub('_', title).strip()
    return f"{stem or 'document'}.pdf"


class DocumentComposer:
    """
    Wires aggregation, merge resolution and layout into one generation call.

    Each call works only on the arguments it is given; nothing is kept
    between calls except configuration.
    """

    def __init__(self, output_dir: Union[str, Path] = "outputs",
                 layout: Optional[PageLayout] = None,
                 fields: PortfolioFields = PortfolioFields(),
                 debug: bool = False):
        self.debug = debug
        self.output_dir = Path(output_dir)
        self.fields = fields
        self.logger = self._setup_logger()
        self.engine = LayoutEngine(layout=layout, debug=debug)

    def _setup_logger(self):
        """Set up logging for the document composer."""
        logger = logging.getLogger('DocumentComposer')
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(levelname)s - %(message)s')
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False
        logger.setLevel(logging.DEBUG if self.debug else logging.INFO)
        return logger

    def compose(self, template: Template, rows: Sequence[Row],
                columns: Sequence[ColumnConfig],
                highlighted_rows: Optional[Union[HighlightedRows, Iterable[int]]] = None,
                letterhead: Optional[LetterheadRef] = None,
                merge_field_values: Optional[MergeFieldValues] = None) -> RenderedDocument:
        """
        Render the document in memory.

        Raises DocumentGenerationError when any stage fails.
        """
        if not isinstance(highlighted_rows, HighlightedRows):
            highlighted_rows = HighlightedRows.of(highlighted_rows or [])

        try:
            aggregates = compute_aggregates(rows, self.fields)
            self.logger.debug(f"📊 {aggregates.loan_count} loans, total balance "
                              f"{aggregates.total_balance:,.2f}, yield {aggregates.portfolio_yield:.4f}%")

            content = DocumentContent(
                title=resolve_merge_fields(template.title, merge_field_values),
                body=resolve_merge_fields(template.body, merge_field_values),
                signature_left=resolve_merge_fields(template.signature_left, merge_field_values),
                signature_right=resolve_merge_fields(template.signature_right, merge_field_values),
                table=build_table_content(rows, columns, highlighted_rows,
                                          fields=self.fields, aggregates=aggregates),
            )
            image = load_letterhead(letterhead)
            if image is None:
                self.logger.info("📄 No letterhead supplied - pages will have a blank background")
            return self.engine.render(content, image)
        except (MergeFieldSyntaxError, LetterheadError, LayoutError) as e:
            self.logger.error(f"❌ Document generation failed: {e}")
            raise DocumentGenerationError(str(e)) from e

    def generate_document(self, template: Template, rows: Sequence[Row],
                          columns: Sequence[ColumnConfig],
                          highlighted_rows: Optional[Union[HighlightedRows, Iterable[int]]] = None,
                          letterhead: Optional[LetterheadRef] = None,
                          merge_field_values: Optional[MergeFieldValues] = None) -> Path:
        """
        Generate the PDF and save it under a name derived from the resolved title.

        The file appears only once the whole document has been rendered.
        """
        self.logger.info(f"📄 Generating '{template.name}' from {len(rows)} rows...")
        rendered = self.compose(template, rows, columns, highlighted_rows,
                                letterhead, merge_field_values)

        title = resolve_merge_fields(template.title, merge_field_values)
        output_path = self.output_dir / document_filename(title)
        self._write_atomic(output_path, rendered.pdf_bytes)

        self.logger.info(f"✅ Document saved: {output_path} ({rendered.page_count} page(s))")
        return output_path

    def _write_atomic(self, path: Path, data: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix='.tmp')
        try:
            with os.fdopen(fd, 'wb') as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise DocumentGenerationError(f"Could not write {path}: {e}") from e


def generate_document(template: Template, rows: Sequence[Row], columns: Sequence[ColumnConfig],
                      highlighted_rows: Optional[Union[HighlightedRows, Iterable[int]]] = None,
                      letterhead: Optional[LetterheadRef] = None,
                      merge_field_values: Optional[MergeFieldValues] = None,
                      output_dir: Union[str, Path] = "outputs") -> Path:
    """Generate one document with a default composer."""
    composer = DocumentComposer(output_dir=output_dir)
    return composer.generate_document(template, rows, columns, highlighted_rows,
                                      letterhead, merge_field_values)
