#!/usr/bin/env python3
"""
Amendment Generator CLI
Builds letterhead-branded portfolio amendment PDFs from a loan spreadsheet and a stored template.
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional

from amendment_models import MergeField, fields_for_template
from column_config import build_column_configs, set_visibility, visible_columns
from document_composer import DocumentComposer, DocumentGenerationError
from merge_resolver import OPEN, merge_key_for_label
from spreadsheet_loader import SpreadsheetLoader
from template_store import TemplateStore, TemplateStoreError

logger = logging.getLogger(__name__)


def parse_merge_values(pairs: List[str]) -> Dict[str, str]:
    """
    Turn "Client Name=Ana" / "{{ClientName}}=Ana" pairs into merge values.

    A bare label is converted to its placeholder key.
    """
    values = {}
    for pair in pairs:
        name, sep, value = pair.partition('=')
        if not sep:
            raise ValueError(f"Merge value '{pair}' must look like NAME=VALUE")
        name = name.strip()
        key = name if name.startswith(OPEN) else merge_key_for_label(name)
        values[key] = value
    return values


def cmd_generate(args: argparse.Namespace) -> int:
    store = TemplateStore(args.store, debug=args.debug)
    templates = store.fetch_templates()
    template = store.get_template(args.template) if args.template else templates[0]

    rows = SpreadsheetLoader(debug=args.debug).load(args.data)
    if not rows:
        logger.error("❌ The spreadsheet has no data rows - load a file with loans first")
        return 1

    columns = build_column_configs(rows)
    if args.show:
        columns = set_visibility(columns, args.show, True)
    if args.hide:
        columns = set_visibility(columns, args.hide, False)
    logger.info(f"📊 Visible columns: {', '.join(c.label for c in visible_columns(columns))}")

    letterhead = None if args.no_letterhead else (args.letterhead or store.fetch_letterhead_url())
    if not letterhead and not args.no_letterhead:
        logger.error("❌ No letterhead configured - pass --letterhead or confirm with --no-letterhead")
        return 1

    merge_values = parse_merge_values(args.merge)
    exposed = {f.key for f in fields_for_template(store.fetch_merge_fields(), template)}
    for key in merge_values:
        if key not in exposed:
            logger.warning(f"⚠️ {key} is not a merge field of template '{template.name}'")

    composer = DocumentComposer(output_dir=args.output_dir, debug=args.debug)
    output_path = composer.generate_document(
        template=template,
        rows=rows,
        columns=columns,
        highlighted_rows=args.highlight,
        letterhead=letterhead,
        merge_field_values=merge_values,
    )
    print(f"📄 PDF available at: {output_path}")
    return 0


def cmd_templates(args: argparse.Namespace) -> int:
    store = TemplateStore(args.store, debug=args.debug)
    fields = store.fetch_merge_fields()
    for template in store.fetch_templates():
        exposed = ', '.join(f.key for f in fields_for_template(fields, template)) or '-'
        print(f"{template.id}\t{template.name}\t[{exposed}]")
    return 0


def cmd_fields(args: argparse.Namespace) -> int:
    store = TemplateStore(args.store, debug=args.debug)
    for merge_field in store.fetch_merge_fields():
        print(f"{merge_field.id}\t{merge_field.key}\t{merge_field.label}")
    return 0


def cmd_add_field(args: argparse.Namespace) -> int:
    store = TemplateStore(args.store, debug=args.debug)
    merge_field = MergeField.from_label(args.label)
    store.save_merge_field(merge_field)
    print(f"✅ Added {merge_field.key} ({merge_field.id})")
    return 0


def cmd_remove_field(args: argparse.Namespace) -> int:
    TemplateStore(args.store, debug=args.debug).delete_merge_field(args.field_id)
    print(f"✅ Removed merge field {args.field_id}")
    return 0


def cmd_set_letterhead(args: argparse.Namespace) -> int:
    TemplateStore(args.store, debug=args.debug).save_letterhead_url(args.reference)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='amendment-generator',
        description='Generate portfolio amendment PDFs from loan spreadsheets',
    )
    parser.add_argument('--store', default='amendment_store.json',
                        help='JSON file holding templates, merge fields and settings')
    parser.add_argument('--debug', action='store_true', help='Verbose logging')
    sub = parser.add_subparsers(dest='command', required=True)

    gen = sub.add_parser('generate', help='Generate a PDF document')
    gen.add_argument('data', help='Loan spreadsheet (.xlsx, .xlsm or .csv)')
    gen.add_argument('--template', help='Template id (default: first template)')
    gen.add_argument('--letterhead', help='Letterhead image path, data URL or http(s) URL')
    gen.add_argument('--no-letterhead', action='store_true', help='Generate without a letterhead')
    gen.add_argument('--merge', action='append', default=[], metavar='NAME=VALUE',
                     help='Merge field value, by label or {{Key}} (repeatable)')
    gen.add_argument('--highlight', action='append', type=int, default=[], metavar='ROW',
                     help='0-based row index to highlight (repeatable)')
    gen.add_argument('--show', action='append', default=[], metavar='COLUMN',
                     help='Show a column hidden by default (repeatable)')
    gen.add_argument('--hide', action='append', default=[], metavar='COLUMN',
                     help='Hide a column shown by default (repeatable)')
    gen.add_argument('--output-dir', default='outputs', help='Where the PDF is saved')
    gen.set_defaults(func=cmd_generate)

    sub.add_parser('templates', help='List templates').set_defaults(func=cmd_templates)
    sub.add_parser('fields', help='List merge fields').set_defaults(func=cmd_fields)

    add = sub.add_parser('add-field', help='Create a merge field from a label')
    add.add_argument('label')
    add.set_defaults(func=cmd_add_field)

    remove = sub.add_parser('remove-field', help='Delete a merge field')
    remove.add_argument('field_id')
    remove.set_defaults(func=cmd_remove_field)

    letterhead = sub.add_parser('set-letterhead', help='Remember the letterhead image reference')
    letterhead.add_argument('reference')
    letterhead.set_defaults(func=cmd_set_letterhead)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        format="%(levelname)s - %(message)s")
    try:
        return args.func(args)
    except (DocumentGenerationError, TemplateStoreError, FileNotFoundError, ValueError) as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
