#!/usr/bin/env python3
"""
Template Store
JSON-file persistence for templates, merge fields and application settings.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from amendment_models import DEFAULT_TEMPLATES, MergeField, Template

LETTERHEAD_SETTING = "letterhead_url"


class TemplateStoreError(Exception):
    """A store operation was refused or the store file is unusable."""


# Storage-side records (snake_case columns, timestamps)

class TemplateRecord(BaseModel):
    id: str
    name: str
    title: str = ""
    body: str = ""
    signature_left: str = ""
    signature_right: str = ""
    allowed_merge_field_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class MergeFieldRecord(BaseModel):
    id: str
    label: str
    key: str


class StoreFile(BaseModel):
    templates: List[TemplateRecord] = Field(default_factory=list)
    merge_fields: List[MergeFieldRecord] = Field(default_factory=list)
    app_settings: Dict[str, str] = Field(default_factory=dict)


def template_from_record(record: TemplateRecord) -> Template:
    return Template(
        id=record.id,
        name=record.name,
        title=record.title,
        body=record.body,
        signature_left=record.signature_left,
        signature_right=record.signature_right,
        allowed_merge_field_ids=list(record.allowed_merge_field_ids),
    )


def record_from_template(template: Template, created_at: Optional[datetime] = None) -> TemplateRecord:
    now = datetime.now()
    return TemplateRecord(
        id=template.id,
        name=template.name,
        title=template.title,
        body=template.body,
        signature_left=template.signature_left,
        signature_right=template.signature_right,
        allowed_merge_field_ids=list(template.allowed_merge_field_ids or []),
        created_at=created_at or now,
        updated_at=now,
    )


class TemplateStore:
    """
    Stores templates, merge fields and settings in one JSON file.

    An empty store is seeded with the default amendment templates the first
    time templates are fetched.
    """

    def __init__(self, path: Union[str, Path] = "amendment_store.json", debug: bool = False):
        self.debug = debug
        self.path = Path(path)
        self.logger = self._setup_logger()

    def _setup_logger(self):
        """Set up logging for the template store."""
        logger = logging.getLogger('TemplateStore')
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(levelname)s - %(message)s')
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False
        logger.setLevel(logging.DEBUG if self.debug else logging.INFO)
        return logger

    def _read(self) -> StoreFile:
        if not self.path.exists():
            return StoreFile()
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return StoreFile.model_validate(json.load(f))
        except (json.JSONDecodeError, ValidationError) as e:
            raise TemplateStoreError(f"Store file {self.path} is not valid: {e}") from e

    def _write(self, store: StoreFile):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(store.model_dump(mode='json'), f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise

    # Templates

    def fetch_templates(self) -> List[Template]:
        """All templates, oldest first."""
        store = self._read()
        if not store.templates:
            self.logger.info("🌱 Empty store - seeding default templates")
            store.templates = [record_from_template(t) for t in DEFAULT_TEMPLATES]
            self._write(store)
        records = sorted(store.templates, key=lambda r: r.created_at)
        return [template_from_record(r) for r in records]

    def get_template(self, template_id: str) -> Template:
        for template in self.fetch_templates():
            if template.id == template_id:
                return template
        raise TemplateStoreError(f"Template '{template_id}' not found")

    def save_template(self, template: Template):
        """Insert the template, or update the stored one with the same id."""
        store = self._read()
        for index, record in enumerate(store.templates):
            if record.id == template.id:
                store.templates[index] = record_from_template(template, created_at=record.created_at)
                self.logger.info(f"💾 Template updated: {template.name}")
                break
        else:
            store.templates.append(record_from_template(template))
            self.logger.info(f"💾 Template created: {template.name}")
        self._write(store)

    def delete_template(self, template_id: str):
        """Delete a template; the last remaining template cannot be deleted."""
        store = self._read()
        if not any(r.id == template_id for r in store.templates):
            raise TemplateStoreError(f"Template '{template_id}' not found")
        if len(store.templates) <= 1:
            raise TemplateStoreError("Cannot delete the last template")
        store.templates = [r for r in store.templates if r.id != template_id]
        self._write(store)
        self.logger.info(f"🗑️ Template deleted: {template_id}")

    # Merge fields

    def fetch_merge_fields(self) -> List[MergeField]:
        return [MergeField(id=r.id, label=r.label, key=r.key) for r in self._read().merge_fields]

    def save_merge_field(self, merge_field: MergeField):
        store = self._read()
        if any(r.id == merge_field.id for r in store.merge_fields):
            raise TemplateStoreError(f"Merge field '{merge_field.id}' already exists")
        store.merge_fields.append(MergeFieldRecord(id=merge_field.id, label=merge_field.label,
                                                   key=merge_field.key))
        self._write(store)
        self.logger.info(f"💾 Merge field created: {merge_field.key}")

    def delete_merge_field(self, field_id: str):
        store = self._read()
        remaining = [r for r in store.merge_fields if r.id != field_id]
        if len(remaining) == len(store.merge_fields):
            raise TemplateStoreError(f"Merge field '{field_id}' not found")
        store.merge_fields = remaining
        self._write(store)

    # Settings

    def fetch_setting(self, key: str) -> Optional[str]:
        return self._read().app_settings.get(key)

    def save_setting(self, key: str, value: str):
        store = self._read()
        store.app_settings[key] = value
        self._write(store)

    def fetch_letterhead_url(self) -> Optional[str]:
        return self.fetch_setting(LETTERHEAD_SETTING)

    def save_letterhead_url(self, url: str):
        self.save_setting(LETTERHEAD_SETTING, url)
        self.logger.info(f"🖼️ Letterhead set: {url}")
