#!/usr/bin/env python3
"""
Letterhead Loader
Resolves a letterhead reference (path, bytes, data URL or web URL) into a page-sized raster image.
"""

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote_to_bytes

import requests
from reportlab.lib.utils import ImageReader

logger = logging.getLogger(__name__)

LetterheadRef = Union[str, bytes, Path]

FETCH_TIMEOUT = 30


class LetterheadError(Exception):
    """The letterhead reference could not be read as an image."""


def _decode_data_url(url: str) -> bytes:
    header, sep, payload = url.partition(',')
    if not sep:
        raise LetterheadError("Malformed data URL for letterhead")
    try:
        if header.endswith(';base64'):
            return base64.b64decode(payload, validate=True)
        return unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as e:
        raise LetterheadError(f"Could not decode letterhead data URL: {e}") from e


def _fetch_url(url: str) -> bytes:
    logger.info(f"🌐 Fetching letterhead from {url}")
    try:
        response = requests.get(url, timeout=FETCH_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise LetterheadError(f"Could not fetch letterhead from {url}: {e}") from e
    return response.content


def read_letterhead_bytes(ref: LetterheadRef) -> bytes:
    """Raw image bytes for any supported letterhead reference."""
    if isinstance(ref, bytes):
        return ref

    text = str(ref)
    if text.startswith('data:'):
        return _decode_data_url(text)
    if text.startswith(('http://', 'https://')):
        return _fetch_url(text)

    path = Path(text).expanduser()
    if not path.is_file():
        raise LetterheadError(f"Letterhead file not found: {path}")
    try:
        return path.read_bytes()
    except OSError as e:
        raise LetterheadError(f"Could not read letterhead file {path}: {e}") from e


def load_letterhead(ref: Optional[LetterheadRef]) -> Optional[ImageReader]:
    """
    Load a letterhead image, or None when no letterhead was supplied.

    The image is decoded up front so a broken reference fails before any
    page is drawn.
    """
    if ref is None or ref == '' or ref == b'':
        return None

    data = read_letterhead_bytes(ref)
    try:
        image = ImageReader(io.BytesIO(data))
        width, height = image.getSize()
    except Exception as e:
        raise LetterheadError(f"Letterhead is not a readable image: {e}") from e

    logger.debug(f"Letterhead loaded: {width}x{height}px")
    return image
