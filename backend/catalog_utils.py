"""
Catalog Identifier Utilities

Pure functions that derive catalog identifiers from display names and parent
identifiers. Because the identifiers are deterministic, re-submitting the same
logical work or movement yields the same key and the writes upsert instead of
duplicating.

Examples:
    slugify("Ludwig van Beethoven")           -> "ludwig-van-beethoven"
    make_work_id("beethoven", "Op", "67")     -> "beethoven/op-67"
    make_movement_id("beethoven/op-67", 1)    -> "beethoven/op-67/1"
"""

import re
import unicodedata
from typing import Optional


def strip_accents(text: str) -> str:
    """Remove combining accent marks (Dvořák -> Dvorak)"""
    normalized = unicodedata.normalize('NFD', text)
    return ''.join(c for c in normalized if unicodedata.category(c) != 'Mn')


def slugify(name: str) -> str:
    """
    Derive a composer slug from a display name

    Lowercases, drops anything that is not a letter, digit, whitespace or
    hyphen, then collapses whitespace and hyphen runs into single hyphens.
    Applying it to its own output returns the same string.
    """
    slug = strip_accents(name or '').strip().lower()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug.strip()


def make_work_id(composer_id: str, catalog_system: str, catalog_number: str) -> str:
    """Work key: <composerId>/<lowercased catalog system>-<catalog number>"""
    return f"{composer_id}/{(catalog_system or '').lower()}-{catalog_number}"


def make_movement_id(work_id: str, movement_number: int) -> str:
    """Movement key: <workId>/<number>"""
    return f"{work_id}/{movement_number}"


def parse_release_year(release_date) -> Optional[int]:
    """
    Take the leading YYYY segment of a Spotify release date

    Spotify reports "1999", "1999-03" or "1999-03-21" depending on
    release_date_precision. Anything unparseable yields None.
    """
    if not release_date or not isinstance(release_date, str):
        return None
    match = re.match(r'^\s*(\d{4})', release_date)
    if not match:
        return None
    return int(match.group(1))
