"""Vault loading and parsing utilities."""

from .loader import NoteMetadata, Vault, load_vault
from .parser import extract_headings, extract_links, extract_tags

__all__ = [
    "load_vault",
    "Vault",
    "NoteMetadata",
    "extract_links",
    "extract_tags",
    "extract_headings",
]
