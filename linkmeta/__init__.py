"""linkmeta - propagate backlink metadata between vault notes."""

__version__ = "0.1.0"
