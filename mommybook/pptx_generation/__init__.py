"""
Slide-deck export for generated MommyBook documents.
"""

from .builder import DEFAULT_LAYOUT, DeckLayoutConfig, StorybookDeckBuilder, suggested_filename

__all__ = ["DEFAULT_LAYOUT", "DeckLayoutConfig", "StorybookDeckBuilder", "suggested_filename"]
