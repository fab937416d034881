"""Textual adapter for the selection engine."""

from .controller import (
    COLUMNS,
    TextualGalleryAdapter,
    TextualUIHooks,
    format_cell,
    record_cells,
)

__all__ = [
    "COLUMNS",
    "TextualGalleryAdapter",
    "TextualUIHooks",
    "format_cell",
    "record_cells",
]
