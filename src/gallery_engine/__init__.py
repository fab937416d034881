"""UI-agnostic cross-page selection engine for paginated tables."""

__all__ = [
    "adapters",
    "paging",
    "remote",
    "runtime",
    "selection",
]

__version__ = "0.1.0"
