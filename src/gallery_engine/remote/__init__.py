"""Concrete page sources."""

from .artic import ArticPageSource, parse_listing
from .memory import StaticPageSource, sample_records

__all__ = ["ArticPageSource", "StaticPageSource", "parse_listing", "sample_records"]
