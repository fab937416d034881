"""Page snapshots, the remote source protocol, and the load protocol."""

from .models import FetchedPage, PageWindow, Record
from .source import LoadFailed, PageSource, PageSourceError
from .window import load_window

__all__ = [
    "FetchedPage",
    "LoadFailed",
    "PageSource",
    "PageSourceError",
    "PageWindow",
    "Record",
    "load_window",
]
