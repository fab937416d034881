"""Environment-driven settings shared by the sources and the Textual app."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from .telemetry import ENV_PREFIX

DEFAULT_API_URL = "https://api.artic.edu/api/v1"
DEFAULT_PAGE_SIZE = 12
DEFAULT_TIMEOUT = 10.0
DEFAULT_FIELDS: tuple[str, ...] = (
    "id",
    "title",
    "place_of_origin",
    "artist_display",
    "inscriptions",
    "date_start",
    "date_end",
)


def _lookup(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_int(environ: Mapping[str, str], name: str, fallback: int) -> int:
    value = _lookup(environ, name)
    if value is None:
        return fallback
    try:
        return int(value)
    except ValueError:
        return fallback


def _env_float(environ: Mapping[str, str], name: str, fallback: float) -> float:
    value = _lookup(environ, name)
    if value is None:
        return fallback
    try:
        return float(value)
    except ValueError:
        return fallback


@dataclass(frozen=True, slots=True)
class GallerySettings:
    """Connection and paging settings for one session."""

    api_url: str = DEFAULT_API_URL
    page_size: int = DEFAULT_PAGE_SIZE
    timeout: float = DEFAULT_TIMEOUT
    fields: tuple[str, ...] = field(default=DEFAULT_FIELDS)

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        object.__setattr__(self, "api_url", self.api_url.rstrip("/"))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GallerySettings":
        env = os.environ if environ is None else environ
        return cls(
            api_url=_lookup(env, "API_URL") or DEFAULT_API_URL,
            page_size=_env_int(env, "PAGE_SIZE", DEFAULT_PAGE_SIZE),
            timeout=_env_float(env, "TIMEOUT", DEFAULT_TIMEOUT),
        )

    def override(self, **changes: object) -> "GallerySettings":
        """Return a copy with every non-``None`` value in ``changes`` applied."""

        applied = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **applied)


__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_FIELDS",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_TIMEOUT",
    "GallerySettings",
]
