"""Configuration loading from environment variables and CLI flags."""

import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from page_theme.pdf import DEFAULT_MAX_PAGES, DEFAULT_QUALITY, DEFAULT_SCALE
from page_theme.recolor import CHROMATIC_THRESHOLD

T = TypeVar("T")

ENV_KEYS = {
    "scale": "PAGE_THEME_SCALE",
    "quality": "PAGE_THEME_QUALITY",
    "max_pages": "PAGE_THEME_MAX_PAGES",
    "chromatic_threshold": "PAGE_THEME_CHROMATIC_THRESHOLD",
    "workers": "PAGE_THEME_WORKERS",
}


def _from_env(name: str, parse: Callable[[str], T], default: T) -> T:
    raw = os.environ.get(ENV_KEYS[name], "").strip()
    if not raw:
        return default
    try:
        return parse(raw)
    except ValueError:
        raise RuntimeError(
            f"Invalid value for {ENV_KEYS[name]}: {raw!r}. "
            f"Fix it in your environment or .env file."
        ) from None


@dataclass
class Settings:
    scale: float = DEFAULT_SCALE
    quality: float = DEFAULT_QUALITY
    max_pages: int = DEFAULT_MAX_PAGES
    chromatic_threshold: float = CHROMATIC_THRESHOLD
    workers: Optional[int] = None

    @classmethod
    def from_env(
        cls,
        scale: Optional[float] = None,
        quality: Optional[float] = None,
        max_pages: Optional[int] = None,
        chromatic_threshold: Optional[float] = None,
        workers: Optional[int] = None,
    ) -> "Settings":
        """Explicit arguments win, then PAGE_THEME_* variables, then defaults."""
        settings = cls(
            scale=scale if scale is not None else _from_env("scale", float, DEFAULT_SCALE),
            quality=quality if quality is not None else _from_env("quality", float, DEFAULT_QUALITY),
            max_pages=max_pages if max_pages is not None else _from_env("max_pages", int, DEFAULT_MAX_PAGES),
            chromatic_threshold=(
                chromatic_threshold
                if chromatic_threshold is not None
                else _from_env("chromatic_threshold", float, CHROMATIC_THRESHOLD)
            ),
            workers=workers if workers is not None else _from_env("workers", int, None),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.scale <= 0:
            raise RuntimeError(f"scale must be > 0, got {self.scale}")
        if not 0 < self.quality <= 1:
            raise RuntimeError(f"quality must be in (0, 1], got {self.quality}")
        if self.max_pages < 1:
            raise RuntimeError(f"max_pages must be >= 1, got {self.max_pages}")
        if not 0 <= self.chromatic_threshold <= 1:
            raise RuntimeError(
                f"chromatic_threshold must be in [0, 1], got {self.chromatic_threshold}"
            )
        if self.workers is not None and self.workers < 1:
            raise RuntimeError(f"workers must be >= 1, got {self.workers}")
