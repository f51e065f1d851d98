"""Two-colour themes and the built-in presets."""

from dataclasses import dataclass
from typing import Optional

from page_theme.colors import RGB, blend, parse_hex_color, to_hex

# 0x99 / 0xFF: muted text is the foreground at 60 % opacity.
MUTED_OPACITY = 0x99 / 0xFF


@dataclass(frozen=True)
class Theme:
    """Background / foreground pair driving the recolor palette.

    ``muted`` and ``accent`` are carried for callers; recoloring only
    reads ``background`` and ``foreground``.
    """

    background: RGB
    foreground: RGB
    muted: Optional[RGB] = None
    accent: Optional[RGB] = None

    @classmethod
    def from_hex(
        cls,
        background: str,
        foreground: str,
        accent: Optional[str] = None,
    ) -> "Theme":
        return cls(
            background=parse_hex_color(background),
            foreground=parse_hex_color(foreground),
            accent=parse_hex_color(accent) if accent else None,
        )

    @property
    def muted_foreground(self) -> RGB:
        if self.muted is not None:
            return self.muted
        # Alpha-composite the foreground over the background.
        return blend(self.foreground, self.background, 1 - MUTED_OPACITY)

    def describe(self) -> str:
        return f"{to_hex(self.background)} / {to_hex(self.foreground)}"


PRESETS: dict[str, Theme] = {
    "light-minimal": Theme.from_hex("#f8f9fa", "#1e293b", accent="#64748b"),
    "dark-bold": Theme.from_hex("#0f172a", "#f1f5f9", accent="#3b82f6"),
    "colorful-warm": Theme.from_hex("#1c1917", "#fef3c7", accent="#ea580c"),
    "structured-corporate": Theme.from_hex("#0c1222", "#e2e8f0", accent="#1d4ed8"),
}


def get_preset(name: str) -> Theme:
    try:
        return PRESETS[name.lower()]
    except KeyError:
        raise KeyError(
            f"Unknown theme {name!r}. Choose from: {', '.join(sorted(PRESETS))}"
        ) from None
