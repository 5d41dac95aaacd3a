"""Color palette for the Coffee console."""

from __future__ import annotations

PALETTE = {
    "espresso": "#2B1B17",
    "roast": "#6F4E37",
    "crema": "#C8A27A",
    "foam": "#F5EBDD",
    "white": "#FFFFFF",
    "cherry": "#B23A48",
}

BACKGROUND = PALETTE["espresso"]
SURFACE = "#3a2620"  # Slightly lighter than the background for cards.
SURFACE_ALT = "#45302a"
TEXT_PRIMARY = PALETTE["foam"]
TEXT_MUTED = "#D9C7B3"

FONT_FAMILY = "Segoe UI"
FONT_SIZE = 11

def muted(text: str) -> str:
    """Return inline HTML to render muted helper text."""

    return f"<span style='color: {TEXT_MUTED};'>{text}</span>"

__all__ = [
    "PALETTE",
    "BACKGROUND",
    "SURFACE",
    "SURFACE_ALT",
    "TEXT_PRIMARY",
    "TEXT_MUTED",
    "FONT_FAMILY",
    "FONT_SIZE",
    "muted",
]
