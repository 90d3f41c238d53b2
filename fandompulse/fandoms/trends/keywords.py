"""Search keywords derived from fandom display names."""

from __future__ import annotations

import re

# Display names whose searchable keyword cannot be derived mechanically
KEYWORD_OVERRIDES = {
    "BINI Blooms": "BINI",
    "BTS ARMY": "BTS",
    "NewJeans Bunnies": "NewJeans",
    "SEVENTEEN CARAT": "SEVENTEEN",
    "KAIA Fans": "KAIA",
    "ALAMAT Fans": "ALAMAT",
    "G22 Fans": "G22",
    "VXON - Vixies": "VXON",
    "YGIG - WeGo": "YGIG",
    "JMFyang Fans": "JMFyang",
    "AshDres Fans": "AshDres",
    "AlDub Nation": "AlDub",
    "Cup of Joe (Joewahs)": "Cup of Joe band",
    "Team Payaman / Cong TV Universe Fans": "Cong TV",
    "r/DragRacePhilippines": "Drag Race Philippines",
}

# Names containing these always search as the bare token
CONTAINED_KEYWORDS = ("SB19", "PLUUS")

FANDOM_SUFFIXES = (
    " ARMY",
    " A'TIN",
    " Blooms",
    " CARAT",
    " BLINK",
    " ONCE",
    " Fans",
    " Nation",
    " Squad",
    " Stans",
)

_SPLIT_PATTERN = re.compile(r"[/\\(]")


def simplify_keyword(name: str) -> str:
    """
    Map a fandom display name to a searchable trends keyword.

    Order: explicit override, contained token, override prefix match on the
    first word, then the text before any '/', '\\' or '(' (taking the part
    after ':' if present), else the first two words.
    """
    if name in KEYWORD_OVERRIDES:
        return KEYWORD_OVERRIDES[name]

    for token in CONTAINED_KEYWORDS:
        if token in name:
            return token

    lowered = name.lower()
    for key, keyword in KEYWORD_OVERRIDES.items():
        if lowered.startswith(key.lower().split(" ")[0]):
            return keyword

    cleaned = _SPLIT_PATTERN.split(name)[0].strip()
    if ":" in cleaned:
        return cleaned.split(":", 1)[1].strip() or cleaned
    return " ".join(cleaned.split()[:2])


def artist_keyword(name: str) -> str:
    """Strip a fandom suffix ("BTS ARMY" -> "BTS"); otherwise the first word."""
    for suffix in FANDOM_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)].strip()
    words = name.split(" ")
    if len(words) > 1:
        return words[0]
    return name
