from __future__ import annotations

from typing import Optional

GENUS_COLORS = {
    "Poc": "#FF5A45",
    "Por": "#5DD5F3",
    "Acr": "#FFD700",
    "Mil": "#B8621B",
}

FATE_COLORS = {
    "Growth": "#2ECC71",
    "Shrinkage": "#F39C12",
    "Recruitment": "#9B59B6",
    "Death": "#E74C3C",
    "Fission": "#3498DB",
    "Fusion": "#1ABC9C",
    "Missing Data": "#95A5A6",
    "default": "#7F8C8D",
}

# Checked in order; fates like "Growth/Fission" take the first match.
_FATE_ORDER = ["Recruitment", "Death", "Growth", "Shrinkage", "Fission", "Fusion"]


def genus_color(genus: str) -> str:
    return GENUS_COLORS.get(genus, FATE_COLORS["default"])


def fate_category(fate: Optional[str]) -> str:
    if not fate:
        return "Missing Data"
    lowered = fate.lower()
    for name in _FATE_ORDER:
        if name.lower() in lowered:
            return name
    return "Other"


def size_color(size: float, min_size: float, max_size: float) -> str:
    if max_size <= min_size:
        normalized = 0.0
    else:
        normalized = min(max((size - min_size) / (max_size - min_size), 0.0), 1.0)
    r = round(normalized * 255)
    b = round((1 - normalized) * 255)
    return f"rgb({r}, 0, {b})"
