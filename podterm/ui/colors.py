from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from rich.errors import StyleSyntaxError
from rich.style import Style


@dataclass(frozen=True)
class AppColors:
    normal: str = "white"
    bold: str = "bold bright_white"
    highlighted_active: str = "bold black on bright_cyan"
    highlighted: str = "black on grey62"
    played: str = "grey50"
    error: str = "bold red"
    border: str = "cyan"
    border_active: str = "bright_cyan"

    def with_overrides(self, overrides: Mapping[str, Any]) -> AppColors:
        known = {slot.name for slot in fields(self)}
        updates: dict[str, str] = {}
        for slot, value in overrides.items():
            if slot not in known:
                raise ValueError(f"Unknown color slot '{slot}'. Valid: {', '.join(sorted(known))}")
            if not isinstance(value, str):
                raise ValueError(f"Color '{slot}' must be a style string")
            try:
                Style.parse(value)
            except StyleSyntaxError as exc:
                raise ValueError(f"Invalid style for color '{slot}': {exc}") from exc
            updates[slot] = value
        return replace(self, **updates)
