"""Guess which telemetry columns hold speed, pedals, gear and position.

Telemetry exports from different games name their columns differently
(``Speed_kmh``, ``velocity``, ``WorldPositionX``...). Resolution is a
best-effort, case-insensitive substring match against a keyword list per
field; the first matching header, in file order, wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, fields

COLUMN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "speed": ("speed", "velocity", "kmh", "mph"),
    "throttle": ("throttle", "gas"),
    "brake": ("brake",),
    "gear": ("gear",),
    "pos_x": ("position_x", "x_pos", "x", "worldpositionx"),
    "pos_z": ("position_z", "z_pos", "z", "worldpositionz"),
}


@dataclass(frozen=True)
class ColumnRoles:
    """Header name resolved for each logical telemetry field (None if absent)."""

    speed: str | None = None
    throttle: str | None = None
    brake: str | None = None
    gear: str | None = None
    pos_x: str | None = None
    pos_z: str | None = None

    @property
    def has_position(self) -> bool:
        return self.pos_x is not None and self.pos_z is not None

    def resolved(self) -> dict[str, str]:
        """Return only the fields that matched a header."""
        return {
            f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None
        }


def resolve_column(headers: Sequence[str], keywords: Iterable[str]) -> str | None:
    """Return the first header whose lowercased text contains any keyword."""
    keys = tuple(k.lower() for k in keywords)
    for header in headers:
        lowered = str(header).lower()
        if any(k in lowered for k in keys):
            return str(header)
    return None


def resolve_columns(
    headers: Iterable[str],
    keyword_map: Mapping[str, Iterable[str]] = COLUMN_KEYWORDS,
) -> ColumnRoles:
    """Resolve every logical field in *keyword_map* against *headers*.

    Fields missing from *keyword_map* stay unresolved.
    """
    header_list = [str(h) for h in headers]
    role_names = {f.name for f in fields(ColumnRoles)}
    resolved = {
        name: resolve_column(header_list, keywords)
        for name, keywords in keyword_map.items()
        if name in role_names
    }
    return ColumnRoles(**resolved)
