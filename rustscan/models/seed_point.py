from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class SeedPoint:
    """A user hint in image space: (x, y) in pixels, origin top-left."""
    x: float
    y: float

    @classmethod
    def coerce(cls, raw: Any) -> "SeedPoint":
        """
        Accept a SeedPoint, an (x, y) pair or a {"x": .., "y": ..} mapping.
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, Mapping):
            return cls(float(raw["x"]), float(raw["y"]))
        x, y = raw
        return cls(float(x), float(y))
