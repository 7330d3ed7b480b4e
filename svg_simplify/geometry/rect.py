"""Axis-aligned rectangles."""

from __future__ import annotations

from dataclasses import dataclass

from svg_simplify.geometry.transform import Transform


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_ltrb(cls, left: float, top: float, right: float, bottom: float) -> Rect:
        return cls(left, top, right - left, bottom - top)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def union(self, other: Rect | None) -> Rect:
        if other is None:
            return self
        return Rect.from_ltrb(
            min(self.x, other.x),
            min(self.y, other.y),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def transformed(self, ts: Transform) -> Rect:
        """Bounding box of the transformed rectangle."""
        corners = [
            ts.apply(self.x, self.y),
            ts.apply(self.right, self.y),
            ts.apply(self.right, self.bottom),
            ts.apply(self.x, self.bottom),
        ]
        xs = [p[0] for p in corners]
        ys = [p[1] for p in corners]
        return Rect.from_ltrb(min(xs), min(ys), max(xs), max(ys))

    def bbox_transform(self) -> Transform:
        """Map the unit square onto this rectangle (objectBoundingBox units)."""
        return Transform(self.width, 0.0, 0.0, self.height, self.x, self.y)
