"""Canonical path representation.

A lowered path only contains absolute ``MoveTo``, ``LineTo``, ``CubicTo``,
``ArcTo`` and ``ClosePath`` segments. ``ArcTo`` only appears when arc
preservation is enabled.
"""

from __future__ import annotations

import bisect
import math
from collections.abc import Iterator
from dataclasses import dataclass

from svg_simplify.geometry.arcs import (
    CenterArc,
    arc_to_cubics,
    endpoint_to_center,
    transform_arc_radii,
)
from svg_simplify.geometry.rect import Rect
from svg_simplify.geometry.transform import Transform

# Tolerance used when arcs must be flattened for measurement only.
MEASURE_TOLERANCE = 0.01


@dataclass(frozen=True)
class MoveTo:
    x: float
    y: float


@dataclass(frozen=True)
class LineTo:
    x: float
    y: float


@dataclass(frozen=True)
class CubicTo:
    x1: float
    y1: float
    x2: float
    y2: float
    x: float
    y: float


@dataclass(frozen=True)
class ArcTo:
    """Elliptical arc from the current point to ``(x, y)``.

    Keeps the SVG endpoint parameters unchanged; ``cx``/``cy`` is the center
    computed from them (equal to the endpoint midpoint for degenerate arcs).
    """

    rx: float
    ry: float
    x_axis_rotation: float
    large_arc: bool
    sweep: bool
    x: float
    y: float
    cx: float = 0.0
    cy: float = 0.0


@dataclass(frozen=True)
class ClosePath:
    pass


PathSegment = MoveTo | LineTo | CubicTo | ArcTo | ClosePath


class PathData:
    """Ordered list of absolute path segments."""

    def __init__(self, segments: list[PathSegment] | None = None) -> None:
        self.segments: list[PathSegment] = []
        # Current point and start of the current subpath.
        self._current = (0.0, 0.0)
        self._start = (0.0, 0.0)
        for segment in segments or ():
            self._append(segment)

    def __iter__(self) -> Iterator[PathSegment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __bool__(self) -> bool:
        return bool(self.segments)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathData):
            return NotImplemented
        return self.segments == other.segments

    def __repr__(self) -> str:
        return f"PathData({self.segments!r})"

    @classmethod
    def from_rect(cls, rect: Rect) -> PathData:
        path = cls()
        path.push_move_to(rect.x, rect.y)
        path.push_line_to(rect.right, rect.y)
        path.push_line_to(rect.right, rect.bottom)
        path.push_line_to(rect.x, rect.bottom)
        path.push_close_path()
        return path

    def _append(self, segment: PathSegment) -> None:
        self.segments.append(segment)
        if isinstance(segment, MoveTo):
            self._start = self._current = (segment.x, segment.y)
        elif isinstance(segment, ClosePath):
            self._current = self._start
        else:
            self._current = (segment.x, segment.y)

    def push_move_to(self, x: float, y: float) -> None:
        self._append(MoveTo(x, y))

    def push_line_to(self, x: float, y: float) -> None:
        self._append(LineTo(x, y))

    def push_cubic_to(
        self, x1: float, y1: float, x2: float, y2: float, x: float, y: float
    ) -> None:
        self._append(CubicTo(x1, y1, x2, y2, x, y))

    def push_quad_to(self, x1: float, y1: float, x: float, y: float) -> None:
        """Append a quadratic curve, converted into a cubic one."""
        px, py = self.last_point()
        self.push_cubic_to(
            (px + 2.0 * x1) / 3.0,
            (py + 2.0 * y1) / 3.0,
            (x + 2.0 * x1) / 3.0,
            (y + 2.0 * y1) / 3.0,
            x,
            y,
        )

    def push_arc_to(
        self,
        rx: float,
        ry: float,
        x_axis_rotation: float,
        large_arc: bool,
        sweep: bool,
        x: float,
        y: float,
        preserve: bool,
        tolerance: float,
    ) -> None:
        """Append an SVG arc, either as ``ArcTo`` or as cubic curves.

        Degenerate arcs follow the SVG rules: identical endpoints drop the
        segment, a zero radius turns it into a straight line.
        """
        px, py = self.last_point()
        if px == x and py == y:
            return
        arc = endpoint_to_center(px, py, rx, ry, x_axis_rotation, large_arc, sweep, x, y)
        if arc is None:
            self.push_line_to(x, y)
            return
        if preserve:
            self._append(
                ArcTo(abs(rx), abs(ry), x_axis_rotation, large_arc, sweep, x, y, arc.cx, arc.cy)
            )
            return
        for cubic in arc_to_cubics(arc, tolerance):
            self.push_cubic_to(*cubic)
        # Snap onto the exact endpoint to avoid drift in following segments.
        last = self.segments[-1]
        if isinstance(last, CubicTo):
            self.segments[-1] = CubicTo(last.x1, last.y1, last.x2, last.y2, x, y)
            self._current = (x, y)

    def push_close_path(self) -> None:
        self._append(ClosePath())

    def last_point(self) -> tuple[float, float]:
        """Current point after the last segment."""
        return self._current

    def bbox(self) -> Rect | None:
        """Exact bounding box of the geometry, or None for an empty path."""
        xs: list[float] = []
        ys: list[float] = []
        for start, seg in _with_start_points(self.segments):
            if isinstance(seg, (MoveTo, LineTo)):
                xs.append(seg.x)
                ys.append(seg.y)
            elif isinstance(seg, CubicTo):
                bx, by = _cubic_extrema(start, seg)
                xs.extend(bx)
                ys.extend(by)
            elif isinstance(seg, ArcTo):
                for cubic in _arc_as_cubics(start, seg, MEASURE_TOLERANCE):
                    bx, by = _cubic_extrema(start, cubic)
                    xs.extend(bx)
                    ys.extend(by)
                    start = (cubic.x, cubic.y)
        if not xs:
            return None
        return Rect.from_ltrb(min(xs), min(ys), max(xs), max(ys))

    def transformed(self, ts: Transform) -> PathData:
        """Return the path mapped through ``ts``; arcs stay exact arcs."""
        if ts.is_identity():
            return PathData(self.segments)
        out: list[PathSegment] = []
        for _start, seg in _with_start_points(self.segments):
            if isinstance(seg, MoveTo):
                out.append(MoveTo(*ts.apply(seg.x, seg.y)))
            elif isinstance(seg, LineTo):
                out.append(LineTo(*ts.apply(seg.x, seg.y)))
            elif isinstance(seg, CubicTo):
                out.append(
                    CubicTo(
                        *ts.apply(seg.x1, seg.y1),
                        *ts.apply(seg.x2, seg.y2),
                        *ts.apply(seg.x, seg.y),
                    )
                )
            elif isinstance(seg, ArcTo):
                rx, ry, rotation = transform_arc_radii(seg.rx, seg.ry, seg.x_axis_rotation, ts)
                sweep = (not seg.sweep) if ts.flips_orientation() else seg.sweep
                x, y = ts.apply(seg.x, seg.y)
                cx, cy = ts.apply(seg.cx, seg.cy)
                out.append(ArcTo(rx, ry, rotation, seg.large_arc, sweep, x, y, cx, cy))
            else:
                out.append(seg)
        return PathData(out)

    def flattened(self, tolerance: float = MEASURE_TOLERANCE) -> list[list[tuple[float, float]]]:
        """Approximate every subpath with a polyline."""
        polylines: list[list[tuple[float, float]]] = []
        current: list[tuple[float, float]] = []
        for start, seg in _with_start_points(self.segments):
            if isinstance(seg, MoveTo):
                if len(current) > 1:
                    polylines.append(current)
                current = [(seg.x, seg.y)]
            elif isinstance(seg, LineTo):
                current.append((seg.x, seg.y))
            elif isinstance(seg, CubicTo):
                current.extend(_flatten_cubic(start, seg, tolerance))
            elif isinstance(seg, ArcTo):
                for cubic in _arc_as_cubics(start, seg, tolerance):
                    current.extend(_flatten_cubic(start, cubic, tolerance))
                    start = (cubic.x, cubic.y)
            elif isinstance(seg, ClosePath) and current:
                current.append(current[0])
        if len(current) > 1:
            polylines.append(current)
        return polylines

    def length(self) -> float:
        return sum(
            math.dist(a, b)
            for polyline in self.flattened()
            for a, b in zip(polyline, polyline[1:])
        )


class PathSampler:
    """Arc-length parameterization of a path (used for text on a path)."""

    def __init__(self, path: PathData, tolerance: float = MEASURE_TOLERANCE) -> None:
        self._points: list[tuple[float, float]] = []
        self._angles: list[float] = []
        self._offsets: list[float] = []
        total = 0.0
        for polyline in path.flattened(tolerance):
            for a, b in zip(polyline, polyline[1:]):
                seg_len = math.dist(a, b)
                if seg_len == 0.0:
                    continue
                self._points.append(a)
                self._angles.append(math.atan2(b[1] - a[1], b[0] - a[0]))
                self._offsets.append(total)
                total += seg_len
        self.length = total

    def sample(self, distance: float) -> tuple[float, float, float] | None:
        """Point and tangent angle (radians) at ``distance`` along the path.

        Returns None when ``distance`` falls outside the path.
        """
        if not self._offsets or distance < 0.0 or distance > self.length:
            return None
        idx = max(0, bisect.bisect_right(self._offsets, distance) - 1)
        x0, y0 = self._points[idx]
        angle = self._angles[idx]
        along = distance - self._offsets[idx]
        return (x0 + math.cos(angle) * along, y0 + math.sin(angle) * along, angle)


def _with_start_points(
    segments: list[PathSegment],
) -> Iterator[tuple[tuple[float, float], PathSegment]]:
    """Yield each segment together with the current point before it."""
    current = (0.0, 0.0)
    subpath_start = (0.0, 0.0)
    for seg in segments:
        yield current, seg
        if isinstance(seg, MoveTo):
            current = subpath_start = (seg.x, seg.y)
        elif isinstance(seg, ClosePath):
            current = subpath_start
        else:
            current = (seg.x, seg.y)


def _arc_as_cubics(start: tuple[float, float], seg: ArcTo, tolerance: float) -> list[CubicTo]:
    arc: CenterArc | None = endpoint_to_center(
        start[0], start[1], seg.rx, seg.ry, seg.x_axis_rotation, seg.large_arc, seg.sweep, seg.x, seg.y
    )
    if arc is None:
        # Straight line, expressed as a flat cubic.
        return [CubicTo(start[0], start[1], seg.x, seg.y, seg.x, seg.y)]
    return [CubicTo(*c) for c in arc_to_cubics(arc, tolerance)]


def _cubic_point(p0: float, p1: float, p2: float, p3: float, t: float) -> float:
    mt = 1.0 - t
    return mt * mt * mt * p0 + 3 * mt * mt * t * p1 + 3 * mt * t * t * p2 + t * t * t * p3


def _cubic_roots(p0: float, p1: float, p2: float, p3: float) -> list[float]:
    """Parameters in (0, 1) where the derivative of one coordinate vanishes."""
    a = -p0 + 3 * p1 - 3 * p2 + p3
    b = 2 * (p0 - 2 * p1 + p2)
    c = p1 - p0
    roots: list[float] = []
    if abs(a) < 1e-12:
        if abs(b) > 1e-12:
            roots.append(-c / b)
    else:
        disc = b * b - 4 * a * c
        if disc >= 0:
            sq = math.sqrt(disc)
            roots.extend(((-b + sq) / (2 * a), (-b - sq) / (2 * a)))
    return [t for t in roots if 0.0 < t < 1.0]


def _cubic_extrema(start: tuple[float, float], seg: CubicTo) -> tuple[list[float], list[float]]:
    x0, y0 = start
    xs = [x0, seg.x]
    ys = [y0, seg.y]
    for t in _cubic_roots(x0, seg.x1, seg.x2, seg.x):
        xs.append(_cubic_point(x0, seg.x1, seg.x2, seg.x, t))
    for t in _cubic_roots(y0, seg.y1, seg.y2, seg.y):
        ys.append(_cubic_point(y0, seg.y1, seg.y2, seg.y, t))
    return xs, ys


def _flatten_cubic(
    start: tuple[float, float], seg: CubicTo, tolerance: float
) -> list[tuple[float, float]]:
    x0, y0 = start
    # Control polygon length bounds the number of chords needed.
    hull = (
        math.dist((x0, y0), (seg.x1, seg.y1))
        + math.dist((seg.x1, seg.y1), (seg.x2, seg.y2))
        + math.dist((seg.x2, seg.y2), (seg.x, seg.y))
    )
    steps = max(1, min(1000, math.ceil(math.sqrt(hull / tolerance))))
    return [
        (
            _cubic_point(x0, seg.x1, seg.x2, seg.x, i / steps),
            _cubic_point(y0, seg.y1, seg.y2, seg.y, i / steps),
        )
        for i in range(1, steps + 1)
    ]
