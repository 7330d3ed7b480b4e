"""2D affine transforms and the SVG ``transform`` attribute parser."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from svg_simplify.exceptions import InvalidValueError

_TRANSFORM_RE = re.compile(r"\s*(matrix|translate|scale|rotate|skewX|skewY)\s*\(([^)]*)\)\s*,?")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")

_EPSILON = 1e-12


@dataclass(frozen=True)
class Transform:
    """Affine matrix ``(a, b, c, d, e, f)`` in SVG order.

    Maps ``(x, y)`` to ``(a*x + c*y + e, b*x + d*y + f)``.
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def identity(cls) -> Transform:
        return cls()

    @classmethod
    def translate(cls, tx: float, ty: float = 0.0) -> Transform:
        return cls(1.0, 0.0, 0.0, 1.0, tx, ty)

    @classmethod
    def scale(cls, sx: float, sy: float | None = None) -> Transform:
        return cls(sx, 0.0, 0.0, sx if sy is None else sy, 0.0, 0.0)

    @classmethod
    def rotate(cls, degrees: float, cx: float = 0.0, cy: float = 0.0) -> Transform:
        rad = math.radians(degrees)
        cos_a, sin_a = math.cos(rad), math.sin(rad)
        rotation = cls(cos_a, sin_a, -sin_a, cos_a, 0.0, 0.0)
        if cx == 0.0 and cy == 0.0:
            return rotation
        return cls.translate(cx, cy) @ rotation @ cls.translate(-cx, -cy)

    @classmethod
    def skew_x(cls, degrees: float) -> Transform:
        return cls(1.0, 0.0, math.tan(math.radians(degrees)), 1.0, 0.0, 0.0)

    @classmethod
    def skew_y(cls, degrees: float) -> Transform:
        return cls(1.0, math.tan(math.radians(degrees)), 0.0, 1.0, 0.0, 0.0)

    def __matmul__(self, other: Transform) -> Transform:
        """Compose: ``(self @ other)`` applies ``other`` first, then ``self``."""
        a1, b1, c1, d1, e1, f1 = self.as_tuple()
        a2, b2, c2, d2, e2, f2 = other.as_tuple()
        return Transform(
            a1 * a2 + c1 * b2,
            b1 * a2 + d1 * b2,
            a1 * c2 + c1 * d2,
            b1 * c2 + d1 * d2,
            a1 * e2 + c1 * f2 + e1,
            b1 * e2 + d1 * f2 + f1,
        )

    def as_tuple(self) -> tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.e, self.f)

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f)

    def apply_vector(self, x: float, y: float) -> tuple[float, float]:
        return (self.a * x + self.c * y, self.b * x + self.d * y)

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    def is_identity(self) -> bool:
        return all(
            math.isclose(v, ref, abs_tol=_EPSILON)
            for v, ref in zip(self.as_tuple(), (1.0, 0.0, 0.0, 1.0, 0.0, 0.0))
        )

    def is_invertible(self) -> bool:
        return abs(self.determinant) > _EPSILON

    def flips_orientation(self) -> bool:
        return self.determinant < 0

    def inverse(self) -> Transform:
        det = self.determinant
        if abs(det) <= _EPSILON:
            raise ZeroDivisionError("transform is not invertible")
        a, b, c, d, e, f = self.as_tuple()
        return Transform(
            d / det,
            -b / det,
            -c / det,
            a / det,
            (c * f - d * e) / det,
            (b * e - a * f) / det,
        )

    def scale_factors(self) -> tuple[float, float]:
        """Length of the transformed unit x and y axes."""
        return (math.hypot(self.a, self.b), math.hypot(self.c, self.d))

    def max_scale(self) -> float:
        return max(self.scale_factors())

    def mean_scale(self) -> float:
        """Scale applied to non-directional lengths (e.g. stroke width)."""
        return math.sqrt(abs(self.determinant))


def parse_transform(value: str | None) -> Transform:
    """Parse an SVG transform list into a single matrix.

    Raises:
        InvalidValueError: The list is malformed. Per SVG error handling the
            caller treats the whole attribute as absent.
    """
    if value is None:
        return Transform()
    text = value.strip()
    if not text or text == "none":
        return Transform()

    result = Transform()
    pos = 0
    while pos < len(text):
        match = _TRANSFORM_RE.match(text, pos)
        if match is None:
            raise InvalidValueError(f"malformed transform list: {value!r}")
        pos = match.end()
        kind = match.group(1)
        nums = [float(n) for n in _NUMBER_RE.findall(match.group(2))]
        result = result @ _transform_from(kind, nums, value)
    return result


def _transform_from(kind: str, nums: list[float], source: str) -> Transform:
    count = len(nums)
    if kind == "matrix" and count == 6:
        return Transform(*nums)
    if kind == "translate" and count in (1, 2):
        return Transform.translate(nums[0], nums[1] if count == 2 else 0.0)
    if kind == "scale" and count in (1, 2):
        return Transform.scale(nums[0], nums[1] if count == 2 else None)
    if kind == "rotate" and count in (1, 3):
        if count == 3:
            return Transform.rotate(nums[0], nums[1], nums[2])
        return Transform.rotate(nums[0])
    if kind == "skewX" and count == 1:
        return Transform.skew_x(nums[0])
    if kind == "skewY" and count == 1:
        return Transform.skew_y(nums[0])
    raise InvalidValueError(f"wrong argument count for {kind}() in {source!r}")
