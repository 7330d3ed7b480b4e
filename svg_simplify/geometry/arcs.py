"""Elliptical arc helpers.

Endpoint-to-center conversion follows the SVG implementation notes
(https://www.w3.org/TR/SVG/implnote.html#ArcImplementationNotes). Cubic
approximation uses the classic ``4/3 * tan(angle / 4)`` control arm; the number
of segments is chosen so the radial error stays below a tolerance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from svg_simplify.geometry.transform import Transform

# Radial error of one cubic spanning angle t on a unit circle is about
# ERROR_COEFF * (t / 2pi) ** 6.
_ERROR_COEFF = 1.1163
_MIN_SEGMENTS_PER_TURN = 3.999_999

Cubic = tuple[float, float, float, float, float, float]


@dataclass(frozen=True)
class CenterArc:
    """Arc in center parameterization.

    Points are ``center + R(rotation) @ (rx * cos(t), ry * sin(t))`` for
    ``t`` from ``start_angle`` to ``start_angle + sweep_angle`` (radians).
    """

    cx: float
    cy: float
    rx: float
    ry: float
    rotation: float
    start_angle: float
    sweep_angle: float

    def point(self, angle: float) -> tuple[float, float]:
        cos_r, sin_r = math.cos(self.rotation), math.sin(self.rotation)
        ux = self.rx * math.cos(angle)
        uy = self.ry * math.sin(angle)
        return (self.cx + cos_r * ux - sin_r * uy, self.cy + sin_r * ux + cos_r * uy)

    def derivative(self, angle: float) -> tuple[float, float]:
        cos_r, sin_r = math.cos(self.rotation), math.sin(self.rotation)
        ux = -self.rx * math.sin(angle)
        uy = self.ry * math.cos(angle)
        return (cos_r * ux - sin_r * uy, sin_r * ux + cos_r * uy)


def _angle_between(ux: float, uy: float, vx: float, vy: float) -> float:
    return math.atan2(ux * vy - uy * vx, ux * vx + uy * vy)


def endpoint_to_center(
    x0: float,
    y0: float,
    rx: float,
    ry: float,
    x_axis_rotation: float,
    large_arc: bool,
    sweep: bool,
    x: float,
    y: float,
) -> CenterArc | None:
    """Convert SVG endpoint arc parameters to a center arc.

    Returns None when the arc degenerates to a straight line (a zero radius)
    or to nothing (identical endpoints); callers apply the SVG rules.
    """
    if x0 == x and y0 == y:
        return None
    rx, ry = abs(rx), abs(ry)
    if rx == 0.0 or ry == 0.0:
        return None

    phi = math.radians(x_axis_rotation % 360.0)
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)
    dx2 = (x0 - x) / 2.0
    dy2 = (y0 - y) / 2.0
    x1 = cos_phi * dx2 + sin_phi * dy2
    y1 = -sin_phi * dx2 + cos_phi * dy2

    # Scale up radii that cannot span the endpoints.
    lam = (x1 / rx) ** 2 + (y1 / ry) ** 2
    if lam > 1.0:
        s = math.sqrt(lam)
        rx *= s
        ry *= s

    num = (rx * ry) ** 2 - (rx * y1) ** 2 - (ry * x1) ** 2
    den = (rx * y1) ** 2 + (ry * x1) ** 2
    coef = math.sqrt(max(0.0, num / den)) if den else 0.0
    if large_arc == sweep:
        coef = -coef
    cxp = coef * rx * y1 / ry
    cyp = -coef * ry * x1 / rx

    cx = cos_phi * cxp - sin_phi * cyp + (x0 + x) / 2.0
    cy = sin_phi * cxp + cos_phi * cyp + (y0 + y) / 2.0

    ux, uy = (x1 - cxp) / rx, (y1 - cyp) / ry
    vx, vy = (-x1 - cxp) / rx, (-y1 - cyp) / ry
    start = _angle_between(1.0, 0.0, ux, uy)
    delta = math.fmod(_angle_between(ux, uy, vx, vy), 2.0 * math.pi)
    if not sweep and delta > 0:
        delta -= 2.0 * math.pi
    elif sweep and delta < 0:
        delta += 2.0 * math.pi

    return CenterArc(cx, cy, rx, ry, phi, start, delta)


def cubic_count(arc: CenterArc, tolerance: float) -> int:
    """Number of cubic segments keeping the approximation under ``tolerance``.

    A fractional ideal count is rounded up.
    """
    scaled_err = max(arc.rx, arc.ry) / tolerance
    per_turn = max((_ERROR_COEFF * scaled_err) ** (1.0 / 6.0), _MIN_SEGMENTS_PER_TURN)
    return max(1, math.ceil(per_turn * abs(arc.sweep_angle) / (2.0 * math.pi)))


def arc_to_cubics(arc: CenterArc, tolerance: float) -> list[Cubic]:
    """Approximate ``arc`` with cubic curves ``(x1, y1, x2, y2, x, y)``."""
    count = cubic_count(arc, tolerance)
    step = arc.sweep_angle / count
    arm = 4.0 / 3.0 * math.tan(step / 4.0)

    cubics: list[Cubic] = []
    angle = arc.start_angle
    px, py = arc.point(angle)
    for _ in range(count):
        end_angle = angle + step
        ex, ey = arc.point(end_angle)
        d0x, d0y = arc.derivative(angle)
        d1x, d1y = arc.derivative(end_angle)
        cubics.append(
            (
                px + arm * d0x,
                py + arm * d0y,
                ex - arm * d1x,
                ey - arm * d1y,
                ex,
                ey,
            )
        )
        angle = end_angle
        px, py = ex, ey
    return cubics


def transform_arc_radii(
    rx: float, ry: float, x_axis_rotation: float, ts: Transform
) -> tuple[float, float, float]:
    """Map ellipse radii and rotation (degrees) through the linear part of ``ts``.

    The image of an ellipse under an affine map is an ellipse; its radii are
    the singular values of ``L @ R(rotation) @ diag(rx, ry)``.
    """
    phi = math.radians(x_axis_rotation)
    cos_p, sin_p = math.cos(phi), math.sin(phi)
    # Columns of R(phi) @ diag(rx, ry), mapped through L.
    m11, m21 = ts.apply_vector(rx * cos_p, rx * sin_p)
    m12, m22 = ts.apply_vector(-ry * sin_p, ry * cos_p)

    s11 = m11 * m11 + m12 * m12
    s12 = m11 * m21 + m12 * m22
    s22 = m21 * m21 + m22 * m22

    mean = (s11 + s22) / 2.0
    spread = math.hypot((s11 - s22) / 2.0, s12)
    new_rx = math.sqrt(max(0.0, mean + spread))
    new_ry = math.sqrt(max(0.0, mean - spread))
    new_rotation = math.degrees(0.5 * math.atan2(2.0 * s12, s11 - s22))
    return new_rx, new_ry, new_rotation
