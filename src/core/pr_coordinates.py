"""
Presentation State Coordinate Normalization

Converts the flat GraphicData arrays of graphic annotations into pixel-space
points. Coordinates are either pixel coordinates or DISPLAY coordinates
(fractions of the displayed area, 0..1) that must be scaled by the target
width and height.

Order of operations:
    1. Apply the optional inverse transform to the raw (x, y) pairs
    2. Scale DISPLAY coordinates by (width, height); pixel coordinates pass through

Inputs:
    - Flat float list [x0, y0, x1, y1, ...]
    - Display/pixel unit flag, target width/height, optional QTransform

Outputs:
    - List of (x, y) float tuples in pixel space

Requirements:
    - PySide6 QTransform/QPointF for the inverse affine transform
    - math for distances
"""

import math
from typing import List, Optional, Sequence, Tuple

from PySide6.QtCore import QPointF
from PySide6.QtGui import QTransform

Point = Tuple[float, float]

DISPLAY_UNITS = "DISPLAY"


def is_display_units(units: Optional[str]) -> bool:
    """True when the annotation units string denotes display-fraction coordinates."""
    return units is not None and units.strip().upper() == DISPLAY_UNITS


def split_points(graphic_data: Optional[Sequence[float]]) -> List[Point]:
    """
    Split interleaved GraphicData into (x, y) pairs.

    A trailing unpaired value is dropped so the result always holds full pairs.
    """
    if not graphic_data:
        return []
    values = [float(v) for v in graphic_data]
    return [(values[i], values[i + 1]) for i in range(0, len(values) - 1, 2)]


def apply_transform(points: Sequence[Point], transform: Optional[QTransform]) -> List[Point]:
    """Map every pair through an affine transform (identity when None)."""
    if transform is None:
        return [(float(x), float(y)) for x, y in points]
    mapped = []
    for x, y in points:
        p = transform.map(QPointF(x, y))
        mapped.append((p.x(), p.y()))
    return mapped


def scale_point(point: Point, is_display: bool, width: float, height: float) -> Point:
    x, y = point
    if is_display:
        return x * width, y * height
    return x, y


def normalize_points(graphic_data: Optional[Sequence[float]], is_display: bool,
                     width: float, height: float,
                     inverse_transform: Optional[QTransform] = None) -> List[Point]:
    """
    Produce the final pixel-space points of a graphic.

    Args:
        graphic_data: Flat interleaved coordinates
        is_display: True for DISPLAY (fractional) units
        width: Target width used to de-normalize x
        height: Target height used to de-normalize y
        inverse_transform: Optional affine transform applied before scaling

    Returns:
        List of (x, y) tuples
    """
    points = apply_transform(split_points(graphic_data), inverse_transform)
    return [scale_point(p, is_display, width, height) for p in points]


def euclidean_distance(p1: Point, p2: Point, is_display: bool = False,
                       width: float = 1.0, height: float = 1.0) -> float:
    """
    Distance between two points with per-axis scaling applied before the norm.

    Scaling the deltas (not the resulting distance) keeps non-square display
    areas correct.
    """
    dx = p1[0] - p2[0]
    dy = p1[1] - p2[1]
    if is_display:
        dx *= width
        dy *= height
    return math.sqrt(dx * dx + dy * dy)
