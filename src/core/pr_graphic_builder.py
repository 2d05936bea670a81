"""
Presentation State Graphic Builder

Reconstructs renderable shapes from DICOM graphic annotation records
(Graphic Object Sequence items of a Presentation State, SCOORD content items
of a Structured Report) and from Compound Graphic Sequence items.

Supported graphic types:
    - Graphic objects: POINT, MULTIPOINT, POLYLINE, INTERPOLATED, CIRCLE, ELLIPSE
    - Compound graphics: POLYLINE, ELLIPSE, POINT (always fixed shapes)

A shape is only produced when the point count matches the graphic type;
otherwise the result is None. Only the editable polygon/polyline constructors
may raise InvalidShapeException.

Inputs:
    - Graphic record (pydicom Dataset or AttributeView)
    - Default color, label visibility, target width/height, editable flag,
      optional inverse QTransform (DISPLAY units only), structured-report flag

Outputs:
    - EditableShape / FixedShape from tools.pr_graphic_items, or None

Requirements:
    - PySide6 (QPainterPath, QTransform, QRectF, QPointF, QColor)
    - core.pr_style, core.pr_coordinates, utils.dicom_utils
"""

import math
from typing import List, Optional, Sequence, Tuple

from PySide6.QtCore import QPointF, QRectF
from PySide6.QtGui import QColor, QPainterPath, QTransform

from core.pr_coordinates import (
    Point,
    apply_transform,
    euclidean_distance,
    is_display_units,
    normalize_points,
    scale_point,
    split_points,
)
from core.pr_style import StyleSpec, resolve_style
from tools.pr_graphic_items import (
    DEFAULT_POINT_SIZE,
    EllipseShape,
    FixedShape,
    PointShape,
    PolygonShape,
    PolylineShape,
    Shape,
)
from utils.debug_log import DEBUG, DiagnosticLog, report
from utils.dicom_utils import (
    AttributeView,
    COMPOUND_GRAPHIC_INSTANCE_ID,
    COMPOUND_GRAPHIC_TYPE,
    COMPOUND_GRAPHIC_UNITS,
    GRAPHIC_ANNOTATION_UNITS,
    GRAPHIC_DATA,
    GRAPHIC_GROUP_ID,
    GRAPHIC_TYPE,
)

POINT = "POINT"
MULTIPOINT = "MULTIPOINT"
POLYLINE = "POLYLINE"
POLYGON = "POLYGON"
INTERPOLATED = "INTERPOLATED"
CIRCLE = "CIRCLE"
ELLIPSE = "ELLIPSE"

GRAPHIC_TYPES = (POINT, MULTIPOINT, POLYLINE, INTERPOLATED, CIRCLE, ELLIPSE)
COMPOUND_GRAPHIC_TYPES = (POLYLINE, ELLIPSE, POINT)

_EPSILON = 1e-6


def _is_equal(a: float, b: float) -> bool:
    return abs(a - b) < _EPSILON


def _as_view(record) -> AttributeView:
    return record if isinstance(record, AttributeView) else AttributeView(record)


def build_path(points: Sequence[Point]) -> QPainterPath:
    """Sequential line segments through the points."""
    path = QPainterPath(QPointF(points[0][0], points[0][1]))
    for x, y in points[1:]:
        path.lineTo(x, y)
    return path


def build_interpolated_path(points: Sequence[Point]) -> QPainterPath:
    """
    Smooth path through the points using one quadratic segment per pair.

    The control point sits a quarter of the segment length away from the
    midpoint along the unit perpendicular (-dy/dist, dx/dist). Coincident
    consecutive points become a plain line-to.
    """
    lx, ly = points[0]
    path = QPainterPath(QPointF(lx, ly))
    for x, y in points[1:]:
        dx = x - lx
        dy = y - ly
        dist = math.sqrt(dx * dx + dy * dy)
        if dist == 0.0:
            path.lineTo(x, y)
        else:
            ux = -dy / dist
            uy = dx / dist
            cx = (lx + x) * 0.5 + dist * 0.25 * ux
            cy = (ly + y) * 0.5 + dist * 0.25 * uy
            path.quadTo(cx, cy, x, y)
        lx, ly = x, y
    return path


def point_marker_rect(x: float, y: float, point_size: int = DEFAULT_POINT_SIZE) -> QRectF:
    half = point_size / 2.0
    return QRectF(x - half, y - half, point_size, point_size)


def ellipse_geometry(raw: Sequence[Point], is_display: bool, width: float,
                     height: float) -> Tuple[float, float, float, float, float]:
    """
    Center, semi-axes and rotation of an ELLIPSE graphic.

    Args:
        raw: Four points (major axis endpoints, then minor axis endpoints),
             already through the inverse transform but not yet scaled

    Returns:
        (cx, cy, rx, ry, rotation) with rotation in radians
    """
    x1, y1 = scale_point(raw[0], is_display, width, height)
    x2, y2 = scale_point(raw[1], is_display, width, height)
    cx = (x1 + x2) / 2
    cy = (y1 + y2) / 2
    rx = euclidean_distance(raw[0], raw[1], is_display, width, height) / 2
    ry = euclidean_distance(raw[2], raw[3], is_display, width, height) / 2
    if _is_equal(x1, x2):
        rotation = math.pi / 2
    elif _is_equal(y1, y2):
        rotation = 0.0
    else:
        rotation = math.atan2(y2 - cy, x2 - cx)
    return cx, cy, rx, ry, rotation


def ellipse_path(cx: float, cy: float, rx: float, ry: float, rotation: float) -> QPainterPath:
    path = QPainterPath()
    path.addEllipse(QRectF(cx - rx, cy - ry, 2 * rx, 2 * ry))
    if not _is_equal(rotation, 0.0):
        rotate = QTransform()
        rotate.translate(cx, cy)
        rotate.rotateRadians(rotation)
        rotate.translate(-cx, -cy)
        path = rotate.map(path)
    return path


def _set_properties(shape: Shape, style: StyleSpec, label_visible: bool, filled: bool,
                    group_id: Optional[int]) -> Shape:
    shape.set_properties(style.thickness, style.color, label_visible, filled, group_id, style.dashed)
    return shape


def _build_polyline(points: List[Point], style: StyleSpec, label_visible: bool, group_id: Optional[int],
                    editable: bool, is_structured_report: bool) -> Shape:
    size = len(points)
    if editable:
        handles = [QPointF(x, y) for x, y in points]
        # SR polylines are always closed
        if is_structured_report and points[0] != points[-1]:
            handles.append(QPointF(handles[0]))
        first = (handles[0].x(), handles[0].y())
        last = (handles[-1].x(), handles[-1].y())
        if first == last:
            shape = PolygonShape(handles)
            return _set_properties(shape, style, label_visible, style.filled, group_id)
        shape = PolylineShape(handles)
        return _set_properties(shape, style, label_visible, False, group_id)

    path = build_path(points)
    closed = size > 1 and points[0] == points[-1]
    if is_structured_report:
        path.closeSubpath()
        closed = True
    shape = FixedShape(path, POLYGON if closed else POLYLINE)
    return _set_properties(shape, style, label_visible, style.filled, group_id)


def _build_ellipse(raw: List[Point], is_display: bool, width: float, height: float, style: StyleSpec,
                   label_visible: bool, group_id: Optional[int], editable: bool) -> Shape:
    cx, cy, rx, ry, rotation = ellipse_geometry(raw, is_display, width, height)
    # Only an ellipse without rotation can be edited
    if editable and _is_equal(rotation, 0.0):
        shape = EllipseShape(QRectF(cx - rx, cy - ry, 2 * rx, 2 * ry))
    else:
        shape = FixedShape(ellipse_path(cx, cy, rx, ry, rotation), ELLIPSE, rotation)
    return _set_properties(shape, style, label_visible, style.filled, group_id)


def _build_circle(raw: List[Point], is_display: bool, width: float, height: float, style: StyleSpec,
                  label_visible: bool, group_id: Optional[int], editable: bool) -> Shape:
    x, y = scale_point(raw[0], is_display, width, height)
    radius = euclidean_distance(raw[0], raw[1], is_display, width, height)
    frame = QRectF(x - radius, y - radius, 2 * radius, 2 * radius)
    if editable:
        shape = EllipseShape(frame)
    else:
        path = QPainterPath()
        path.addEllipse(frame)
        shape = FixedShape(path, CIRCLE)
    return _set_properties(shape, style, label_visible, style.filled, group_id)


def _build_point(point: Point, style: StyleSpec, label_visible: bool, group_id: Optional[int],
                 editable: bool) -> Shape:
    x, y = point
    if editable:
        shape = PointShape(QPointF(x, y), DEFAULT_POINT_SIZE)
    else:
        path = QPainterPath()
        path.addEllipse(point_marker_rect(x, y))
        shape = FixedShape(path, POINT)
    return _set_properties(shape, style, label_visible, True, group_id)


def _build_multipoint(points: List[Point], style: StyleSpec, label_visible: bool,
                      group_id: Optional[int]) -> Shape:
    path = QPainterPath()
    for x, y in points:
        path.addEllipse(point_marker_rect(x, y))
    shape = FixedShape(path, MULTIPOINT)
    return _set_properties(shape, style, label_visible, True, group_id)


def build_graphic(record, default_color: QColor, label_visible: bool, width: float, height: float,
                  editable: bool, inverse_transform: Optional[QTransform] = None,
                  is_structured_report: bool = False,
                  diagnostics: Optional[DiagnosticLog] = None) -> Optional[Shape]:
    """
    Build one shape from a graphic annotation record.

    Structured Report graphics always use pixel coordinates and their
    polylines are always closed. MATRIX and TEXT are not graphic shapes.

    Args:
        record: Graphic object (Dataset or AttributeView), never modified
        default_color: Color used when the record has no line style
        label_visible: Label visibility attached to the shape
        width: Width used to de-normalize DISPLAY coordinates
        height: Height used to de-normalize DISPLAY coordinates
        editable: Request an editable shape where the type allows it
        inverse_transform: Optional transform applied to the raw points of DISPLAY-unit
            graphics before scaling; ignored for PIXEL units
        is_structured_report: True for SR spatial coordinates
        diagnostics: Optional sink for debug traces

    Returns:
        Shape, or None when the type is unsupported or the point count is wrong

    Raises:
        InvalidShapeException: editable polygon/polyline with a degenerate point list
    """
    go = _as_view(record)
    is_display = not is_structured_report and is_display_units(go.get_string(GRAPHIC_ANNOTATION_UNITS))
    graphic_type = (go.get_string(GRAPHIC_TYPE) or "").upper()
    group_id = go.get_int(GRAPHIC_GROUP_ID)
    style = resolve_style(go, default_color)

    data = go.get_float_array(GRAPHIC_DATA)
    if data is None:
        report(diagnostics, DEBUG, f"{graphic_type or 'Graphic'} without GraphicData skipped")
        return None
    transform = inverse_transform if is_display else None
    points = normalize_points(data, is_display, width, height, transform)
    size = len(points)

    if graphic_type == POLYLINE:
        if size >= 2:
            return _build_polyline(points, style, label_visible, group_id, editable, is_structured_report)
    elif graphic_type == ELLIPSE:
        if len(data) == 8:
            raw = apply_transform(split_points(data), transform)
            return _build_ellipse(raw, is_display, width, height, style, label_visible, group_id, editable)
    elif graphic_type == CIRCLE:
        if len(data) == 4:
            raw = apply_transform(split_points(data), transform)
            return _build_circle(raw, is_display, width, height, style, label_visible, group_id, editable)
    elif graphic_type == POINT:
        if len(data) == 2:
            return _build_point(points[0], style, label_visible, group_id, editable)
    elif graphic_type == MULTIPOINT:
        if size >= 1:
            return _build_multipoint(points, style, label_visible, group_id)
    elif graphic_type == INTERPOLATED:
        # Only a fixed shape: interpolation has no control-point tool
        if size >= 2:
            shape = FixedShape(build_interpolated_path(points), INTERPOLATED)
            return _set_properties(shape, style, label_visible, style.filled, group_id)
    else:
        report(diagnostics, DEBUG, f"Unsupported graphic type '{graphic_type}'")
        return None

    report(diagnostics, DEBUG, f"{graphic_type} with {len(data)} coordinate value(s) skipped")
    return None


def build_compound_graphic(record, default_color: QColor, label_visible: bool, width: float,
                           height: float, inverse_transform: Optional[QTransform] = None,
                           diagnostics: Optional[DiagnosticLog] = None) -> Optional[Shape]:
    """
    Build a fixed shape from a Compound Graphic Sequence item.

    Only POLYLINE, ELLIPSE and POINT are reconstructed; the other compound
    types (MULTILINE, RULER, CROSSHAIR, ARROW, RECTANGLE, ...) yield None.
    Polylines are drawn as given and never closed.

    Args:
        record: Compound graphic item (Dataset or AttributeView)
        default_color: Color used when the record has no line style
        label_visible: Label visibility attached to the shape
        width: Width used to de-normalize DISPLAY coordinates
        height: Height used to de-normalize DISPLAY coordinates
        inverse_transform: Optional transform applied to the raw points of DISPLAY-unit
            graphics before scaling; ignored for PIXEL units
        diagnostics: Optional sink for debug traces

    Returns:
        FixedShape, or None
    """
    go = _as_view(record)
    is_display = is_display_units(go.get_string(COMPOUND_GRAPHIC_UNITS))
    graphic_type = (go.get_string(COMPOUND_GRAPHIC_TYPE) or go.get_string(GRAPHIC_TYPE) or "").upper()
    group_id = go.get_int(GRAPHIC_GROUP_ID)
    style = resolve_style(go, default_color)

    data = go.get_float_array(GRAPHIC_DATA)
    if data is None or graphic_type not in COMPOUND_GRAPHIC_TYPES:
        report(diagnostics, DEBUG,
               f"Compound graphic {go.get_string(COMPOUND_GRAPHIC_INSTANCE_ID, '?')} "
               f"of type '{graphic_type}' skipped")
        return None
    transform = inverse_transform if is_display else None
    points = normalize_points(data, is_display, width, height, transform)

    if graphic_type == POLYLINE and len(points) >= 2:
        shape = FixedShape(build_path(points), POLYLINE)
        return _set_properties(shape, style, label_visible, style.filled, group_id)
    if graphic_type == ELLIPSE and len(data) == 8:
        raw = apply_transform(split_points(data), transform)
        return _build_ellipse(raw, is_display, width, height, style, label_visible, group_id, False)
    if graphic_type == POINT and len(data) == 2:
        return _build_point(points[0], style, label_visible, group_id, False)

    report(diagnostics, DEBUG, f"Compound {graphic_type} with {len(data)} coordinate value(s) skipped")
    return None
