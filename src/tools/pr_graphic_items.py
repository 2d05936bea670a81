"""
Presentation State Graphic Items

This module provides the shape values produced when graphic annotations are
reconstructed from a DICOM Presentation State or Structured Report.

Purpose:
    - EditableShape keeps a manipulable list of handle points and a semantic
      kind (polygon, polyline, ellipse, point)
    - FixedShape keeps only an opaque QPainterPath
    - Both carry the same style metadata (thickness, color, label visibility,
      fill flag, group id, dash flag)

Inputs:
    - Handle points (QPointF) or a QPainterPath from pr_graphic_builder

Outputs:
    - Shape values handed to the presentation layer (not painted here)

Requirements:
    - PySide6 (QtCore, QtGui) value classes only; no QApplication needed
"""

from PySide6.QtCore import QPointF, QRectF
from PySide6.QtGui import QColor, QPainterPath
from typing import List, Optional, Sequence

KIND_POLYGON = "polygon"
KIND_POLYLINE = "polyline"
KIND_ELLIPSE = "ellipse"
KIND_POINT = "point"

DEFAULT_POINT_SIZE = 3


class InvalidShapeException(Exception):
    """Raised when an editable shape cannot be built from its handle list."""


class Shape:
    """
    Base for reconstructed graphics.

    Subclasses are either editable (live handles) or fixed (baked path);
    callers branch on is_editable rather than on the concrete class.
    """

    is_editable = False

    def __init__(self):
        self.thickness: float = 1.0
        self.color: QColor = QColor(255, 255, 0)
        self.label_visible: bool = True
        self.filled: bool = False
        self.group_id: Optional[int] = None
        self.dashed: bool = False

    def set_properties(self, thickness: float, color: QColor, label_visible: bool,
                       filled: bool, group_id: Optional[int], dashed: bool = False) -> None:
        """
        Attach style metadata in one step.

        Args:
            thickness: Line thickness
            color: Paint color (copied, the caller's QColor is never shared)
            label_visible: Whether the label is shown
            filled: Whether the interior is filled
            group_id: Graphic group identifier, or None
            dashed: Whether the outline is dashed
        """
        self.thickness = float(thickness)
        self.color = QColor(color)
        self.label_visible = bool(label_visible)
        self.filled = bool(filled)
        self.group_id = group_id
        self.dashed = bool(dashed)

    def path(self) -> QPainterPath:
        raise NotImplementedError


class FixedShape(Shape):
    """Non-editable graphic baked into a QPainterPath."""

    def __init__(self, path: QPainterPath, graphic_type: str = "", rotation: float = 0.0):
        super().__init__()
        self._path = QPainterPath(path)
        self.graphic_type = graphic_type
        self.rotation = rotation

    def path(self) -> QPainterPath:
        return QPainterPath(self._path)

    def __repr__(self) -> str:
        return f"FixedShape({self.graphic_type}, elements={self._path.elementCount()})"


class EditableShape(Shape):
    """Graphic that keeps its handle points so it can be manipulated later."""

    is_editable = True
    kind = ""

    def __init__(self, handles: Sequence[QPointF]):
        super().__init__()
        self.handles: List[QPointF] = [QPointF(p) for p in handles]
        self.validate()

    def validate(self) -> None:
        """Reject handle lists the shape cannot represent."""

    def handle_tuples(self) -> List[tuple]:
        return [(p.x(), p.y()) for p in self.handles]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.handle_tuples()})"


def _distinct_count(handles: Sequence[QPointF]) -> int:
    return len({(p.x(), p.y()) for p in handles})


class PolylineShape(EditableShape):
    """Open polyline; needs at least two distinct handles."""

    kind = KIND_POLYLINE

    def validate(self) -> None:
        if len(self.handles) < 2:
            raise InvalidShapeException(f"Polyline needs at least 2 points, got {len(self.handles)}")
        if _distinct_count(self.handles) < 2:
            raise InvalidShapeException("Polyline has zero length: all points are identical")

    def path(self) -> QPainterPath:
        path = QPainterPath(self.handles[0])
        for point in self.handles[1:]:
            path.lineTo(point)
        return path


class PolygonShape(PolylineShape):
    """Closed polygon; needs at least three distinct handles."""

    kind = KIND_POLYGON

    def validate(self) -> None:
        if _distinct_count(self.handles) < 3:
            raise InvalidShapeException("Polygon needs at least 3 distinct points")

    def path(self) -> QPainterPath:
        path = super().path()
        path.closeSubpath()
        return path


class EllipseShape(EditableShape):
    """Axis-aligned ellipse; handles are the four corners of its frame."""

    kind = KIND_ELLIPSE

    def __init__(self, frame: QRectF):
        self.frame = QRectF(frame)
        super().__init__([frame.topLeft(), frame.topRight(), frame.bottomRight(), frame.bottomLeft()])

    def center(self) -> QPointF:
        return self.frame.center()

    def path(self) -> QPainterPath:
        path = QPainterPath()
        path.addEllipse(self.frame)
        return path


class PointShape(EditableShape):
    """Single point drawn as a small marker of point_size pixels."""

    kind = KIND_POINT

    def __init__(self, point: QPointF, point_size: int = DEFAULT_POINT_SIZE):
        self.point_size = point_size
        super().__init__([point])

    def validate(self) -> None:
        if len(self.handles) != 1:
            raise InvalidShapeException("Point needs exactly one handle")

    def point(self) -> QPointF:
        return QPointF(self.handles[0])

    def path(self) -> QPainterPath:
        half = self.point_size / 2.0
        p = self.handles[0]
        path = QPainterPath()
        path.addEllipse(QRectF(p.x() - half, p.y() - half, self.point_size, self.point_size))
        return path
