"""
Unit tests for graphic reconstruction (core.pr_graphic_builder).

Each graphic type is built from a small in-memory graphic object. Fixed
shapes are checked through their QPainterPath, editable shapes through
their handles.
"""

import math
import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from PySide6.QtCore import QRectF
from PySide6.QtGui import QColor, QPainterPath, QTransform
from pydicom.dataset import Dataset

from core.dicom_color import rgb_to_dicom_lab
from core.pr_graphic_builder import build_compound_graphic, build_graphic
from tools.pr_graphic_items import (
    EllipseShape,
    FixedShape,
    InvalidShapeException,
    PointShape,
    PolygonShape,
    PolylineShape,
)
from utils.debug_log import DiagnosticLog

YELLOW = QColor(255, 255, 0)


def _graphic(graphic_type, data, units="PIXEL", filled=None, group_id=None, thickness=None) -> Dataset:
    ds = Dataset()
    ds.GraphicAnnotationUnits = units
    ds.GraphicType = graphic_type
    ds.GraphicData = [float(v) for v in data]
    if filled is not None:
        ds.GraphicFilled = filled
    if group_id is not None:
        ds.GraphicGroupID = group_id
    if thickness is not None:
        style = Dataset()
        style.LineThickness = thickness
        style.PatternOnColorCIELabValue = list(rgb_to_dicom_lab((255, 0, 0)))
        ds.LineStyleSequence = [style]
    return ds


def _build(ds, editable=False, width=512, height=512, inverse=None, sr=False, diagnostics=None):
    return build_graphic(ds, YELLOW, True, width, height, editable, inverse, sr, diagnostics)


def _points(path: QPainterPath):
    return [(path.elementAt(i).x, path.elementAt(i).y) for i in range(path.elementCount())]


class TestCircle(unittest.TestCase):

    def test_fixed_circle_pixel_units(self):
        shape = _build(_graphic("CIRCLE", [10, 10, 13, 10]))
        self.assertIsInstance(shape, FixedShape)
        self.assertEqual(shape.graphic_type, "CIRCLE")
        rect = shape.path().boundingRect()
        self.assertAlmostEqual(rect.center().x(), 10.0, places=5)
        self.assertAlmostEqual(rect.center().y(), 10.0, places=5)
        self.assertAlmostEqual(rect.width(), 6.0, places=5)

    def test_editable_circle_is_ellipse_handle_shape(self):
        shape = _build(_graphic("CIRCLE", [10, 10, 13, 10]), editable=True)
        self.assertIsInstance(shape, EllipseShape)
        self.assertEqual(shape.frame, QRectF(7, 7, 6, 6))

    def test_radius_scales_with_display_size(self):
        ds = _graphic("CIRCLE", [0.5, 0.5, 0.6, 0.5], units="DISPLAY")
        small = _build(ds, editable=True, width=100, height=100)
        large = _build(ds, editable=True, width=200, height=200)
        self.assertAlmostEqual(small.frame.width() / 2, 10.0)
        self.assertAlmostEqual(large.frame.width() / 2, 20.0)

    def test_radius_invariant_for_pixel_units(self):
        ds = _graphic("CIRCLE", [10, 10, 13, 10])
        small = _build(ds, editable=True, width=100, height=100)
        large = _build(ds, editable=True, width=400, height=300)
        self.assertEqual(small.frame, large.frame)

    def test_wrong_arity(self):
        self.assertIsNone(_build(_graphic("CIRCLE", [10, 10, 13, 10, 1, 1])))


class TestPoint(unittest.TestCase):

    def test_display_point_resolved(self):
        shape = _build(_graphic("POINT", [0.5, 0.5], units="DISPLAY"), editable=True, width=200, height=100)
        self.assertIsInstance(shape, PointShape)
        self.assertEqual(shape.handle_tuples(), [(100.0, 50.0)])
        self.assertTrue(shape.filled)

    def test_fixed_point_marker(self):
        shape = _build(_graphic("POINT", [20, 30]))
        rect = shape.path().boundingRect()
        self.assertAlmostEqual(rect.center().x(), 20.0, places=5)
        self.assertAlmostEqual(rect.center().y(), 30.0, places=5)
        self.assertAlmostEqual(rect.width(), 3.0, places=5)
        self.assertTrue(shape.filled)

    def test_wrong_arity(self):
        self.assertIsNone(_build(_graphic("POINT", [1, 2, 3, 4])))


class TestMultipoint(unittest.TestCase):

    def test_always_fixed(self):
        shape = _build(_graphic("MULTIPOINT", [1, 1, 50, 50]), editable=True)
        self.assertIsInstance(shape, FixedShape)
        self.assertEqual(shape.graphic_type, "MULTIPOINT")
        self.assertTrue(shape.filled)
        rect = shape.path().boundingRect()
        self.assertAlmostEqual(rect.left(), -0.5, places=5)
        self.assertAlmostEqual(rect.right(), 51.5, places=5)


class TestPolyline(unittest.TestCase):

    def test_closed_polyline_is_polygon(self):
        ds = _graphic("POLYLINE", [0, 0, 10, 0, 10, 10, 0, 0], filled="Y")
        editable = _build(ds, editable=True)
        self.assertIsInstance(editable, PolygonShape)
        self.assertTrue(editable.filled)
        fixed = _build(ds)
        self.assertEqual(fixed.graphic_type, "POLYGON")
        self.assertTrue(fixed.filled)

    def test_closed_after_display_scaling(self):
        ds = _graphic("POLYLINE", [0.1, 0.1, 0.5, 0.1, 0.5, 0.5, 0.1, 0.1], units="DISPLAY")
        self.assertIsInstance(_build(ds, editable=True), PolygonShape)

    def test_open_polyline_never_filled(self):
        shape = _build(_graphic("POLYLINE", [0, 0, 10, 0, 10, 10], filled="Y"), editable=True)
        self.assertIsInstance(shape, PolylineShape)
        self.assertNotIsInstance(shape, PolygonShape)
        self.assertFalse(shape.filled)

    def test_fixed_open_polyline_path(self):
        shape = _build(_graphic("POLYLINE", [0, 0, 10, 0, 10, 10]))
        self.assertEqual(shape.graphic_type, "POLYLINE")
        self.assertEqual(_points(shape.path()), [(0, 0), (10, 0), (10, 10)])

    def test_structured_report_closes_editable(self):
        shape = _build(_graphic("POLYLINE", [0, 0, 10, 0, 10, 10]), editable=True, sr=True)
        self.assertIsInstance(shape, PolygonShape)
        self.assertEqual(len(shape.handles), 4)
        self.assertEqual(shape.handle_tuples()[-1], (0.0, 0.0))

    def test_structured_report_closes_fixed_path(self):
        shape = _build(_graphic("POLYLINE", [0, 0, 10, 0, 10, 10]), sr=True)
        points = _points(shape.path())
        self.assertEqual(len(points), 4)
        self.assertEqual(points[-1], points[0])
        self.assertEqual(shape.graphic_type, "POLYGON")

    def test_structured_report_ignores_display_units(self):
        shape = _build(_graphic("POLYLINE", [1, 2, 3, 4], units="DISPLAY"), sr=True, width=100, height=100)
        self.assertEqual(_points(shape.path())[:2], [(1, 2), (3, 4)])

    def test_degenerate_editable_raises(self):
        ds = _graphic("POLYLINE", [1, 1, 1, 1])
        with self.assertRaises(InvalidShapeException):
            _build(ds, editable=True)
        self.assertIsInstance(_build(ds), FixedShape)

    def test_single_point_is_none(self):
        self.assertIsNone(_build(_graphic("POLYLINE", [1, 1]), editable=True))

    def test_properties_attached(self):
        shape = _build(_graphic("POLYLINE", [0, 0, 5, 5], group_id=3, thickness=2.0))
        self.assertEqual(shape.group_id, 3)
        self.assertEqual(shape.thickness, 2.0)
        self.assertTrue(shape.label_visible)
        self.assertGreaterEqual(shape.color.red(), 254)
        self.assertLessEqual(shape.color.green(), 1)

    def test_inverse_transform_applied_to_display_units(self):
        ds = _graphic("POLYLINE", [0.125, 0.25, 0.25, 0.375], units="DISPLAY")
        shape = _build(ds, width=100, height=100, inverse=QTransform.fromScale(2, 2))
        self.assertEqual(_points(shape.path()), [(25, 50), (50, 75)])

    def test_inverse_transform_ignored_for_pixel_units(self):
        shape = _build(_graphic("POLYLINE", [1, 2, 3, 4]), inverse=QTransform.fromTranslate(100, 100))
        self.assertEqual(_points(shape.path()), [(1, 2), (3, 4)])

    def test_inverse_transform_ignored_for_structured_report(self):
        ds = _graphic("POINT", [5, 5], units="DISPLAY")
        shape = _build(ds, editable=True, inverse=QTransform.fromTranslate(100, 100), sr=True)
        self.assertEqual(shape.handle_tuples(), [(5.0, 5.0)])


class TestInterpolated(unittest.TestCase):

    def test_quadratic_control_point(self):
        shape = _build(_graphic("INTERPOLATED", [0, 0, 10, 0]))
        path = shape.path()
        # moveTo + one quadratic segment stored as a cubic (3 elements)
        self.assertEqual(path.elementCount(), 4)
        c1 = path.elementAt(1)
        # Cubic control 1 = p0 + 2/3 (c - p0)
        self.assertAlmostEqual(c1.x * 1.5, 5.0)
        self.assertAlmostEqual(c1.y * 1.5, 2.5)
        end = path.elementAt(3)
        self.assertEqual((end.x, end.y), (10.0, 0.0))

    def test_always_fixed(self):
        shape = _build(_graphic("INTERPOLATED", [0, 0, 10, 0, 20, 5]), editable=True)
        self.assertIsInstance(shape, FixedShape)
        self.assertEqual(shape.graphic_type, "INTERPOLATED")

    def test_zero_length_segment_does_not_fail(self):
        shape = _build(_graphic("INTERPOLATED", [0, 0, 0, 0, 10, 0]))
        path = shape.path()
        # The coincident point adds no element; the next segment is still a curve
        self.assertEqual(path.elementCount(), 4)
        self.assertEqual(path.elementAt(1).type, QPainterPath.ElementType.CurveToElement)
        end = path.elementAt(3)
        self.assertEqual((end.x, end.y), (10.0, 0.0))

    def test_needs_two_points(self):
        self.assertIsNone(_build(_graphic("INTERPOLATED", [0, 0])))

    def test_display_units(self):
        ds = _graphic("INTERPOLATED", [0, 0, 0.5, 0], units="DISPLAY")
        path = _build(ds, width=20, height=10).path()
        self.assertEqual(path.elementCount(), 4)
        c1 = path.elementAt(1)
        self.assertAlmostEqual(c1.x * 1.5, 5.0)
        self.assertAlmostEqual(c1.y * 1.5, 2.5)
        end = path.elementAt(3)
        self.assertEqual((end.x, end.y), (10.0, 0.0))


class TestEllipse(unittest.TestCase):

    def test_vertical_major_axis(self):
        ds = _graphic("ELLIPSE", [5, 0, 5, 10, 3, 5, 7, 5])
        shape = _build(ds, editable=True)
        self.assertIsInstance(shape, FixedShape)
        self.assertEqual(shape.rotation, math.pi / 2)
        rect = shape.path().boundingRect()
        self.assertAlmostEqual(rect.width(), 4.0, places=3)
        self.assertAlmostEqual(rect.height(), 10.0, places=3)

    def test_horizontal_major_axis_is_editable(self):
        ds = _graphic("ELLIPSE", [0, 5, 10, 5, 5, 3, 5, 7])
        shape = _build(ds, editable=True)
        self.assertIsInstance(shape, EllipseShape)
        self.assertEqual(shape.frame, QRectF(0, 3, 10, 4))
        fixed = _build(ds)
        self.assertEqual(fixed.rotation, 0.0)

    def test_oblique_rotation(self):
        ds = _graphic("ELLIPSE", [0, 0, 10, 10, 3, 7, 7, 3])
        shape = _build(ds, editable=True)
        self.assertIsInstance(shape, FixedShape)
        self.assertAlmostEqual(shape.rotation, math.pi / 4)

    def test_axes_scale_with_display_size(self):
        ds = _graphic("ELLIPSE", [0.1, 0.5, 0.3, 0.5, 0.2, 0.45, 0.2, 0.55], units="DISPLAY")
        small = _build(ds, editable=True, width=100, height=100)
        large = _build(ds, editable=True, width=200, height=200)
        self.assertAlmostEqual(large.frame.width(), 2 * small.frame.width())
        self.assertAlmostEqual(large.frame.height(), 2 * small.frame.height())

    def test_wrong_arity(self):
        self.assertIsNone(_build(_graphic("ELLIPSE", [0, 5, 10, 5, 5, 3])))


class TestUnsupported(unittest.TestCase):

    def test_unknown_type_logged(self):
        log = DiagnosticLog()
        self.assertIsNone(_build(_graphic("TEXT", [0, 0, 1, 1]), diagnostics=log))
        self.assertEqual(len(log), 1)

    def test_missing_graphic_data(self):
        ds = Dataset()
        ds.GraphicType = "POINT"
        self.assertIsNone(_build(ds))


def _compound(graphic_type, data, units="PIXEL") -> Dataset:
    ds = Dataset()
    ds.CompoundGraphicUnits = units
    ds.CompoundGraphicType = graphic_type
    ds.GraphicData = [float(v) for v in data]
    return ds


class TestCompoundGraphic(unittest.TestCase):

    def _build(self, ds, width=512, height=512, inverse=None):
        return build_compound_graphic(ds, YELLOW, False, width, height, inverse)

    def test_polyline_never_closed(self):
        shape = self._build(_compound("POLYLINE", [0, 0, 10, 0, 10, 10, 0, 0]))
        self.assertIsInstance(shape, FixedShape)
        self.assertEqual(shape.graphic_type, "POLYLINE")
        self.assertEqual(len(_points(shape.path())), 4)
        self.assertFalse(shape.label_visible)

    def test_ellipse_always_fixed(self):
        shape = self._build(_compound("ELLIPSE", [0, 5, 10, 5, 5, 3, 5, 7]))
        self.assertIsInstance(shape, FixedShape)
        self.assertEqual(shape.rotation, 0.0)

    def test_point_display_units(self):
        shape = self._build(_compound("POINT", [0.5, 0.5], units="DISPLAY"), width=200, height=100)
        center = shape.path().boundingRect().center()
        self.assertAlmostEqual(center.x(), 100.0, places=5)
        self.assertAlmostEqual(center.y(), 50.0, places=5)

    def test_rotated_ellipse(self):
        shape = self._build(_compound("ELLIPSE", [0, 0, 10, 10, 3, 7, 7, 3]))
        self.assertIsInstance(shape, FixedShape)
        self.assertAlmostEqual(shape.rotation, math.pi / 4)
        center = shape.path().boundingRect().center()
        self.assertAlmostEqual(center.x(), 5.0, places=5)
        self.assertAlmostEqual(center.y(), 5.0, places=5)

    def test_polyline_display_units_with_transform(self):
        ds = _compound("POLYLINE", [0.25, 0.5, 0.5, 0.5], units="DISPLAY")
        shape = self._build(ds, width=200, height=100, inverse=QTransform.fromTranslate(0.25, 0.0))
        self.assertEqual(_points(shape.path()), [(100, 50), (150, 50)])

    def test_pixel_units_ignore_transform(self):
        ds = _compound("POLYLINE", [1, 2, 3, 4])
        shape = self._build(ds, inverse=QTransform.fromTranslate(100, 100))
        self.assertEqual(_points(shape.path()), [(1, 2), (3, 4)])

    def test_unsupported_compound_types(self):
        self.assertIsNone(self._build(_compound("RULER", [0, 0, 10, 0])))
        self.assertIsNone(self._build(_compound("CIRCLE", [10, 10, 13, 10])))


if __name__ == '__main__':
    unittest.main()
