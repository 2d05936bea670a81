"""
Unit tests for DICOM CIELab color conversion (core.dicom_color).
"""

import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.dicom_color import (
    dicom_lab_to_lab,
    dicom_lab_to_rgb,
    grayscale_to_rgb,
    rgb_to_dicom_lab,
)

# L* = 100, a* = b* = 0 in the DICOM encoding
DICOM_LAB_WHITE = [65535, 32896, 32896]
DICOM_LAB_BLACK = [0, 32896, 32896]


class TestDicomLabDecoding(unittest.TestCase):

    def test_white_point_decodes_to_neutral(self):
        l_star, a_star, b_star = dicom_lab_to_lab(DICOM_LAB_WHITE)
        self.assertAlmostEqual(l_star, 100.0)
        self.assertAlmostEqual(a_star, 0.0, places=2)
        self.assertAlmostEqual(b_star, 0.0, places=2)


class TestDicomLabToRgb(unittest.TestCase):

    def test_white(self):
        self.assertEqual(dicom_lab_to_rgb(DICOM_LAB_WHITE), (255, 255, 255))

    def test_black(self):
        self.assertEqual(dicom_lab_to_rgb(DICOM_LAB_BLACK), (0, 0, 0))

    def test_primary_colors_survive_encoding(self):
        for rgb in [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)]:
            result = dicom_lab_to_rgb(rgb_to_dicom_lab(rgb))
            for expected, actual in zip(rgb, result):
                self.assertLessEqual(abs(expected - actual), 1, f"{rgb} -> {result}")

    def test_invalid_input_returns_none(self):
        self.assertIsNone(dicom_lab_to_rgb(None))
        self.assertIsNone(dicom_lab_to_rgb([1, 2]))


class TestGrayscaleToRgb(unittest.TestCase):

    def test_full_scale_is_white(self):
        self.assertEqual(grayscale_to_rgb(0xFFFF), (255, 255, 255))

    def test_zero_is_black(self):
        self.assertEqual(grayscale_to_rgb(0), (0, 0, 0))


if __name__ == '__main__':
    unittest.main()
