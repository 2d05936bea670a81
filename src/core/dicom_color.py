"""
DICOM color handling.

This module converts between the DICOM encoding of CIELab colors (three
unsigned 16-bit values, PS3.3 C.10.7.1.1) and 8-bit sRGB. Presentation
states use it for line, fill and layer colors.

Inputs:
    - DICOM-encoded Lab triples (L: 0..0xFFFF, a/b: 0..0xFFFF with 0x8080 as zero)
    - 8-bit RGB triples

Outputs:
    - 8-bit RGB triples, DICOM-encoded Lab triples

The decoding direction (dicom_lab_to_rgb, grayscale_to_rgb) is used when
reading presentation states. The encoding direction (rgb_to_dicom_lab,
rgb_to_lab, lab_to_dicom_lab) is public API for callers that write
recommended display or pattern colors back into a dataset.

Requirements:
    - numpy for the matrix/companding math
"""

import numpy as np
from typing import Optional, Sequence, Tuple

# CIE standard illuminant D65 reference white
D65_WHITE = np.array([0.950456, 1.0, 1.088754], dtype=np.float64)

# XYZ (D65) -> linear sRGB
_XYZ_TO_RGB = np.array([
    [3.2404542, -1.5371385, -0.4985314],
    [-0.9692660, 1.8760108, 0.0415560],
    [0.0556434, -0.2040259, 1.0572252],
], dtype=np.float64)
_RGB_TO_XYZ = np.linalg.inv(_XYZ_TO_RGB)

_EPSILON = 216.0 / 24389.0
_KAPPA = 24389.0 / 27.0


def dicom_lab_to_lab(dicom_lab: Sequence[int]) -> np.ndarray:
    """
    Decode a DICOM Lab triple into L* (0..100), a* and b* (-128..127).

    Args:
        dicom_lab: Three unsigned 16-bit values

    Returns:
        numpy array [L, a, b]
    """
    values = np.asarray(dicom_lab, dtype=np.float64)
    l_star = values[0] * 100.0 / 65535.0
    a_star = values[1] * 255.0 / 65535.0 - 128.0
    b_star = values[2] * 255.0 / 65535.0 - 128.0
    return np.array([l_star, a_star, b_star])


def lab_to_dicom_lab(lab: Sequence[float]) -> Tuple[int, int, int]:
    """Encode L*, a*, b* into the DICOM unsigned 16-bit representation."""
    l_star, a_star, b_star = (float(v) for v in lab)
    encoded = (
        round(l_star * 65535.0 / 100.0),
        round((a_star + 128.0) * 65535.0 / 255.0),
        round((b_star + 128.0) * 65535.0 / 255.0),
    )
    return tuple(int(min(max(v, 0), 0xFFFF)) for v in encoded)


def lab_to_rgb(lab: Sequence[float]) -> Tuple[int, int, int]:
    """
    Convert CIELab (D65) to 8-bit sRGB.

    Out-of-gamut results are clipped to the displayable range.
    """
    l_star, a_star, b_star = (float(v) for v in lab)
    fy = (l_star + 16.0) / 116.0
    fx = fy + a_star / 500.0
    fz = fy - b_star / 200.0
    f = np.array([fx, fy, fz])

    cubed = f ** 3
    xyz = np.where(cubed > _EPSILON, cubed, (116.0 * f - 16.0) / _KAPPA)
    # Y uses L* directly below the linear threshold
    if l_star <= _KAPPA * _EPSILON:
        xyz[1] = l_star / _KAPPA
    xyz = xyz * D65_WHITE

    linear = _XYZ_TO_RGB @ xyz
    linear = np.clip(linear, 0.0, 1.0)
    srgb = np.where(linear <= 0.0031308,
                    12.92 * linear,
                    1.055 * np.power(linear, 1.0 / 2.4) - 0.055)
    rgb = np.clip(np.rint(srgb * 255.0), 0, 255).astype(int)
    return int(rgb[0]), int(rgb[1]), int(rgb[2])


def rgb_to_lab(rgb: Sequence[int]) -> Tuple[float, float, float]:
    """Convert 8-bit sRGB to CIELab (D65)."""
    srgb = np.asarray(rgb, dtype=np.float64) / 255.0
    linear = np.where(srgb <= 0.04045,
                      srgb / 12.92,
                      np.power((srgb + 0.055) / 1.055, 2.4))
    xyz = (_RGB_TO_XYZ @ linear) / D65_WHITE
    f = np.where(xyz > _EPSILON, np.cbrt(xyz), (_KAPPA * xyz + 16.0) / 116.0)
    l_star = 116.0 * f[1] - 16.0
    a_star = 500.0 * (f[0] - f[1])
    b_star = 200.0 * (f[1] - f[2])
    return float(l_star), float(a_star), float(b_star)


def dicom_lab_to_rgb(dicom_lab: Optional[Sequence[int]]) -> Optional[Tuple[int, int, int]]:
    """
    Convert a DICOM-encoded CIELab value to 8-bit sRGB.

    Args:
        dicom_lab: Three unsigned 16-bit values, or None

    Returns:
        (r, g, b) tuple, or None when the input is missing or not a triple
    """
    if dicom_lab is None or len(dicom_lab) != 3:
        return None
    return lab_to_rgb(dicom_lab_to_lab(dicom_lab))


def rgb_to_dicom_lab(rgb: Sequence[int]) -> Tuple[int, int, int]:
    """Convert 8-bit sRGB to a DICOM-encoded CIELab value."""
    return lab_to_dicom_lab(rgb_to_lab(rgb))


def grayscale_to_rgb(gray: int, max_value: int = 0xFFFF) -> Tuple[int, int, int]:
    """
    Map a DICOM grayscale value (P-value) onto an 8-bit gray RGB triple.

    Args:
        gray: Grayscale value in 0..max_value
        max_value: Full-scale value (0xFFFF for recommended display values)
    """
    level = int(round(min(max(gray, 0), max_value) * 255.0 / max_value))
    return level, level, level
