"""
Presentation State Graphic Style

Resolves the line and fill style macros of a graphic object (LineStyleSequence,
FillStyleSequence, GraphicFilled) into a StyleSpec: thickness, dash flag,
stroke color, fill color and fill flag.

Inputs:
    - AttributeView over a graphic object or compound graphic
    - Caller-supplied default color (QColor)

Outputs:
    - StyleSpec (fresh value, the default color is never modified)

Requirements:
    - PySide6 QColor
    - core.dicom_color for CIELab -> RGB
"""

from typing import Optional

from PySide6.QtGui import QColor

from core.dicom_color import dicom_lab_to_rgb, grayscale_to_rgb
from utils.dicom_utils import (
    AttributeView,
    FILL_STYLE_SEQUENCE,
    GRAPHIC_FILLED,
    LINE_DASHING_STYLE,
    LINE_PATTERN,
    LINE_STYLE_SEQUENCE,
    LINE_THICKNESS,
    PATTERN_ON_COLOR_CIELAB_VALUE,
    PATTERN_ON_OPACITY,
)

DEFAULT_THICKNESS = 1.0


class StyleSpec:
    """Resolved style of one graphic; created and consumed within one build call."""

    def __init__(self, thickness: float = DEFAULT_THICKNESS, dashed: bool = False,
                 stroke_color: Optional[QColor] = None, fill_color: Optional[QColor] = None,
                 filled: bool = False):
        self.thickness = thickness
        self.dashed = dashed
        self.stroke_color = QColor(stroke_color) if stroke_color is not None else QColor(255, 255, 0)
        self.fill_color = QColor(fill_color) if fill_color is not None else QColor(self.stroke_color)
        self.filled = filled

    @property
    def color(self) -> QColor:
        """Paint attached to the shape (fill resolution is seeded with the stroke color)."""
        return QColor(self.fill_color)

    def __repr__(self) -> str:
        return (f"StyleSpec(thickness={self.thickness}, dashed={self.dashed}, "
                f"stroke={self.stroke_color.name(QColor.NameFormat.HexArgb)}, "
                f"fill={self.fill_color.name(QColor.NameFormat.HexArgb)}, filled={self.filled})")


def get_boolean_value(record: AttributeView, tag) -> bool:
    """DICOM Y/N flags: True only for a case-insensitive 'Y'."""
    value = record.get_string(tag)
    return value is not None and value.upper() == "Y"


def is_dashed_line(style: Optional[AttributeView]) -> bool:
    if not style:
        return False
    pattern = style.get_string(LINE_DASHING_STYLE)
    if pattern is None:
        raw = style.get_value(LINE_PATTERN)
        pattern = raw if isinstance(raw, str) else None
    return pattern is not None and pattern.strip().upper() == "DASHED"


def get_line_thickness(style: Optional[AttributeView]) -> float:
    if not style:
        return DEFAULT_THICKNESS
    return style.get_float(LINE_THICKNESS, DEFAULT_THICKNESS)


def apply_opacity(color: QColor, opacity: Optional[float]) -> QColor:
    """
    Replace the alpha channel with round(opacity * 255) when opacity < 1.0.

    Opacity of 1.0 or more (or missing) leaves the color's alpha unchanged.
    """
    result = QColor(color)
    if opacity is not None and opacity < 1.0:
        result.setAlpha(int(round(max(opacity, 0.0) * 255)))
    return result


def get_pattern_color(style: Optional[AttributeView], default_color: QColor) -> QColor:
    """
    Resolve PatternOnColorCIELabValue and PatternOnOpacity of a style item.

    Args:
        style: Line or fill style item, or None
        default_color: Returned (as a copy) when the style item is missing

    Returns:
        New QColor
    """
    if not style:
        return QColor(default_color)
    rgb = dicom_lab_to_rgb(style.get_int_array(PATTERN_ON_COLOR_CIELAB_VALUE))
    if rgb is None:
        # Style present without a color: full-scale grayscale
        rgb = grayscale_to_rgb(0xFFFF)
    color = QColor(rgb[0], rgb[1], rgb[2])
    return apply_opacity(color, style.get_float(PATTERN_ON_OPACITY))


def get_fill_pattern_color(fill_style: Optional[AttributeView], default_color: QColor) -> QColor:
    if not fill_style:
        return QColor(default_color)
    return get_pattern_color(fill_style, default_color)


def resolve_style(record: AttributeView, default_color: QColor) -> StyleSpec:
    """
    Resolve the complete style of a graphic object.

    Args:
        record: Graphic object or compound graphic
        default_color: Color used when no line style item is present

    Returns:
        StyleSpec
    """
    style = record.get_nested(LINE_STYLE_SEQUENCE)
    stroke = get_pattern_color(style, default_color)
    fill = get_fill_pattern_color(record.get_nested(FILL_STYLE_SEQUENCE), stroke)
    return StyleSpec(
        thickness=get_line_thickness(style),
        dashed=is_dashed_line(style),
        stroke_color=stroke,
        fill_color=fill,
        filled=get_boolean_value(record, GRAPHIC_FILLED),
    )
