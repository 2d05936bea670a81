"""
DICOM Utility Functions

This module provides a read-only, tag-addressed view over decoded DICOM
records (pydicom Datasets) and the tag constants used by presentation state
graphic reconstruction.

Inputs:
    - pydicom.Dataset objects (graphic objects, style sequences, images)
    - Numeric tag identifiers

Outputs:
    - Strings, integers, floats, float arrays, nested records and raw bytes

Requirements:
    - pydicom library
"""

from typing import Any, List, Optional

from pydicom.dataset import Dataset
from pydicom.datadict import tag_for_keyword
from pydicom.multival import MultiValue
from pydicom.sequence import Sequence
from pydicom.tag import BaseTag, Tag


def _tag(keyword: str) -> BaseTag:
    """Resolve a DICOM dictionary keyword to its numeric tag."""
    value = tag_for_keyword(keyword)
    if value is None:
        raise KeyError(f"Unknown DICOM keyword: {keyword}")
    return Tag(value)


# Graphic object / compound graphic attributes (PS3.3 C.10.5)
GRAPHIC_LAYER = _tag("GraphicLayer")
GRAPHIC_ANNOTATION_UNITS = _tag("GraphicAnnotationUnits")
GRAPHIC_TYPE = _tag("GraphicType")
GRAPHIC_DATA = _tag("GraphicData")
GRAPHIC_FILLED = _tag("GraphicFilled")
GRAPHIC_GROUP_ID = _tag("GraphicGroupID")
COMPOUND_GRAPHIC_UNITS = _tag("CompoundGraphicUnits")
COMPOUND_GRAPHIC_TYPE = _tag("CompoundGraphicType")
COMPOUND_GRAPHIC_INSTANCE_ID = _tag("CompoundGraphicInstanceID")

# Line and fill style macros (PS3.3 C.10.5.1.2)
LINE_STYLE_SEQUENCE = _tag("LineStyleSequence")
FILL_STYLE_SEQUENCE = _tag("FillStyleSequence")
LINE_THICKNESS = _tag("LineThickness")
LINE_DASHING_STYLE = _tag("LineDashingStyle")
LINE_PATTERN = _tag("LinePattern")
PATTERN_ON_COLOR_CIELAB_VALUE = _tag("PatternOnColorCIELabValue")
PATTERN_ON_OPACITY = _tag("PatternOnOpacity")

# Private block holding a serialized annotation model
PRIVATE_CREATOR_TAG = Tag(0x7107, 0x0070)
PR_MODEL_PRIVATE_TAG = Tag(0x7107, 0x7001)
PR_MODEL_ID = "weasis/model/xml/2.5"


class AttributeView:
    """
    Read-only lookup over a decoded DICOM record.

    A view over None behaves as an empty record, so optional sub-records
    can be handled without special casing. Lookups never raise on missing
    or malformed values; they return the supplied default instead.
    """

    def __init__(self, dataset: Optional[Dataset]):
        self.dataset = dataset

    def __bool__(self) -> bool:
        return self.dataset is not None

    def _raw(self, tag) -> Any:
        if self.dataset is None:
            return None
        elem = self.dataset.get(Tag(tag))
        if elem is None:
            return None
        return elem.value

    def contains(self, tag) -> bool:
        return self._raw(tag) is not None

    def get_value(self, tag, default: Any = None) -> Any:
        """Return the element value as decoded by pydicom, or default."""
        value = self._raw(tag)
        return default if value is None else value

    def get_string(self, tag, default: Optional[str] = None) -> Optional[str]:
        value = self._raw(tag)
        if isinstance(value, (MultiValue, list, tuple)):
            value = value[0] if len(value) > 0 else None
        if value is None:
            return default
        if isinstance(value, bytes):
            value = value.decode("ascii", errors="replace")
        text = str(value).strip()
        return text if text else default

    def get_int(self, tag, default: Optional[int] = None) -> Optional[int]:
        value = self._raw(tag)
        if isinstance(value, (MultiValue, list, tuple)):
            value = value[0] if len(value) > 0 else None
        if value is None or value == "":
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_float(self, tag, default: Optional[float] = None) -> Optional[float]:
        value = self._raw(tag)
        if isinstance(value, (MultiValue, list, tuple)):
            value = value[0] if len(value) > 0 else None
        if value is None or value == "":
            return default
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def get_float_array(self, tag, default: Optional[List[float]] = None) -> Optional[List[float]]:
        value = self._raw(tag)
        if value is None or value == "":
            return default
        if not isinstance(value, (MultiValue, list, tuple)):
            value = [value]
        try:
            return [float(v) for v in value]
        except (TypeError, ValueError):
            return default

    def get_int_array(self, tag, default: Optional[List[int]] = None) -> Optional[List[int]]:
        value = self._raw(tag)
        if value is None or value == "":
            return default
        if not isinstance(value, (MultiValue, list, tuple)):
            value = [value]
        try:
            return [int(v) for v in value]
        except (TypeError, ValueError):
            return default

    def get_sequence(self, tag) -> List["AttributeView"]:
        value = self._raw(tag)
        if not isinstance(value, (Sequence, list)):
            return []
        return [AttributeView(item) for item in value]

    def get_nested(self, tag, index: int = 0) -> Optional["AttributeView"]:
        """Return a view over one item of a sequence, or None when absent."""
        items = self.get_sequence(tag)
        if index < 0 or index >= len(items):
            return None
        return items[index]

    def get_bytes(self, tag, default: Optional[bytes] = None) -> Optional[bytes]:
        value = self._raw(tag)
        if value is None:
            return default
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode("utf-8")
        return default
