"""
Presentation Model Codec

Handles serialized annotation models ("presentation models") attached to
DICOM objects through a private tag block, and the pending model payloads
stashed in an image's tag store until the image is displayed.

Wire format: gzip-compressed XML

    <presentation uuid="...">
      <references><series uuid="..."><image uuid="..."/></series></references>
      <layers><layer uuid="..." type="..." visible="true" level="..."/></layers>
      <graphics>
        <polygon uuid="..." layer="..." fill="true" ...>
          <pts><pt x="10.0" y="20.0"/>...</pts>
        </polygon>
      </graphics>
    </presentation>

Inputs:
    - DICOM record (pydicom Dataset or AttributeView) with the private creator
      (7107,0070) and payload (7107,7001) elements
    - Image tag store (mutable mapping) holding pending payload bytes

Outputs:
    - GraphicModel objects

Requirements:
    - pydicom (through utils.dicom_utils)
    - gzip and xml.etree.ElementTree (standard library)
"""

import gzip
import xml.etree.ElementTree as ET
from typing import Dict, List, MutableMapping, Optional, Tuple

from utils.debug_log import DEBUG, ERROR, DiagnosticLog, report
from utils.dicom_utils import AttributeView, PRIVATE_CREATOR_TAG, PR_MODEL_ID, PR_MODEL_PRIVATE_TAG

# Image tag store keys
PRESENTATION_MODEL_BINARY = "presentation_model_binary"
PRESENTATION_MODEL = "presentation_model"

KNOWN_MODEL_CREATORS = (PR_MODEL_ID,)

_GZIP_MAGIC = b"\x1f\x8b"
_ROOT = "presentation"


class ModelGraphic:
    """One graphic of a presentation model: element name, points and raw attributes."""

    def __init__(self, kind: str, points: Optional[List[Tuple[float, float]]] = None,
                 attributes: Optional[Dict[str, str]] = None):
        self.kind = kind
        self.points = list(points or [])
        self.attributes = dict(attributes or {})

    @property
    def layer(self) -> Optional[str]:
        return self.attributes.get("layer")

    def __repr__(self) -> str:
        return f"ModelGraphic({self.kind}, {len(self.points)} pts)"


class GraphicModel:
    """Deserialized annotation model: referenced images, layers and graphics."""

    def __init__(self, uuid: str = "", references: Optional[Dict[str, List[str]]] = None,
                 layers: Optional[List[Dict[str, str]]] = None,
                 graphics: Optional[List[ModelGraphic]] = None):
        self.uuid = uuid
        self.references: Dict[str, List[str]] = dict(references or {})
        self.layers: List[Dict[str, str]] = list(layers or [])
        self.graphics: List[ModelGraphic] = list(graphics or [])

    def graphics_for_layer(self, layer_uuid: str) -> List[ModelGraphic]:
        return [g for g in self.graphics if g.layer == layer_uuid]

    def __repr__(self) -> str:
        return f"GraphicModel(uuid={self.uuid!r}, layers={len(self.layers)}, graphics={len(self.graphics)})"


def build_presentation_model(data: bytes) -> GraphicModel:
    """
    Deserialize a presentation model payload.

    Args:
        data: gzip-compressed (or plain) XML bytes

    Returns:
        GraphicModel

    Raises:
        ValueError: empty payload or unexpected root element
        OSError, EOFError: corrupt gzip stream
        xml.etree.ElementTree.ParseError: malformed XML
    """
    if not data:
        raise ValueError("Empty presentation model payload")
    if data[:2] == _GZIP_MAGIC:
        data = gzip.decompress(data)
    root = ET.fromstring(data)
    if root.tag != _ROOT:
        raise ValueError(f"Unexpected presentation model root element <{root.tag}>")

    references: Dict[str, List[str]] = {}
    for series in root.iterfind("references/series"):
        references[series.get("uuid", "")] = [img.get("uuid", "") for img in series.iterfind("image")]

    layers = [dict(layer.attrib) for layer in root.iterfind("layers/layer")]

    graphics = []
    graphics_node = root.find("graphics")
    if graphics_node is not None:
        for node in graphics_node:
            points = [(float(pt.get("x", 0.0)), float(pt.get("y", 0.0))) for pt in node.iterfind("pts/pt")]
            graphics.append(ModelGraphic(node.tag, points, dict(node.attrib)))

    return GraphicModel(root.get("uuid", ""), references, layers, graphics)


def dump_presentation_model(model: GraphicModel) -> bytes:
    """Serialize a GraphicModel into the gzip-compressed XML payload."""
    root = ET.Element(_ROOT, {"uuid": model.uuid} if model.uuid else {})
    refs = ET.SubElement(root, "references")
    for series_uid, image_uids in model.references.items():
        series = ET.SubElement(refs, "series", {"uuid": series_uid})
        for image_uid in image_uids:
            ET.SubElement(series, "image", {"uuid": image_uid})
    layers = ET.SubElement(root, "layers")
    for layer in model.layers:
        ET.SubElement(layers, "layer", {k: str(v) for k, v in layer.items()})
    graphics = ET.SubElement(root, "graphics")
    for graphic in model.graphics:
        node = ET.SubElement(graphics, graphic.kind, {k: str(v) for k, v in graphic.attributes.items()})
        pts = ET.SubElement(node, "pts")
        for x, y in graphic.points:
            ET.SubElement(pts, "pt", {"x": repr(float(x)), "y": repr(float(y))})
    return gzip.compress(ET.tostring(root, encoding="utf-8"))


def has_embedded_model(record) -> bool:
    """True when the record carries a model payload from a known private creator."""
    if record is None:
        return False
    view = record if isinstance(record, AttributeView) else AttributeView(record)
    if view.get_string(PRIVATE_CREATOR_TAG) not in KNOWN_MODEL_CREATORS:
        return False
    return bool(view.get_bytes(PR_MODEL_PRIVATE_TAG))


def extract_embedded_model(record, diagnostics: Optional[DiagnosticLog] = None) -> Optional[GraphicModel]:
    """
    Read the presentation model embedded in a record's private tags.

    Deserialization errors are reported and turned into None.

    Args:
        record: pydicom Dataset or AttributeView, or None
        diagnostics: Optional sink for the error message

    Returns:
        GraphicModel, or None when absent or unreadable
    """
    if not has_embedded_model(record):
        return None
    view = record if isinstance(record, AttributeView) else AttributeView(record)
    try:
        return build_presentation_model(view.get_bytes(PR_MODEL_PRIVATE_TAG))
    except Exception as e:
        report(diagnostics, ERROR, f"Cannot extract binary model: {e}")
        return None


def set_pending_model(image_tags: MutableMapping, payload: bytes) -> None:
    """Stash a serialized model on an image until apply_pending_model consumes it."""
    image_tags[PRESENTATION_MODEL_BINARY] = payload


def apply_pending_model(image_tags: Optional[MutableMapping],
                        diagnostics: Optional[DiagnosticLog] = None) -> bool:
    """
    Deserialize a pending model payload into the image's tag store.

    On success the model is stored under PRESENTATION_MODEL and the pending
    bytes are removed, so a second call without new bytes returns False.
    An unreadable payload is also removed and reported.

    Not safe to call concurrently on the same tag store.

    Args:
        image_tags: Image tag store, or None
        diagnostics: Optional sink for messages

    Returns:
        True when a model was applied
    """
    if image_tags is None:
        return False
    payload = image_tags.pop(PRESENTATION_MODEL_BINARY, None)
    if not payload:
        return False
    try:
        model = build_presentation_model(payload)
    except Exception as e:
        report(diagnostics, ERROR, f"Cannot apply binary model: {e}")
        return False
    image_tags[PRESENTATION_MODEL] = model
    report(diagnostics, DEBUG, f"Applied {model!r}")
    return True
