"""
DICOM Presentation State Handler

This module walks DICOM Presentation State datasets and reconstructs their
graphic annotations as shapes. Presentation States contain graphic layers,
graphic annotations (graphic objects and compound graphics), display settings,
references to images and, optionally, an embedded annotation model.

Inputs:
    - DICOM Presentation State datasets (Grayscale or Color Softcopy Presentation State Storage)
    - Target width/height for DISPLAY coordinates, optional inverse QTransform

Outputs:
    - Reconstructed shapes grouped with their graphic layer
    - Graphic layer colors
    - Display settings (window/level, pixel spacing, pan, rotation)
    - Referenced image and series UIDs
    - Embedded presentation model, if any

Requirements:
    - pydicom library
    - PySide6 QColor/QTransform
"""

from typing import Any, Dict, List, Optional

from PySide6.QtGui import QColor, QTransform
from pydicom.dataset import Dataset
from pydicom.multival import MultiValue

from core.dicom_color import dicom_lab_to_rgb, grayscale_to_rgb
from core.pr_graphic_builder import build_compound_graphic, build_graphic
from core.presentation_model_codec import extract_embedded_model
from tools.pr_graphic_items import InvalidShapeException, Shape
from utils.config_manager import ConfigManager
from utils.debug_log import DEBUG, ERROR, WARNING, DiagnosticLog, report


class PresentationStateHandler:
    """
    Handles parsing of DICOM Presentation State files.

    Features:
    - Reconstruct graphic objects and compound graphics as shapes
    - Resolve graphic layer colors
    - Extract display settings
    - Get referenced images
    - Extract the embedded presentation model
    """

    def __init__(self, config: Optional[ConfigManager] = None):
        """
        Initialize the Presentation State handler.

        Args:
            config: Preferences (default color, editable graphics, fallback);
                    a ConfigManager with the per-user file is used when None
        """
        self.config = config if config is not None else ConfigManager()

    def default_color(self) -> QColor:
        r, g, b = self.config.get_default_color()
        return QColor(r, g, b)

    def parse_presentation_state(self, dataset: Dataset, width: float, height: float,
                                 inverse_transform: Optional[QTransform] = None,
                                 diagnostics: Optional[DiagnosticLog] = None) -> Dict[str, Any]:
        """
        Parse a Presentation State dataset and reconstruct its graphics.

        Args:
            dataset: pydicom Dataset with Presentation State data
            width: Width used to de-normalize DISPLAY coordinates
            height: Height used to de-normalize DISPLAY coordinates
            inverse_transform: Optional transform applied to DISPLAY-unit graphic points
            diagnostics: Optional sink for messages

        Returns:
            Dictionary containing:
            - 'layers': Dict of layer name -> QColor
            - 'graphics': List of dicts with 'layer', 'shape', 'compound'
            - 'referenced_images': Dict with 'image_uids' and 'series_uids'
            - 'display_settings': Dictionary of display settings
            - 'presentation_model': GraphicModel or None
        """
        result = {
            'layers': {},
            'graphics': [],
            'referenced_images': self.get_referenced_images(dataset, diagnostics),
            'display_settings': self.parse_display_settings(dataset, diagnostics),
            'presentation_model': extract_embedded_model(dataset, diagnostics),
        }

        layer_colors = self.get_layer_colors(dataset)
        result['layers'] = layer_colors

        if hasattr(dataset, 'GraphicAnnotationSequence'):
            result['graphics'] = self.parse_graphic_annotations(
                dataset.GraphicAnnotationSequence, layer_colors, width, height,
                inverse_transform, diagnostics
            )
            report(diagnostics, DEBUG, f"Parsed {len(result['graphics'])} graphic(s) from Presentation State")
        else:
            report(diagnostics, DEBUG, "No GraphicAnnotationSequence found in Presentation State")

        return result

    def get_layer_colors(self, dataset: Dataset) -> Dict[str, QColor]:
        """
        Resolve the recommended display color of each graphic layer.

        CIELab takes precedence over the grayscale value; layers with neither
        use the configured default color.

        Args:
            dataset: pydicom Dataset with Presentation State data

        Returns:
            Dict of layer name -> QColor
        """
        colors = {}
        for layer in getattr(dataset, 'GraphicLayerSequence', None) or []:
            name = str(getattr(layer, 'GraphicLayer', '')).strip()
            if not name:
                continue
            rgb = None
            lab = getattr(layer, 'GraphicLayerRecommendedDisplayCIELabValue', None)
            if lab is not None:
                rgb = dicom_lab_to_rgb([int(v) for v in lab])
            if rgb is None and hasattr(layer, 'GraphicLayerRecommendedDisplayGrayscaleValue'):
                rgb = grayscale_to_rgb(int(layer.GraphicLayerRecommendedDisplayGrayscaleValue))
            colors[name] = QColor(*rgb) if rgb is not None else self.default_color()
        return colors

    def parse_graphic_annotations(self, graphic_annotation_seq, layer_colors: Dict[str, QColor],
                                  width: float, height: float,
                                  inverse_transform: Optional[QTransform] = None,
                                  diagnostics: Optional[DiagnosticLog] = None) -> List[Dict[str, Any]]:
        """
        Reconstruct the graphic objects and compound graphics of each annotation item.

        Args:
            graphic_annotation_seq: GraphicAnnotationSequence from dataset
            layer_colors: Layer name -> default color for that layer's graphics
            width: Width used to de-normalize DISPLAY coordinates
            height: Height used to de-normalize DISPLAY coordinates
            inverse_transform: Optional transform applied to DISPLAY-unit graphic points
            diagnostics: Optional sink for messages

        Returns:
            List of dictionaries with 'layer', 'shape' and 'compound' keys
        """
        graphics = []
        label_visible = self.config.get_label_visible()

        for annotation_item in graphic_annotation_seq:
            layer_name = str(getattr(annotation_item, 'GraphicLayer', '')).strip()
            color = layer_colors.get(layer_name, self.default_color())

            for graphic_obj in getattr(annotation_item, 'GraphicObjectSequence', None) or []:
                shape = self._build_graphic_object(graphic_obj, color, label_visible, width, height,
                                                   inverse_transform, diagnostics)
                if shape is not None:
                    graphics.append({'layer': layer_name, 'shape': shape, 'compound': False})

            for compound in getattr(annotation_item, 'CompoundGraphicSequence', None) or []:
                shape = build_compound_graphic(compound, color, label_visible, width, height,
                                               inverse_transform, diagnostics)
                if shape is not None:
                    graphics.append({'layer': layer_name, 'shape': shape, 'compound': True})

        return graphics

    def _build_graphic_object(self, graphic_obj: Dataset, color: QColor, label_visible: bool,
                              width: float, height: float, inverse_transform: Optional[QTransform],
                              diagnostics: Optional[DiagnosticLog]) -> Optional[Shape]:
        editable = self.config.get_editable_graphics()
        try:
            return build_graphic(graphic_obj, color, label_visible, width, height, editable,
                                 inverse_transform, False, diagnostics)
        except InvalidShapeException as e:
            if not self.config.get_fallback_to_fixed():
                report(diagnostics, WARNING, f"Graphic dropped: {e}")
                return None
            report(diagnostics, WARNING, f"Graphic not editable, using fixed shape: {e}")
            return build_graphic(graphic_obj, color, label_visible, width, height, False,
                                 inverse_transform, False, diagnostics)

    def get_referenced_images(self, dataset: Dataset,
                              diagnostics: Optional[DiagnosticLog] = None) -> Dict[str, Any]:
        """
        Extract referenced image SOP Instance UIDs from Presentation State.

        Images are referenced through ReferencedSeriesSequence items, each
        holding its own ReferencedImageSequence; a top-level
        ReferencedImageSequence is also accepted.

        Args:
            dataset: pydicom Dataset with Presentation State data
            diagnostics: Optional sink for messages

        Returns:
            Dictionary with:
            - 'image_uids': List of referenced SOP Instance UIDs
            - 'series_uids': List of referenced Series Instance UIDs
        """
        result = {
            'image_uids': [],
            'series_uids': []
        }

        def add_images(ref_seq) -> None:
            for ref_item in ref_seq:
                if hasattr(ref_item, 'ReferencedSOPInstanceUID'):
                    uid = str(ref_item.ReferencedSOPInstanceUID)
                    if uid not in result['image_uids']:
                        result['image_uids'].append(uid)

        try:
            if hasattr(dataset, 'ReferencedImageSequence'):
                add_images(dataset.ReferencedImageSequence)

            if hasattr(dataset, 'ReferencedSeriesSequence'):
                for series_item in dataset.ReferencedSeriesSequence:
                    if hasattr(series_item, 'SeriesInstanceUID'):
                        series_uid = str(series_item.SeriesInstanceUID)
                        if series_uid not in result['series_uids']:
                            result['series_uids'].append(series_uid)
                    if hasattr(series_item, 'ReferencedImageSequence'):
                        add_images(series_item.ReferencedImageSequence)
        except Exception as e:
            report(diagnostics, ERROR, f"Error extracting referenced images: {e}")

        return result

    def parse_display_settings(self, dataset: Dataset,
                               diagnostics: Optional[DiagnosticLog] = None) -> Dict[str, Any]:
        """
        Extract display settings from Presentation State.

        Args:
            dataset: pydicom Dataset with Presentation State data
            diagnostics: Optional sink for messages

        Returns:
            Dictionary containing (when present):
            - 'window_center', 'window_width': from the Softcopy VOI LUT or top level
            - 'pixel_spacing': PresentationPixelSpacing (row, column)
            - 'pan': DisplayedAreaTopLeftHandCorner (x, y)
            - 'bottom_right': DisplayedAreaBottomRightHandCorner (x, y)
            - 'rotation': ImageRotation in degrees
            - 'horizontal_flip': True when ImageHorizontalFlip is 'Y'
        """
        settings = {}

        def first_float(value) -> float:
            if isinstance(value, (MultiValue, list, tuple)):
                return float(value[0])
            return float(value)

        try:
            voi_source = dataset
            if hasattr(dataset, 'SoftcopyVOILUTSequence') and len(dataset.SoftcopyVOILUTSequence) > 0:
                voi_source = dataset.SoftcopyVOILUTSequence[0]
            if hasattr(voi_source, 'WindowCenter'):
                settings['window_center'] = first_float(voi_source.WindowCenter)
            if hasattr(voi_source, 'WindowWidth'):
                settings['window_width'] = first_float(voi_source.WindowWidth)

            if hasattr(dataset, 'DisplayedAreaSelectionSequence'):
                display_seq = dataset.DisplayedAreaSelectionSequence
                if len(display_seq) > 0:
                    display_item = display_seq[0]

                    if hasattr(display_item, 'PresentationPixelSpacing'):
                        spacing = display_item.PresentationPixelSpacing
                        if spacing and len(spacing) >= 2:
                            settings['pixel_spacing'] = (float(spacing[0]), float(spacing[1]))

                    if hasattr(display_item, 'DisplayedAreaTopLeftHandCorner'):
                        top_left = display_item.DisplayedAreaTopLeftHandCorner
                        if top_left and len(top_left) >= 2:
                            settings['pan'] = (float(top_left[0]), float(top_left[1]))

                    if hasattr(display_item, 'DisplayedAreaBottomRightHandCorner'):
                        bottom_right = display_item.DisplayedAreaBottomRightHandCorner
                        if bottom_right and len(bottom_right) >= 2:
                            settings['bottom_right'] = (float(bottom_right[0]), float(bottom_right[1]))

            if hasattr(dataset, 'ImageRotation'):
                settings['rotation'] = float(dataset.ImageRotation)
            if hasattr(dataset, 'ImageHorizontalFlip'):
                settings['horizontal_flip'] = str(dataset.ImageHorizontalFlip).strip().upper() == 'Y'
        except Exception as e:
            report(diagnostics, ERROR, f"Error parsing display settings: {e}")

        return settings
