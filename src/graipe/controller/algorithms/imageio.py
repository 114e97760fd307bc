"""Import and export of raster image files via Pillow."""
from __future__ import annotations

import logging
import os
from datetime import datetime

import numpy as np
from PIL import Image as PILImage

from graipe.controller.algorithm import Algorithm, ProgressCallback, register_algorithm
from graipe.model.image import IMAGE_TYPES
from graipe.model.registry import model_class
from graipe.parameters import BoolParameter, EnumParameter, FilenameParameter, ModelParameter

logger = logging.getLogger(__name__)

IMAGE_FILE_FILTER = "Images (*.png *.jpg *.jpeg *.tif *.tiff *.bmp *.gif);;All files (*)"

# Pillow modes which numpy cannot represent directly
_CONVERSIONS = {"1": "L", "P": "RGB", "PA": "RGBA", "CMYK": "RGB", "YCbCr": "RGB"}


def read_image_file(filename: str) -> np.ndarray:
    """Read an image file into an (h, w) or (h, w, bands) array."""
    with PILImage.open(filename) as img:
        if img.mode in _CONVERSIONS:
            img = img.convert(_CONVERSIONS[img.mode])
        return np.asarray(img)


@register_algorithm
class ImportImage(Algorithm):
    NAME = "Import image"
    TOPIC = "Import/Export"

    def __init__(self, workspace) -> None:
        super().__init__(workspace)
        self._filename = FilenameParameter("Filename:", file_filter=IMAGE_FILE_FILTER)
        self._image_type = EnumParameter("Import as:", IMAGE_TYPES, 0)
        self._parameters.add_parameter("filename", self._filename)
        self._parameters.add_parameter("imageType", self._image_type)

    def run(self, progress: ProgressCallback) -> None:
        filename = self._filename.value()
        progress(10, f"Reading {os.path.basename(filename)}...")
        array = read_image_file(filename)
        logger.debug(f"Read {filename}: shape={array.shape}, dtype={array.dtype}")

        progress(60, "Creating image model...")
        cls = model_class(self._image_type.value_text())
        image = cls.from_array(array, self._workspace, name=os.path.basename(filename))
        image.set_description(f"Imported from {filename} on {datetime.now():%d.%m.%Y %H:%M:%S}")
        image.set_timestamp(datetime.fromtimestamp(os.path.getmtime(filename)))
        self._results = [image]


@register_algorithm
class ExportImage(Algorithm):
    """
    Writes a single band as a grey value image or the first three bands as
    an RGB image. Values are either clipped or scaled onto [0, 255].
    """
    NAME = "Export image"
    TOPIC = "Import/Export"

    def __init__(self, workspace) -> None:
        super().__init__(workspace)
        self._image = ModelParameter("Image:", IMAGE_TYPES, workspace)
        self._filename = FilenameParameter("Filename:", file_filter=IMAGE_FILE_FILTER, save=True)
        self._rescale = BoolParameter("Scale to [0, 255]:", True)
        self._parameters.add_parameter("image", self._image)
        self._parameters.add_parameter("filename", self._filename)
        self._parameters.add_parameter("rescale", self._rescale)

    def run(self, progress: ProgressCallback) -> None:
        image = self._image.value()
        bands = image.bands()[:3] if image.num_bands() >= 3 else image.bands()[:1]
        data = np.stack(bands, axis=-1).astype(np.float64)

        if self._rescale.value():
            low, upp = float(data.min()), float(data.max())
            data = (data - low) * (255.0 / (upp - low)) if upp > low else np.zeros_like(data)
        data = np.clip(data, 0, 255).astype(np.uint8)

        progress(50, f"Writing {os.path.basename(self._filename.value())}...")
        PILImage.fromarray(data[:, :, 0] if data.shape[2] == 1 else data).save(self._filename.value())
        logger.info(f"Exported '{image.name()}' to {self._filename.value()}")
        self._results = []
