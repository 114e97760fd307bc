"""
Image Models
============
Multi-band raster images. All bands share the raster size of the model and
are stored as numpy arrays of shape (height, width) in row-major order.

The band list follows the parameters reactively: changing the number of
bands drops trailing bands or appends zero bands, changing the raster size
reshapes every band and zeroes it. Nothing is allocated for a 0 x 0 raster.

Content serialization (little-endian raw bytes, Base64 encoded):

    <Width>W</Width>
    <Height>H</Height>
    <Channels>N</Channels>
    <Order>Row-major</Order>
    <Encoding>Base64</Encoding>
    <Channel ID="0">...</Channel>
    ...
"""
from __future__ import annotations

import base64
import binascii
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import numpy as np

from graipe.model.base import Model, RasteredModel
from graipe.model.registry import register_model
from graipe.parameters import DateTimeParameter, DoubleParameter, IntParameter, LongStringParameter, StringParameter

if TYPE_CHECKING:
    from graipe.app.workspace import Workspace

logger = logging.getLogger(__name__)

MAX_BANDS = 1000
IMAGE_TYPES = ("Image", "IntImage", "ByteImage")


def encode_band(band: np.ndarray, dtype: np.dtype) -> str:
    """Base64 text of the little-endian raw bytes of a band."""
    le = np.dtype(dtype).newbyteorder("<")
    return base64.b64encode(np.ascontiguousarray(band, dtype=le).tobytes()).decode("ascii")


def decode_band(text: str, dtype: np.dtype, shape: tuple[int, int]) -> np.ndarray:
    """Inverse of ``encode_band``. Raises ValueError on malformed or wrongly sized data."""
    le = np.dtype(dtype).newbyteorder("<")
    try:
        block = base64.b64decode("".join(text.split()), validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid Base64 data: {e}") from e
    expected = shape[0] * shape[1] * le.itemsize
    if len(block) != expected:
        raise ValueError(f"decoded block has {len(block)} bytes, expected {expected}")
    return np.frombuffer(block, dtype=le).reshape(shape).astype(dtype)


@dataclass
class ImageStatistics:
    min: float
    max: float
    mean: float


def image_statistics(band: np.ndarray) -> ImageStatistics:
    """Statistics of the finite samples of a band, all zero if there are none."""
    finite = band[np.isfinite(band)]
    if finite.size == 0:
        return ImageStatistics(0.0, 0.0, 0.0)
    return ImageStatistics(float(finite.min()), float(finite.max()), float(finite.mean()))


def band_histogram(band: np.ndarray, bins: int) -> tuple[np.ndarray, np.ndarray]:
    """Counts and bin edges of the finite samples of a band."""
    return np.histogram(band[np.isfinite(band)], bins=bins)


@register_model
class Image(RasteredModel):
    """A multi-band image with float32 pixels."""
    TYPE_NAME = "Image"
    DTYPE = np.float32

    def __init__(self, workspace: Optional[Workspace] = None, size: tuple[int, int] = (0, 0),
                 num_bands: int = 0) -> None:
        super().__init__(workspace)
        self._bands: list[np.ndarray] = []

        self._numbands = IntParameter("Number of bands:", 0, MAX_BANDS, 0)
        self._timestamp = DateTimeParameter("Timestamp:", datetime.now())
        self._scale = DoubleParameter("Scale (1 px = X m):", 0, 1e9, 1.0)
        self._comment = LongStringParameter("Comment:", "")
        self._units = StringParameter("Units:", "m")

        self._parameters.add_parameter("numbands", self._numbands)
        self._parameters.add_parameter("timestamp", self._timestamp)
        self._parameters.add_parameter("scale", self._scale)
        self._parameters.add_parameter("comment", self._comment)
        self._parameters.add_parameter("units", self._units)

        if size != (0, 0):
            self.set_size(*size)
        if num_bands:
            self.set_num_bands(num_bands)

    @classmethod
    def from_array(cls, array: np.ndarray, workspace: Optional[Workspace] = None, name: str = "") -> Image:
        """Create an image from an (h, w) or (h, w, bands) array."""
        array = np.asarray(array)
        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        if array.ndim != 3:
            raise ValueError(f"Expected a 2-D or 3-D array, got shape {array.shape}")
        h, w, n = array.shape
        image = cls(workspace, (w, h), n)
        for i in range(n):
            image.set_band(i, array[:, :, i])
        if name:
            image.set_name(name)
        return image

    def update_model(self) -> None:
        # Bands stay as they are while an algorithm reads them
        if self.locked():
            super().update_model()
            return
        n = self.num_bands()
        w, h = self.width(), self.height()

        if n < len(self._bands):
            del self._bands[n:]
        if w != 0 and h != 0:
            if self._bands and self._bands[0].shape != (h, w):
                logger.debug(f"{self.type_name()} '{self.name()}': raster changed to {w}x{h}, bands zeroed.")
                self._bands = [np.zeros((h, w), dtype=self.DTYPE) for _ in self._bands]
            while len(self._bands) < n:
                self._bands.append(np.zeros((h, w), dtype=self.DTYPE))

        super().update_model()

    def is_empty(self) -> bool:
        return super().is_empty() or self.num_bands() == 0

    # ---- bands ----

    def num_bands(self) -> int:
        return self._numbands.value()

    def set_num_bands(self, value: int) -> None:
        if self.locked():
            return
        self._numbands.set_value(value)

    def band(self, index: int) -> np.ndarray:
        return self._bands[index]

    def bands(self) -> list[np.ndarray]:
        return list(self._bands)

    def set_band(self, index: int, band: np.ndarray) -> None:
        if self.locked():
            return
        band = np.asarray(band)
        if band.shape != (self.height(), self.width()):
            raise ValueError(
                f"Band of shape {band.shape} does not fit image of size {self.width()}x{self.height()}"
            )
        self._bands[index] = band.astype(self.DTYPE, copy=True)
        self.model_changed.emit()

    def statistics(self, index: int) -> ImageStatistics:
        return image_statistics(self._bands[index])

    # ---- metadata ----

    def timestamp(self) -> datetime:
        return self._timestamp.value()

    def set_timestamp(self, value: datetime) -> None:
        if self.locked():
            return
        self._timestamp.set_value(value)

    def scale(self) -> float:
        return self._scale.value()

    def set_scale(self, value: float) -> None:
        if self.locked():
            return
        self._scale.set_value(value)

    def comment(self) -> str:
        return self._comment.value()

    def set_comment(self, value: str) -> None:
        if self.locked():
            return
        self._comment.set_value(value)

    def units(self) -> str:
        return self._units.value()

    def set_units(self, value: str) -> None:
        if self.locked():
            return
        self._units.set_value(value)

    # ---- copying ----

    def copy_metadata(self, other: Model) -> None:
        super().copy_metadata(other)
        if other is not self and other.type_name() == self.type_name():
            other.set_timestamp(self.timestamp())
            other.set_comment(self.comment())
            other.set_units(self.units())
            other.set_scale(self.scale())
            other.set_num_bands(self.num_bands())

    def copy_data(self, other: Model) -> None:
        super().copy_data(other)
        if other is not self and other.type_name() == self.type_name():
            for i, band in enumerate(self._bands):
                other.set_band(i, band)

    # ---- serialization ----

    def serialize_content(self, content: ET.Element) -> None:
        ET.SubElement(content, "Width").text = str(self.width())
        ET.SubElement(content, "Height").text = str(self.height())
        ET.SubElement(content, "Channels").text = str(self.num_bands())
        ET.SubElement(content, "Order").text = "Row-major"
        ET.SubElement(content, "Encoding").text = "Base64"
        for c, band in enumerate(self._bands):
            ET.SubElement(content, "Channel", {"ID": str(c)}).text = encode_band(band, self.DTYPE)

    def deserialize_content(self, content: ET.Element) -> bool:
        w, h, n = self.width(), self.height(), self.num_bands()
        if w == 0 or h == 0 or n == 0:
            logger.error(f"{self.type_name()}.deserialize_content: image has zero size.")
            return False

        try:
            for tag, expected in (("Width", w), ("Height", h), ("Channels", n)):
                text = content.findtext(tag)
                if text is not None and int(text) != expected:
                    raise ValueError(f"{tag} does not match header info.")
            if content.findtext("Order", "Row-major").strip() != "Row-major":
                raise ValueError("Order of data has to be 'Row-major'.")
            if content.findtext("Encoding", "Base64").strip() != "Base64":
                raise ValueError("Encoding of data has to be 'Base64'.")

            bands = [np.zeros((h, w), dtype=self.DTYPE) for _ in range(n)]
            for channel in content.findall("Channel"):
                idx = int(channel.get("ID", "-1"))
                if not 0 <= idx < n:
                    raise ValueError(f"Channel id {idx} not found in image.")
                bands[idx] = decode_band(channel.text or "", self.DTYPE, (h, w))
        except ValueError as e:
            logger.error(f"{self.type_name()}.deserialize_content failed: {e}")
            return False

        self._bands = bands
        return True

    def _take_payload(self, other: Model) -> None:
        self._bands = other._bands


@register_model
class IntImage(Image):
    """A multi-band image with int32 pixels, e.g. label images."""
    TYPE_NAME = "IntImage"
    DTYPE = np.int32


@register_model
class ByteImage(Image):
    """A multi-band image with uint8 pixels."""
    TYPE_NAME = "ByteImage"
    DTYPE = np.uint8
