"""
Image View Controllers
======================
Single band images are mapped linearly from [min, max] onto the 256 entries
of a color table and shown as an 8-bit indexed QImage. Three bands can be
combined into an ARGB32 image by the RGB view controller.

Both keep the rendered pixels as numpy arrays (``indexed_pixels()`` and
``argb_pixels()``), which are recomputed by ``update_view()``.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np
from PySide6.QtGui import QColor, QImage, QPainter
from PySide6.QtWidgets import QGraphicsItem

from graipe.colortables import color_table
from graipe.model.image import IMAGE_TYPES, Image
from graipe.parameters import BoolParameter, ColorTableParameter, DoubleParameter, IntParameter
from graipe.view.registry import register_view_controller
from graipe.view.viewcontroller import Description, ViewController

logger = logging.getLogger(__name__)


def linear_scale(vmin: float, vmax: float) -> float:
    return 1.0 if vmin == vmax else 255.0 / (vmax - vmin)


def _scaled(band: np.ndarray, vmin: float, scale: float) -> np.ndarray:
    """Band values scaled onto the 8-bit range. Non-finite samples become 0."""
    values = scale * (band.astype(np.float64) - vmin)
    values[~np.isfinite(values)] = 0.0
    return values


def map_to_indexed(band: np.ndarray, vmin: float, vmax: float) -> np.ndarray:
    """Map band values linearly onto [0, 255], clipping outside of [vmin, vmax]."""
    return np.clip(_scaled(band, vmin, linear_scale(vmin, vmax)), 0, 255).astype(np.uint8)


def display_color_table(ct: Sequence[int], transparent_below_min: bool, transparent_above_max: bool) -> list[int]:
    """The color table as shown: first (last) entry transparent if requested."""
    ct = list(ct)
    if transparent_below_min:
        ct[0] = 0
    if transparent_above_max:
        ct[-1] = 0
    return ct


def map_to_argb(red: np.ndarray, green: np.ndarray, blue: np.ndarray, vmin: float, vmax: float,
                transparent_below_min: bool = False, transparent_above_max: bool = False) -> np.ndarray:
    """
    Combine three bands into ARGB32 pixels. A pixel is fully transparent if
    any channel exceeds 255 (below 0) and the corresponding flag is set.
    """
    scale = linear_scale(vmin, vmax)
    channels = [_scaled(c, vmin, scale) for c in (red, green, blue)]
    r, g, b = (np.clip(c, 0, 255).astype(np.uint32) for c in channels)
    argb = (np.uint32(0xFF) << 24) | (r << 16) | (g << 8) | b

    transparent = np.zeros(argb.shape, dtype=bool)
    if transparent_above_max:
        transparent |= np.any([c > 255 for c in channels], axis=0)
    if transparent_below_min:
        transparent |= np.any([c < 0 for c in channels], axis=0)
    argb[transparent] = 0
    return argb


def _color_text(argb: int) -> str:
    col = QColor.fromRgba(argb)
    return (
        f"<br/> <b>Displayed color value: ({col.red()},{col.green()},{col.blue()})</b>"
        f"<br/> <b>Transparency: {(255 - col.alpha()) / 2.55:.0f}%</b>"
    )


class _ImageViewController(ViewController):
    """Value range parameters shared by the image view controllers."""

    def __init__(self, image: Image, parent_item: Optional[QGraphicsItem] = None) -> None:
        super().__init__(image, parent_item)
        self._qimage = QImage()

        self._min_value = DoubleParameter("Min. value:", -1e20, 1e20, 0)
        self._transparent_below_min = BoolParameter("Transp. (< min):", False)
        self._max_value = DoubleParameter("Max. value:", -1e20, 1e20, 255)
        self._transparent_above_max = BoolParameter("Transp. (> max):", False)

        self._parameters.add_parameter("minValue", self._min_value)
        self._parameters.add_parameter("transMinColor", self._transparent_below_min)
        self._parameters.add_parameter("maxValue", self._max_value)
        self._parameters.add_parameter("transMaxColor", self._transparent_above_max)

    def image(self) -> Image:
        return self._model

    def qimage(self) -> QImage:
        return self._qimage

    def _init_value_range(self, band_id: int) -> None:
        """Start with the full value range of a band."""
        if 0 <= band_id < self._model.num_bands():
            stats = self._model.statistics(band_id)
            self._min_value.set_value(math.floor(stats.min))
            self._max_value.set_value(math.ceil(stats.max))

    def _update_value_ranges(self, band_ids: Sequence[int]) -> None:
        stats = [self._model.statistics(i) for i in band_ids]
        low = math.floor(min(s.min for s in stats))
        upp = math.ceil(max(s.max for s in stats))
        self._min_value.set_range(low, upp)
        self._max_value.set_range(low, upp)

    def _pixel_at(self, x: float, y: float) -> Optional[tuple[int, int]]:
        ix, iy = int(math.floor(x)), int(math.floor(y))
        if 0 <= ix < self._model.width() and 0 <= iy < self._model.height() and not self._qimage.isNull():
            return ix, iy
        return None

    def paint_content(self, painter: QPainter) -> None:
        if self._model.is_viewable() and not self._qimage.isNull():
            painter.drawImage(self.rect(), self._qimage)


@register_view_controller
class ImageSingleBandViewController(_ImageViewController):
    """Shows one band of an image through a color table."""
    TYPE_NAME = "ImageSingleBandViewController"
    MODEL_TYPES = IMAGE_TYPES

    def __init__(self, image: Image, parent_item: Optional[QGraphicsItem] = None) -> None:
        super().__init__(image, parent_item)
        self._pixels = np.zeros((0, 0), dtype=np.uint8)

        self._color_table = ColorTableParameter("Color:", color_table("Grey"))
        self._band_id = IntParameter("Show band:", 0, max(image.num_bands() - 1, 0), 0)

        self._parameters.add_parameter("colorTable", self._color_table)
        self._parameters.add_parameter("bandId", self._band_id)

        self._init_value_range(0)
        self.update_view()

    def indexed_pixels(self) -> np.ndarray:
        return self._pixels

    def update_view(self) -> None:
        super().update_view()
        img = self._model
        self._band_id.set_range(0, max(img.num_bands() - 1, 0))
        band_id = self._band_id.value()
        if not img.is_viewable() or not 0 <= band_id < img.num_bands():
            self._pixels = np.zeros((0, 0), dtype=np.uint8)
            self._qimage = QImage()
            return

        self._update_value_ranges([band_id])
        self._pixels = np.ascontiguousarray(
            map_to_indexed(img.band(band_id), self._min_value.value(), self._max_value.value())
        )
        h, w = self._pixels.shape
        qimage = QImage(self._pixels.data, w, h, self._pixels.strides[0], QImage.Format.Format_Indexed8).copy()
        qimage.setColorTable(display_color_table(
            self._color_table.value(), self._transparent_below_min.value(), self._transparent_above_max.value()
        ))
        self._qimage = qimage
        self.update()

    def describe_position(self, x: float, y: float) -> Optional[Description]:
        pixel = self._pixel_at(x, y)
        if pixel is None:
            return None
        ix, iy = pixel
        value = float(self._model.band(self._band_id.value())[iy, ix])
        name = self._model.short_name()
        return (
            f"{name}[{ix},{iy}] = {value:g}",
            f"<b>Mouse moved over Object: </b><br/><i>{name}</i><br/> at position [{ix},{iy}]"
            f"<br/> <b>Data value: {value:g}</b>" + _color_text(self._qimage.pixel(ix, iy)),
        )


@register_view_controller
class ImageRGBViewController(_ImageViewController):
    """Combines three bands of an image into a color image."""
    TYPE_NAME = "ImageRGBViewController"
    MODEL_TYPES = IMAGE_TYPES

    def __init__(self, image: Image, parent_item: Optional[QGraphicsItem] = None) -> None:
        super().__init__(image, parent_item)
        self._argb = np.zeros((0, 0), dtype=np.uint32)

        last = max(image.num_bands() - 1, 0)
        self._red_band_id = IntParameter("Red band:", 0, last, 0)
        self._green_band_id = IntParameter("Green band:", 0, last, last // 2)
        self._blue_band_id = IntParameter("Blue band:", 0, last, last)

        self._parameters.add_parameter("redBandId", self._red_band_id)
        self._parameters.add_parameter("greenBandId", self._green_band_id)
        self._parameters.add_parameter("blueBandId", self._blue_band_id)

        self.update_view()

    def argb_pixels(self) -> np.ndarray:
        return self._argb

    def band_ids(self) -> tuple[int, int, int]:
        return self._red_band_id.value(), self._green_band_id.value(), self._blue_band_id.value()

    def update_view(self) -> None:
        super().update_view()
        img = self._model
        last = max(img.num_bands() - 1, 0)
        for param in (self._red_band_id, self._green_band_id, self._blue_band_id):
            param.set_range(0, last)
        ids = self.band_ids()
        if not img.is_viewable() or not all(0 <= i < img.num_bands() for i in ids):
            self._argb = np.zeros((0, 0), dtype=np.uint32)
            self._qimage = QImage()
            return

        self._update_value_ranges(ids)
        r, g, b = (img.band(i) for i in ids)
        self._argb = np.ascontiguousarray(map_to_argb(
            r, g, b, self._min_value.value(), self._max_value.value(),
            self._transparent_below_min.value(), self._transparent_above_max.value(),
        ))
        h, w = self._argb.shape
        self._qimage = QImage(self._argb.data, w, h, self._argb.strides[0], QImage.Format.Format_ARGB32).copy()
        self.update()

    def describe_position(self, x: float, y: float) -> Optional[Description]:
        pixel = self._pixel_at(x, y)
        if pixel is None:
            return None
        ix, iy = pixel
        ids = self.band_ids()
        r, g, b = (float(self._model.band(i)[iy, ix]) for i in ids)
        name = self._model.short_name()
        return (
            f"{name}[{ix},{iy}] = (R: {r:g}, G: {g:g}, B: {b:g})",
            f"<b>Mouse moved over Object: </b><br/><i>{name}</i><br/> at position [{ix},{iy}]"
            f"<br/> <b>Data value: (B{ids[0]}: {r:g}, B{ids[1]}: {g:g}, B{ids[2]}: {b:g})</b>"
            + _color_text(self._qimage.pixel(ix, iy)),
        )
