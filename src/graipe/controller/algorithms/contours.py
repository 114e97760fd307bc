"""Iso-contour extraction via scikit-image."""
from __future__ import annotations

import logging

import numpy as np
from skimage import measure

from graipe.controller.algorithm import Algorithm, ProgressCallback, register_algorithm
from graipe.model.image import IMAGE_TYPES
from graipe.model.polygonlist import WeightedPolygonList2D
from graipe.parameters import DoubleParameter, IntParameter, ModelParameter

logger = logging.getLogger(__name__)


def iso_levels(low: float, upp: float, count: int) -> list[float]:
    """``count`` equidistant levels from ``low`` to ``upp`` (both included)."""
    if count <= 1 or upp == low:
        return [low]
    return [float(v) for v in np.linspace(low, upp, count)]


def find_contours(band: np.ndarray, level: float) -> list[np.ndarray]:
    """Contour lines of a band at one level as (n, 2) arrays of (x, y) pixel-center coordinates."""
    return [c[:, ::-1] + 0.5 for c in measure.find_contours(band.astype(np.float64), level)]


@register_algorithm
class IsoContours(Algorithm):
    """Extracts iso-contours of one band. Each contour is weighted by its level."""
    NAME = "Iso contours"
    TOPIC = "Features"

    def __init__(self, workspace) -> None:
        super().__init__(workspace)
        self._image = ModelParameter("Image:", IMAGE_TYPES, workspace)
        self._band_id = IntParameter("Band:", 0, 1000, 0)
        self._lowest = DoubleParameter("Lowest level:", -1e20, 1e20, 0.5)
        self._highest = DoubleParameter("Highest level:", -1e20, 1e20, 0.5)
        self._count = IntParameter("Number of levels:", 1, 1000, 1)
        self._min_points = IntParameter("Min. points per contour:", 2, 100000, 2)
        self._parameters.add_parameter("image", self._image)
        self._parameters.add_parameter("bandId", self._band_id)
        self._parameters.add_parameter("lowest", self._lowest)
        self._parameters.add_parameter("highest", self._highest)
        self._parameters.add_parameter("count", self._count)
        self._parameters.add_parameter("minPoints", self._min_points)

    def run(self, progress: ProgressCallback) -> None:
        source = self._image.value()
        band_id = self._band_id.value()
        if band_id >= source.num_bands():
            raise ValueError(f"Image '{source.name()}' has no band {band_id}.")

        band = source.band(band_id)
        sx, sy = source.raster_scale()
        levels = iso_levels(self._lowest.value(), self._highest.value(), self._count.value())

        contours = WeightedPolygonList2D(self._workspace)
        source.copy_geometry(contours)
        for i, level in enumerate(levels):
            progress(int(100 * i / len(levels)), f"Tracing level {level:g} ({i + 1}/{len(levels)})...")
            for line in find_contours(band, level):
                if len(line) >= self._min_points.value():
                    contours.add_polygon(line * (sx, sy), level)

        contours.set_name(f"Iso contours of {source.short_name()}")
        contours.set_description(
            f"{contours.size()} contours of band {band_id} of '{source.name()}' at levels "
            + ", ".join(f"{level:g}" for level in levels)
        )
        logger.debug(f"Found {contours.size()} contours on {len(levels)} levels.")
        self._results = [contours]
