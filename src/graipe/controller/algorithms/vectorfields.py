"""Vector fields derived from images."""
from __future__ import annotations

import logging

import numpy as np
from scipy import ndimage

from graipe.controller.algorithm import Algorithm, ProgressCallback, register_algorithm
from graipe.model.image import IMAGE_TYPES
from graipe.model.vectorfield import DenseVectorField2D, SparseVectorField2D
from graipe.parameters import DoubleParameter, IntParameter, ModelParameter

logger = logging.getLogger(__name__)


def gaussian_gradient(band: np.ndarray, sigma: float) -> tuple[np.ndarray, np.ndarray]:
    """Derivatives of Gaussian along x (columns) and y (rows)."""
    band = band.astype(np.float64)
    gx = ndimage.gaussian_filter(band, sigma=sigma, order=(0, 1))
    gy = ndimage.gaussian_filter(band, sigma=sigma, order=(1, 0))
    return gx, gy


@register_algorithm
class GradientVectorField(Algorithm):
    """The Gaussian gradient of one image band as a dense vector field."""
    NAME = "Gradient vector field"
    TOPIC = "Vector fields"

    def __init__(self, workspace) -> None:
        super().__init__(workspace)
        self._image = ModelParameter("Image:", IMAGE_TYPES, workspace)
        self._band_id = IntParameter("Band:", 0, 1000, 0)
        self._sigma = DoubleParameter("Sigma:", 0.1, 100.0, 1.0)
        self._parameters.add_parameter("image", self._image)
        self._parameters.add_parameter("bandId", self._band_id)
        self._parameters.add_parameter("sigma", self._sigma)

    def run(self, progress: ProgressCallback) -> None:
        source = self._image.value()
        band_id = self._band_id.value()
        if band_id >= source.num_bands():
            raise ValueError(f"Image '{source.name()}' has no band {band_id}.")

        progress(20, "Computing gradient...")
        gx, gy = gaussian_gradient(source.band(band_id), self._sigma.value())

        field = DenseVectorField2D(self._workspace)
        source.copy_geometry(field)
        field.set_uv(gx, gy)
        field.set_name(f"Gradient of {source.short_name()} (sigma={self._sigma.value():g})")
        field.set_description(f"Gaussian gradient of band {band_id} of '{source.name()}'.")
        self._results = [field]


@register_algorithm
class SampleVectorField(Algorithm):
    """Samples a dense vector field on a regular grid into a sparse field."""
    NAME = "Sample dense vector field"
    TOPIC = "Vector fields"

    def __init__(self, workspace) -> None:
        super().__init__(workspace)
        self._field = ModelParameter("Vector field:", ["DenseVectorField2D"], workspace)
        self._step = IntParameter("Grid spacing:", 1, 10000, 10)
        self._min_length = DoubleParameter("Min. length:", 0.0, 1e20, 0.0)
        self._parameters.add_parameter("field", self._field)
        self._parameters.add_parameter("step", self._step)
        self._parameters.add_parameter("minLength", self._min_length)

    def run(self, progress: ProgressCallback) -> None:
        dense = self._field.value()
        xs, ys, us, vs = dense.vectors(self._step.value())

        sparse = SparseVectorField2D(self._workspace)
        dense.copy_metadata(sparse)
        # Sparse origins live in local units, not raster cells
        sx, sy = dense.raster_scale()
        keep = np.hypot(us, vs) >= self._min_length.value()
        for x, y, u, v in zip(xs[keep], ys[keep], us[keep], vs[keep]):
            sparse.add_vector((x * sx, y * sy), (u, v))

        sparse.set_name(f"Sampled {dense.short_name()}")
        logger.debug(f"Sampled {sparse.size()} of {xs.size} vectors.")
        self._results = [sparse]
