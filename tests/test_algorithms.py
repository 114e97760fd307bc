"""Tests for the algorithm runner, the shipped algorithms and the background worker."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image as PILImage

from graipe.controller.algorithm import Algorithm, algorithms_by_topic, create_algorithm, run_algorithm
from graipe.controller.workers import AlgorithmWorker
from graipe.model import ByteImage, DenseVectorField2D, Image, SparseVectorField2D, WeightedPolygonList2D
from graipe.model.image import IMAGE_TYPES
from graipe.parameters import ModelParameter


class RecordingAlgorithm(Algorithm):
    """Remembers whether its input was locked while running and optionally fails."""
    NAME = "Recording"

    def __init__(self, workspace, fail: bool = False) -> None:
        super().__init__(workspace)
        self.fail = fail
        self.locked_while_running = None
        self._image = ModelParameter("Image:", IMAGE_TYPES, workspace)
        self._parameters.add_parameter("image", self._image)

    def run(self, progress) -> None:
        self.locked_while_running = self._image.value().locked()
        progress(50, "halfway")
        if self.fail:
            raise RuntimeError("boom")


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class TestRunAlgorithm:
    def test_inputs_locked_during_run(self, workspace, ramp_image) -> None:
        algorithm = RecordingAlgorithm(workspace)
        messages = []
        run_algorithm(algorithm, lambda p, m: messages.append((p, m)))
        assert algorithm.locked_while_running is True
        assert not ramp_image.locked()
        assert messages == [(50, "halfway")]

    def test_locks_released_on_failure(self, workspace, ramp_image) -> None:
        with pytest.raises(RuntimeError):
            run_algorithm(RecordingAlgorithm(workspace, fail=True))
        assert not ramp_image.locked()

    def test_invalid_parameters(self, workspace) -> None:
        algorithm = create_algorithm("Gaussian smoothing", workspace)
        with pytest.raises(ValueError):
            run_algorithm(algorithm)

    def test_registry(self, workspace) -> None:
        topics = algorithms_by_topic()
        assert set(topics["Filters"]) == {"Gaussian smoothing", "Threshold"}
        assert "Iso contours" in topics["Features"]
        with pytest.raises(KeyError):
            create_algorithm("Watershed", workspace)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


class TestFilters:
    def test_smoothing(self, workspace, ramp_image) -> None:
        algorithm = create_algorithm("Gaussian smoothing", workspace)
        algorithm.parameters()["sigma"].set_value(2.0)
        (result,) = run_algorithm(algorithm)
        assert type(result) is Image
        assert (result.width(), result.height()) == (4, 3)
        assert result.band(0).std() < ramp_image.band(0).std()
        assert result.name().startswith("Gaussian smoothed ramp")

    def test_zero_sigma_keeps_values(self, workspace, ramp_image) -> None:
        algorithm = create_algorithm("Gaussian smoothing", workspace)
        algorithm.parameters()["sigma"].set_value(0.0)
        (result,) = run_algorithm(algorithm)
        np.testing.assert_allclose(result.band(0), ramp_image.band(0))

    def test_threshold(self, workspace, ramp_image) -> None:
        algorithm = create_algorithm("Threshold", workspace)
        algorithm.parameters()["threshold"].set_value(5.5)
        (result,) = run_algorithm(algorithm)
        assert isinstance(result, ByteImage)
        expected = np.where(ramp_image.band(0) > 5.5, 255, 0)
        np.testing.assert_array_equal(result.band(0), expected)

        algorithm.parameters()["invert"].set_value(True)
        (inverted,) = run_algorithm(algorithm)
        np.testing.assert_array_equal(inverted.band(0), 255 - expected)


# ---------------------------------------------------------------------------
# Vector fields
# ---------------------------------------------------------------------------


class TestVectorFields:
    def test_gradient(self, workspace, ramp_image) -> None:
        algorithm = create_algorithm("Gradient vector field", workspace)
        (field,) = run_algorithm(algorithm)
        assert isinstance(field, DenseVectorField2D)
        assert field.u().shape == (3, 4)
        # Values grow by 1 per column and by 4 per row
        assert field.v()[1, 1] > field.u()[1, 1] > 0

    def test_gradient_missing_band(self, workspace, ramp_image) -> None:
        algorithm = create_algorithm("Gradient vector field", workspace)
        algorithm.parameters()["bandId"].set_value(3)
        with pytest.raises(ValueError):
            run_algorithm(algorithm)
        assert not ramp_image.locked()

    def test_sampling(self, workspace) -> None:
        dense = DenseVectorField2D(workspace, size=(4, 4))
        dense.set_right(8)
        dense.set_uv(np.ones((4, 4)), np.zeros((4, 4)))
        workspace.add_model(dense)

        algorithm = create_algorithm("Sample dense vector field", workspace)
        algorithm.parameters()["step"].set_value(2)
        (sparse,) = run_algorithm(algorithm)
        assert isinstance(sparse, SparseVectorField2D)
        assert sparse.size() == 4
        assert sparse.origin(1) == (5.0, 0.5)
        assert sparse.direction(1) == (1.0, 0.0)

        algorithm.parameters()["minLength"].set_value(2.0)
        (empty,) = run_algorithm(algorithm)
        assert empty.size() == 0


# ---------------------------------------------------------------------------
# Contours
# ---------------------------------------------------------------------------


class TestIsoContours:
    def test_single_level(self, workspace, ramp_image) -> None:
        algorithm = create_algorithm("Iso contours", workspace)
        algorithm.parameters()["lowest"].set_value(5.5)
        algorithm.parameters()["highest"].set_value(5.5)
        (contours,) = run_algorithm(algorithm)
        assert isinstance(contours, WeightedPolygonList2D)
        assert contours.size() >= 1
        assert set(contours.weights()) == {5.5}

        points = np.concatenate(contours.polygons())
        assert points[:, 0].min() >= 0 and points[:, 0].max() <= 4
        assert points[:, 1].min() >= 0 and points[:, 1].max() <= 3

    def test_min_points_filter(self, workspace, ramp_image) -> None:
        algorithm = create_algorithm("Iso contours", workspace)
        algorithm.parameters()["minPoints"].set_value(1000)
        (contours,) = run_algorithm(algorithm)
        assert contours.size() == 0


# ---------------------------------------------------------------------------
# Image files
# ---------------------------------------------------------------------------


class TestImageFiles:
    def test_import(self, workspace, tmp_path) -> None:
        path = tmp_path / "pixels.png"
        pixels = np.array([[0, 100, 200], [50, 150, 250]], dtype=np.uint8)
        PILImage.fromarray(pixels).save(path)

        algorithm = create_algorithm("Import image", workspace)
        algorithm.parameters()["filename"].set_value(str(path))
        (image,) = run_algorithm(algorithm)
        assert type(image) is Image
        assert image.name() == "pixels.png"
        assert (image.width(), image.height(), image.num_bands()) == (3, 2, 1)
        np.testing.assert_array_equal(image.band(0), pixels)

    def test_import_missing_file_is_invalid(self, workspace, tmp_path) -> None:
        algorithm = create_algorithm("Import image", workspace)
        algorithm.parameters()["filename"].set_value(str(tmp_path / "missing.png"))
        assert not algorithm.parameters().is_valid()

    def test_export_rescales(self, workspace, ramp_image, tmp_path) -> None:
        path = tmp_path / "ramp.png"
        algorithm = create_algorithm("Export image", workspace)
        algorithm.parameters()["filename"].set_value(str(path))
        assert run_algorithm(algorithm) == []

        with PILImage.open(path) as img:
            written = np.asarray(img)
        assert written.shape == (3, 4)
        assert written.min() == 0 and written.max() == 255


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


class TestAlgorithmWorker:
    def test_run_emits_results(self, workspace, ramp_image) -> None:
        worker = AlgorithmWorker(create_algorithm("Threshold", workspace))
        progress, results, errors = [], [], []
        worker.progress_updated.connect(lambda p, m: progress.append(p))
        worker.results_ready.connect(results.append)
        worker.error_occurred.connect(errors.append)

        worker.run()
        assert errors == []
        assert len(results) == 1 and len(results[0]) == 1
        assert progress[0] == 0 and progress[-1] == 100

    def test_run_reports_errors(self, workspace) -> None:
        worker = AlgorithmWorker(create_algorithm("Gaussian smoothing", workspace))
        errors = []
        worker.error_occurred.connect(errors.append)
        worker.run()
        assert len(errors) == 1
