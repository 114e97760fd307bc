"""Shared fixtures: an offscreen QApplication and a fresh workspace per test."""

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import numpy as np
import pytest
from PySide6.QtWidgets import QApplication

from graipe.app.workspace import Workspace
from graipe.model.image import Image


@pytest.fixture(scope="session")
def qapp() -> QApplication:
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


@pytest.fixture
def workspace(qapp) -> Workspace:
    return Workspace()


@pytest.fixture
def ramp_image(workspace) -> Image:
    """A 4x3 single band image with values 0..11 in row-major order."""
    image = Image.from_array(np.arange(12, dtype=np.float32).reshape(3, 4), workspace, name="ramp")
    workspace.add_model(image)
    return image
