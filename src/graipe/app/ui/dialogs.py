"""Dialogs of the main window: parameter editing, new models and band histograms."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import numpy as np
import pyqtgraph as pg
from pyqtgraph.exporters import ImageExporter
from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox, QDialog, QDialogButtonBox, QFileDialog, QFormLayout, QHBoxLayout, QLabel,
    QPushButton, QScrollArea, QSpinBox, QVBoxLayout, QWidget
)

from graipe.model.image import band_histogram
from graipe.model.registry import create_model

if TYPE_CHECKING:
    from graipe.app.workspace import Workspace
    from graipe.model.base import Model
    from graipe.model.image import Image
    from graipe.parameters import ParameterGroup


logger = logging.getLogger(__name__)


class ParameterDialog(QDialog):
    """
    Shows the delegate of a parameter group. OK is only enabled while the
    group is valid.
    """

    def __init__(self, title: str, parameters: ParameterGroup, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.parameters = parameters
        self.setWindowTitle(title)
        self.resize(480, 360)

        layout = QVBoxLayout(self)

        self.scroll = QScrollArea()
        self.scroll.setWidgetResizable(True)
        self.scroll.setWidget(parameters.delegate())
        layout.addWidget(self.scroll)

        self.button_box = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.button_box.accepted.connect(self.accept)
        self.button_box.rejected.connect(self.reject)
        layout.addWidget(self.button_box)

        parameters.value_changed.connect(self._update_ok_button)
        self._update_ok_button()

    def _update_ok_button(self) -> None:
        self.button_box.button(QDialogButtonBox.Ok).setEnabled(self.parameters.is_valid())

    def done(self, result: int) -> None:
        # The delegate is cached by the group and must outlive the dialog
        self.parameters.value_changed.disconnect(self._update_ok_button)
        delegate = self.scroll.takeWidget()
        if delegate is not None:
            delegate.setParent(None)
        super().done(result)


class NewModelDialog(QDialog):
    """Creates a new model, either empty, with the parameters of another model or as a clone."""

    MODES = ("Empty model", "Copy parameters from", "Clone")

    def __init__(self, type_name: str, workspace: Workspace, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.type_name = type_name
        self.workspace = workspace
        self.setWindowTitle(f"New {type_name}")

        layout = QFormLayout(self)

        self.mode_combo = QComboBox()
        self.mode_combo.addItems(self.MODES)
        self.mode_combo.currentIndexChanged.connect(self._fill_sources)
        layout.addRow(QLabel("Create:"), self.mode_combo)

        self.source_combo = QComboBox()
        layout.addRow(QLabel("Other model:"), self.source_combo)

        self.button_box = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.button_box.accepted.connect(self.accept)
        self.button_box.rejected.connect(self.reject)
        layout.addRow(self.button_box)

        self._fill_sources()

    def _sources(self) -> list[Model]:
        # Any model has geometry, but only models of the same type can be cloned
        if self.mode_combo.currentIndex() == 2:
            return self.workspace.models_of_type([self.type_name])
        return self.workspace.models()

    def _fill_sources(self) -> None:
        self.source_combo.clear()
        for model in self._sources():
            self.source_combo.addItem(model.short_name(), model)

        needs_source = self.mode_combo.currentIndex() > 0
        self.source_combo.setEnabled(needs_source)
        self.button_box.button(QDialogButtonBox.Ok).setEnabled(
            not needs_source or self.source_combo.count() > 0
        )

    def create(self) -> Model:
        """The new model according to the dialog's current state. It is not yet part of the workspace."""
        mode = self.mode_combo.currentIndex()
        source: Optional[Model] = self.source_combo.currentData()

        if mode == 2 and source is not None:
            model = source.copy()
            model.set_name(f"Clone of {source.name()}")
            return model

        model = create_model(self.type_name, self.workspace)
        if mode == 1 and source is not None:
            source.copy_metadata(model)
            model.set_name(f"New {self.type_name} (from {source.short_name()})")
        return model


class HistogramDialog(QDialog):
    """Histogram of one band of an image."""

    def __init__(self, image: Image, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.image = image
        self.setWindowTitle(f"Histogram of {image.short_name()}")
        self.resize(900, 500)

        main_layout = QVBoxLayout(self)

        controls = QHBoxLayout()
        controls.addWidget(QLabel("Band:"))
        self.band_spin = QSpinBox()
        self.band_spin.setRange(0, max(image.num_bands() - 1, 0))
        self.band_spin.valueChanged.connect(self._update_plot)
        controls.addWidget(self.band_spin)

        controls.addWidget(QLabel("Bins:"))
        self.bins_spin = QSpinBox()
        self.bins_spin.setRange(2, 4096)
        self.bins_spin.setValue(256)
        self.bins_spin.valueChanged.connect(self._update_plot)
        controls.addWidget(self.bins_spin)
        controls.addStretch()

        export_btn = QPushButton("Export as image...")
        export_btn.clicked.connect(self._export_image)
        controls.addWidget(export_btn)

        close_btn = QPushButton("Close")
        close_btn.clicked.connect(self.accept)
        controls.addWidget(close_btn)
        main_layout.addLayout(controls)

        self.plot_widget = pg.PlotWidget()
        self.plot_widget.setBackground('w')
        self.plot_widget.showGrid(x=True, y=True, alpha=0.3)
        self.plot_widget.setLabel('bottom', f'Value [{image.units()}]', color='black')
        self.plot_widget.setLabel('left', 'Count', color='black')
        main_layout.addWidget(self.plot_widget)

        self.statistics_label = QLabel()
        self.statistics_label.setAlignment(Qt.AlignRight)
        main_layout.addWidget(self.statistics_label)

        self._update_plot()

    def histogram(self) -> tuple[np.ndarray, np.ndarray]:
        """Counts and bin edges of the selected band."""
        band = self.image.band(self.band_spin.value())
        return band_histogram(band, self.bins_spin.value())

    def _update_plot(self) -> None:
        self.plot_widget.clear()
        if self.image.is_empty() or self.image.num_bands() == 0:
            self.statistics_label.setText("The image is empty.")
            return

        counts, edges = self.histogram()
        self.plot_widget.plot(
            edges, counts, stepMode="center", fillLevel=0, brush=(31, 119, 180, 150), pen='#1f77b4'
        )
        stats = self.image.statistics(self.band_spin.value())
        self.statistics_label.setText(f"min: {stats.min:g}   max: {stats.max:g}   mean: {stats.mean:g}")

    def _export_image(self) -> None:
        filename, _ = QFileDialog.getSaveFileName(self, "Export histogram", "", "PNG Files (*.png)")
        if not filename:
            return
        exporter = ImageExporter(self.plot_widget.plotItem)
        exporter.export(filename)
        logger.info(f"Histogram exported to: {filename}")
