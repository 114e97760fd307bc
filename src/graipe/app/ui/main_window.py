"""
Main Application Window
=======================
The primary GUI container: model and view lists, the graphics view showing
all view controllers, a parameter editor, the log console and the menus.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects global actions (like File -> Save) to the workspace,
   the IO manager and the algorithm workers.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Optional

from PySide6.QtCore import QObject, QSettings, Qt, Signal
from PySide6.QtGui import QAction, QPainter
from PySide6.QtWidgets import (
    QDockWidget, QFileDialog, QGraphicsScene, QGraphicsView, QLabel, QListWidget, QListWidgetItem,
    QMainWindow, QMessageBox, QPlainTextEdit, QProgressBar, QScrollArea, QSplitter, QVBoxLayout, QWidget
)

from graipe.app.application import VISIBLE_APP_NAME
from graipe.app.ui.dialogs import HistogramDialog, NewModelDialog, ParameterDialog
from graipe.app.workspace import Workspace
from graipe.config import WORKSPACE_SUFFIX, XGZ_SUFFIX
from graipe.controller.algorithm import algorithms_by_topic
from graipe.controller.workers import AlgorithmWorker
from graipe.logging_config import LOG_FORMAT
from graipe.model.base import ListModel, Model
from graipe.model.image import IMAGE_TYPES
from graipe.model.io import IOManager
from graipe.model.registry import list_model_types
from graipe.parameters import ParameterGroup
from graipe.view.registry import view_controllers_for
from graipe.view.viewcontroller import ViewController

logger = logging.getLogger(__name__)

MODEL_FILE_FILTER = "Model files (*.xgz *.xml);;All files (*)"
WORKSPACE_FILE_FILTER = "HDF5 Files (*.h5)"
CSV_FILE_FILTER = "CSV files (*.csv);;All files (*)"

SETTINGS_LAST_DIR = "paths/last_dir"


class _LogRelay(QObject):
    message = Signal(str)


class QtLogHandler(logging.Handler):
    """
    Relays log records into the console. Records from worker threads reach
    the console through a queued signal.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.relay = _LogRelay()
        self.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.relay.message.emit(self.format(record))
        except RuntimeError:
            # The console is gone already
            self.handleError(record)


class Console(QPlainTextEdit):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setReadOnly(True)
        self.setMaximumBlockCount(5000)

    def _log(self, level: str, msg: str) -> None:
        self.appendPlainText(f"{datetime.now().strftime('%d.%m.%Y %H:%M:%S')} [{level}] {msg}")

    def info(self, msg: str) -> None:
        self._log("info", msg)

    def warn(self, msg: str) -> None:
        self._log("warn", msg)

    def error(self, msg: str) -> None:
        self._log("error", msg)


class MainWindow(QMainWindow):
    def __init__(self, workspace: Optional[Workspace] = None) -> None:
        super().__init__()
        self.workspace: Workspace = workspace if workspace is not None else Workspace(self)
        self.worker: Optional[AlgorithmWorker] = None
        self.is_modified: bool = False
        # Parameter group currently shown in the parameter dock
        self._shown_parameters: Optional[ParameterGroup] = None

        self.update_window_title()
        self.resize(1400, 900)

        # --- CENTRAL: the scene with all view controllers ---
        self.scene = QGraphicsScene(self)
        self.graphics_view = QGraphicsView(self.scene)
        self.graphics_view.setRenderHint(QPainter.Antialiasing)
        self.graphics_view.setDragMode(QGraphicsView.ScrollHandDrag)
        self.setCentralWidget(self.graphics_view)

        # --- LEFT DOCK: models and views ---
        splitter = QSplitter(Qt.Vertical)
        self.model_list = QListWidget()
        self.model_list.currentItemChanged.connect(self.on_model_selected)
        self.model_list.itemDoubleClicked.connect(self.on_model_double_clicked)
        self.view_list = QListWidget()
        self.view_list.currentItemChanged.connect(self.on_view_selected)
        self.view_list.itemChanged.connect(self.on_view_item_changed)
        splitter.addWidget(self._titled(self.model_list, "<b>Models</b>"))
        splitter.addWidget(self._titled(self.view_list, "<b>Views</b>"))

        lists_dock = QDockWidget("Workspace", self)
        lists_dock.setObjectName("workspace_dock")
        lists_dock.setWidget(splitter)
        self.addDockWidget(Qt.LeftDockWidgetArea, lists_dock)

        # --- RIGHT DOCK: parameters ---
        self.parameter_area = QScrollArea()
        self.parameter_area.setWidgetResizable(True)
        self.parameter_dock = QDockWidget("Parameters", self)
        self.parameter_dock.setObjectName("parameter_dock")
        self.parameter_dock.setWidget(self.parameter_area)
        self.addDockWidget(Qt.RightDockWidgetArea, self.parameter_dock)

        # --- BOTTOM DOCK: console ---
        self.console = Console()
        console_dock = QDockWidget("Log", self)
        console_dock.setObjectName("console_dock")
        console_dock.setWidget(self.console)
        self.addDockWidget(Qt.BottomDockWidgetArea, console_dock)

        self.log_handler = QtLogHandler()
        self.log_handler.relay.message.connect(self.console.appendPlainText)
        logging.getLogger("graipe").addHandler(self.log_handler)

        # --- STATUS BAR ---
        self.status_label = QLabel()
        self.statusBar().addWidget(self.status_label, 1)
        self.progress = QProgressBar()
        self.progress.setMaximumWidth(250)
        self.progress.setTextVisible(True)
        self.progress.setVisible(False)
        self.statusBar().addPermanentWidget(self.progress)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

        # --- CONNECTIONS ---
        self.workspace.models_changed.connect(self.refresh_model_list)
        self.workspace.models_changed.connect(self.set_modified)
        self.workspace.view_controllers_changed.connect(self.refresh_view_list)
        self.workspace.view_controller_added.connect(self.on_view_controller_added)
        self.workspace.view_controller_removed.connect(self.on_view_controller_removed)

        for vc in self.workspace.view_controllers():
            self.on_view_controller_added(vc)
        self.refresh_model_list()
        self.refresh_view_list()
        self.set_modified(False)

    @staticmethod
    def _titled(widget: QWidget, title: str) -> QWidget:
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(2, 2, 2, 2)
        layout.addWidget(QLabel(title))
        layout.addWidget(widget)
        return container

    def _create_actions(self) -> None:
        # File Actions
        self.act_new = QAction("New Workspace", self)
        self.act_new.triggered.connect(self.on_file_new)

        self.act_open = QAction("Open Workspace...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_file_open)

        self.act_save = QAction("Save Workspace", self)
        self.act_save.setShortcut("Ctrl+S")
        self.act_save.triggered.connect(self.on_file_save)

        self.act_save_as = QAction("Save Workspace As...", self)
        self.act_save_as.setShortcut("Ctrl+Shift+S")
        self.act_save_as.triggered.connect(self.on_file_save_as)

        self.act_load_model = QAction("Load Model...", self)
        self.act_load_model.setShortcut("Ctrl+L")
        self.act_load_model.triggered.connect(self.on_load_model)

        self.act_save_model = QAction("Save Model As...", self)
        self.act_save_model.triggered.connect(self.on_save_model)

        self.act_import_csv = QAction("Import CSV into Model...", self)
        self.act_import_csv.triggered.connect(self.on_import_csv)

        self.act_export_csv = QAction("Export Model as CSV...", self)
        self.act_export_csv.triggered.connect(self.on_export_csv)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

        # Model Actions
        self.act_remove_model = QAction("Remove Model", self)
        self.act_remove_model.triggered.connect(self.on_remove_model)

        self.act_histogram = QAction("Histogram...", self)
        self.act_histogram.triggered.connect(self.on_histogram)

        # View Actions
        self.act_remove_view = QAction("Remove View", self)
        self.act_remove_view.triggered.connect(self.on_remove_view)

        self.act_fit = QAction("Fit to Window", self)
        self.act_fit.setShortcut("Ctrl+F")
        self.act_fit.triggered.connect(self.fit_view)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        file_menu.addAction(self.act_new)
        file_menu.addSeparator()
        file_menu.addAction(self.act_open)
        file_menu.addAction(self.act_save)
        file_menu.addAction(self.act_save_as)
        file_menu.addSeparator()
        file_menu.addAction(self.act_load_model)
        file_menu.addAction(self.act_save_model)
        file_menu.addAction(self.act_import_csv)
        file_menu.addAction(self.act_export_csv)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

        model_menu = menu_bar.addMenu("&Models")
        new_menu = model_menu.addMenu("New")
        for type_name in list_model_types():
            act = QAction(type_name, self)
            act.triggered.connect(lambda _=False, t=type_name: self.on_new_model(t))
            new_menu.addAction(act)
        model_menu.addSeparator()
        model_menu.addAction(self.act_remove_model)
        model_menu.addAction(self.act_histogram)

        view_menu = menu_bar.addMenu("&Views")
        self.show_menu = view_menu.addMenu("Show Selected Model as")
        self.show_menu.aboutToShow.connect(self._fill_show_menu)
        view_menu.addAction(self.act_remove_view)
        view_menu.addSeparator()
        view_menu.addAction(self.act_fit)

        algorithm_menu = menu_bar.addMenu("&Algorithms")
        for topic, names in sorted(algorithms_by_topic().items()):
            topic_menu = algorithm_menu.addMenu(topic)
            for name in names:
                act = QAction(f"{name}...", self)
                act.triggered.connect(lambda _=False, n=name: self.on_run_algorithm(n))
                topic_menu.addAction(act)
        self.algorithm_menu = algorithm_menu

    def _fill_show_menu(self) -> None:
        self.show_menu.clear()
        model = self.selected_model()
        if model is None:
            self.show_menu.addAction("No model selected").setEnabled(False)
            return
        for type_name in view_controllers_for(model):
            act = QAction(type_name, self.show_menu)
            act.triggered.connect(lambda _=False, t=type_name, m=model: self.show_model(m, t))
            self.show_menu.addAction(act)

    # --- HELPER METHODS ---
    def update_window_title(self) -> None:
        """Updates the window title based on filename and dirty state."""
        filename = self.workspace.filepath() or "Untitled"
        title = f"{VISIBLE_APP_NAME} - [{os.path.basename(filename)}"
        if self.is_modified:
            title += "*"
        title += "]"
        self.setWindowTitle(title)

    def set_modified(self, modified: bool = True) -> None:
        if self.is_modified != modified:
            self.is_modified = modified
            self.update_window_title()

    def last_dir(self) -> str:
        return QSettings().value(SETTINGS_LAST_DIR, "", type=str)

    def remember_dir(self, filename: str) -> None:
        QSettings().setValue(SETTINGS_LAST_DIR, os.path.dirname(os.path.abspath(filename)))

    def selected_model(self) -> Optional[Model]:
        item = self.model_list.currentItem()
        return item.data(Qt.UserRole) if item is not None else None

    def selected_view(self) -> Optional[ViewController]:
        item = self.view_list.currentItem()
        return item.data(Qt.UserRole) if item is not None else None

    def show_parameters(self, parameters: Optional[ParameterGroup]) -> None:
        """Show the delegate of a parameter group in the parameter dock."""
        if parameters is self._shown_parameters:
            return
        # Take the old delegate back, the scroll area would delete it
        old = self.parameter_area.takeWidget()
        if old is not None:
            old.setParent(None)
        self._shown_parameters = parameters
        if parameters is not None:
            self.parameter_area.setWidget(parameters.delegate())

    def refresh_model_list(self) -> None:
        current = self.selected_model()
        self.model_list.blockSignals(True)
        try:
            self.model_list.clear()
            for model in self.workspace.models():
                item = QListWidgetItem(f"{model.short_name()} ({model.type_name()})")
                item.setData(Qt.UserRole, model)
                item.setToolTip(model.description())
                if model.locked():
                    item.setForeground(Qt.gray)
                self.model_list.addItem(item)
                if model is current:
                    self.model_list.setCurrentItem(item)
        finally:
            self.model_list.blockSignals(False)

        shown = self._shown_parameters
        if shown is not None and not any(
            shown is m.parameters() for m in self.workspace.models()
        ) and not any(shown is vc.parameters() for vc in self.workspace.view_controllers()):
            self.show_parameters(None)

    def refresh_view_list(self) -> None:
        current = self.selected_view()
        self.view_list.blockSignals(True)
        try:
            self.view_list.clear()
            for vc in self.workspace.view_controllers():
                item = QListWidgetItem(f"{vc.name()} ({vc.type_name()})")
                item.setData(Qt.UserRole, vc)
                item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
                item.setCheckState(Qt.Checked if vc.isVisible() else Qt.Unchecked)
                self.view_list.addItem(item)
                if vc is current:
                    self.view_list.setCurrentItem(item)
        finally:
            self.view_list.blockSignals(False)

    def fit_view(self) -> None:
        rect = self.scene.itemsBoundingRect()
        if not rect.isEmpty():
            self.graphics_view.fitInView(rect, Qt.KeepAspectRatio)

    def show_model(self, model: Model, type_name: str) -> ViewController:
        vc = self.workspace.new_view_controller(type_name, model)
        self.set_modified(True)
        return vc

    # --- LIST SLOTS ---

    def on_model_selected(self, current: Optional[QListWidgetItem], _previous=None) -> None:
        if current is None:
            return
        model: Model = current.data(Qt.UserRole)
        self.show_parameters(model.parameters())
        self.act_histogram.setEnabled(model.type_name() in IMAGE_TYPES)

    def on_model_double_clicked(self, item: QListWidgetItem) -> None:
        model: Model = item.data(Qt.UserRole)
        if not model.is_viewable():
            logger.warning(f"{model!r} is empty and cannot be displayed.")
            return
        types = view_controllers_for(model)
        if types:
            self.show_model(model, types[0])

    def on_view_selected(self, current: Optional[QListWidgetItem], _previous=None) -> None:
        if current is None:
            return
        vc: ViewController = current.data(Qt.UserRole)
        self.show_parameters(vc.parameters())

    def on_view_item_changed(self, item: QListWidgetItem) -> None:
        vc: ViewController = item.data(Qt.UserRole)
        vc.setVisible(item.checkState() == Qt.Checked)

    def on_view_controller_added(self, vc: ViewController) -> None:
        self.scene.addItem(vc)
        vc.status_text_changed.connect(self.status_label.setText)
        vc.status_description_changed.connect(self.status_label.setToolTip)
        vc.parameters().value_changed.connect(self.refresh_view_list)

    def on_view_controller_removed(self, vc: ViewController) -> None:
        if self._shown_parameters is vc.parameters():
            self.show_parameters(None)

    # --- FILE SLOTS ---

    def on_file_new(self) -> None:
        if not self._confirm_discard():
            return
        try:
            self.workspace.reset()
        except RuntimeError as e:
            QMessageBox.warning(self, "Error", str(e))
            return
        self.show_parameters(None)
        self.set_modified(False)
        self.update_window_title()

    def on_file_open(self) -> None:
        if not self._confirm_discard():
            return
        fname, _ = QFileDialog.getOpenFileName(
            self, "Open Workspace", self.last_dir(), WORKSPACE_FILE_FILTER
        )
        if fname:
            self.open_workspace(fname)

    def open_workspace(self, fname: str) -> bool:
        try:
            self.show_parameters(None)
            self.workspace.load(fname)
        except (ValueError, RuntimeError, OSError) as e:
            QMessageBox.critical(self, "Error", f"Could not open the workspace:\n{e}")
            return False
        self.remember_dir(fname)
        self.is_modified = False
        self.update_window_title()
        self.fit_view()
        return True

    def on_file_save(self) -> None:
        if self.workspace.filepath():
            self._save_workspace(self.workspace.filepath())
        else:
            self.on_file_save_as()

    def on_file_save_as(self) -> None:
        fname, _ = QFileDialog.getSaveFileName(
            self, "Save Workspace", self.last_dir(), WORKSPACE_FILE_FILTER
        )
        if fname:
            # Ensure extension
            if not fname.endswith(WORKSPACE_SUFFIX):
                fname += WORKSPACE_SUFFIX
            self._save_workspace(fname)

    def _save_workspace(self, fname: str) -> None:
        try:
            self.workspace.save(fname)
        except (OSError, ValueError) as e:
            QMessageBox.critical(self, "Error", f"Could not save the workspace:\n{e}")
            return
        self.remember_dir(fname)
        self.is_modified = False
        self.update_window_title()

    def on_load_model(self) -> None:
        fnames, _ = QFileDialog.getOpenFileNames(self, "Load Models", self.last_dir(), MODEL_FILE_FILTER)
        for fname in fnames:
            self.open_model(fname)

    def open_model(self, fname: str) -> Optional[Model]:
        try:
            model = self.workspace.load_model(fname)
        except (ValueError, OSError) as e:
            QMessageBox.critical(self, "Error", f"Could not load the model:\n{e}")
            return None
        self.remember_dir(fname)
        return model

    def on_save_model(self) -> None:
        model = self.selected_model()
        if model is None:
            return
        default = os.path.join(self.last_dir(), f"{model.name()}{XGZ_SUFFIX}")
        fname, _ = QFileDialog.getSaveFileName(self, "Save Model", default, MODEL_FILE_FILTER)
        if not fname:
            return
        try:
            self.workspace.save_model(model, fname)
        except OSError as e:
            QMessageBox.critical(self, "Error", f"Could not save the model:\n{e}")
            return
        self.remember_dir(fname)

    def on_import_csv(self) -> None:
        model = self.selected_model()
        if not isinstance(model, ListModel):
            QMessageBox.information(self, "CSV", "Select a polygon list or sparse vector field first.")
            return
        fname, _ = QFileDialog.getOpenFileName(self, "Import CSV", self.last_dir(), CSV_FILE_FILTER)
        if not fname:
            return
        try:
            IOManager.import_csv(model, fname)
        except (ValueError, OSError) as e:
            QMessageBox.critical(self, "Error", str(e))

    def on_export_csv(self) -> None:
        model = self.selected_model()
        if not isinstance(model, ListModel):
            QMessageBox.information(self, "CSV", "Select a polygon list or sparse vector field first.")
            return
        fname, _ = QFileDialog.getSaveFileName(self, "Export CSV", self.last_dir(), CSV_FILE_FILTER)
        if not fname:
            return
        try:
            IOManager.export_csv(model, fname)
        except OSError as e:
            QMessageBox.critical(self, "Error", str(e))

    # --- MODEL & VIEW SLOTS ---

    def on_new_model(self, type_name: str) -> None:
        dialog = NewModelDialog(type_name, self.workspace, self)
        if dialog.exec() != NewModelDialog.Accepted:
            return
        model = dialog.create()
        self.workspace.add_model(model)
        self.model_list.setCurrentRow(self.model_list.count() - 1)

    def on_remove_model(self) -> None:
        model = self.selected_model()
        if model is None:
            return
        if not self.workspace.remove_model(model):
            QMessageBox.warning(self, "Locked", f"'{model.name()}' is in use and cannot be removed.")

    def on_histogram(self) -> None:
        model = self.selected_model()
        if model is None or model.type_name() not in IMAGE_TYPES:
            return
        HistogramDialog(model, self).exec()

    def on_remove_view(self) -> None:
        vc = self.selected_view()
        if vc is not None:
            self.workspace.remove_view_controller(vc)
            self.set_modified(True)

    # --- ALGORITHMS ---

    def on_run_algorithm(self, name: str) -> None:
        if self.worker is not None and self.worker.isRunning():
            QMessageBox.information(self, "Busy", "Another algorithm is still running.")
            return

        algorithm = self.workspace.create_algorithm(name)
        dialog = ParameterDialog(name, algorithm.parameters(), self)
        if dialog.exec() != ParameterDialog.Accepted:
            return

        self.progress.setVisible(True)
        self.progress.setRange(0, 100)
        self.progress.setValue(0)
        self.algorithm_menu.setEnabled(False)

        self.worker = AlgorithmWorker(algorithm, self)
        self.worker.progress_updated.connect(self.on_progress)
        self.worker.results_ready.connect(self.on_results_ready)
        self.worker.error_occurred.connect(self.on_error)
        self.worker.finished.connect(self.on_finished)
        self.worker.finished.connect(self.worker.deleteLater)
        self.worker.start()
        # Input models are locked now
        self.refresh_model_list()

    def on_progress(self, percent: int, msg: str) -> None:
        self.progress.setValue(percent)
        self.statusBar().showMessage(msg, 3000)

    def on_results_ready(self, results: list) -> None:
        for model in results:
            self.workspace.add_model(model)
        logger.info(f"{len(results)} result(s) added to the workspace.")

    def on_error(self, msg: str) -> None:
        QMessageBox.critical(self, "Algorithm failed", msg)

    def on_finished(self) -> None:
        self.progress.setVisible(False)
        self.algorithm_menu.setEnabled(True)
        self.refresh_model_list()
        self.worker = None

    # --- CLOSING ---

    def _confirm_discard(self) -> bool:
        if not self.is_modified:
            return True
        reply = QMessageBox.question(
            self,
            "Save changes?",
            "The workspace was modified. Do you want to save the changes?",
            QMessageBox.Save | QMessageBox.Discard | QMessageBox.Cancel
        )
        if reply == QMessageBox.Save:
            self.on_file_save()
            # Saving was cancelled or failed
            return not self.is_modified
        return reply == QMessageBox.Discard

    def closeEvent(self, event, /) -> None:
        """Handle window close event to prompt for saving if modified."""
        if self.worker is not None and self.worker.isRunning():
            QMessageBox.information(self, "Busy", "Wait for the running algorithm to finish.")
            event.ignore()
            return

        if not self._confirm_discard():
            event.ignore()
            return

        self.show_parameters(None)
        logging.getLogger("graipe").removeHandler(self.log_handler)
        event.accept()
