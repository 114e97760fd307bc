"""
Background Workers (Threading)
==============================
This module contains QThread subclasses for handling long-running tasks.

Why is this file needed?
------------------------
1. Responsiveness: If we run an algorithm on the main thread, the GUI freezes.
   The worker pushes the computation to a background thread.
2. Signals: It provides a safe way to update the GUI (Progress Bars, Logs)
   from the background process using Qt Signals.

Result models are created inside the worker thread. They are moved to the
thread of the application before being handed out, so that their signals
reach the GUI.

Classes:
    AlgorithmWorker: Runs one algorithm via ``run_algorithm``.
"""
import logging

from PySide6.QtCore import QCoreApplication, QThread, Signal

from graipe.controller.algorithm import Algorithm, run_algorithm

logger = logging.getLogger(__name__)


class AlgorithmWorker(QThread):
    # Signals to update the UI from the background
    progress_updated = Signal(int, str)  # e.g., (40, "Smoothing band 2/5...")
    results_ready = Signal(list)
    error_occurred = Signal(str)

    def __init__(self, algorithm: Algorithm, parent=None):
        super().__init__(parent)
        self.algorithm = algorithm

    def run(self):
        try:
            logger.info(f"Starting '{self.algorithm.name()}' in background thread...")
            self.progress_updated.emit(0, f"Running {self.algorithm.name()}...")

            results = run_algorithm(self.algorithm, self.progress_updated.emit)

            app = QCoreApplication.instance()
            if app is not None:
                for model in results:
                    model.moveToThread(app.thread())

            self.progress_updated.emit(100, f"{self.algorithm.name()} finished.")
            self.results_ready.emit(results)

        except Exception as e:
            logger.error(f"Error in AlgorithmWorker: {e}")
            self.error_occurred.emit(str(e))
