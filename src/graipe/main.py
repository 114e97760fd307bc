"""
Application Initialization
==========================
This module constructs the workspace and the main window and starts the Qt
event loop.

Files given on the command line are opened at start-up: .h5 files as
workspaces, .xml/.xgz files as models.
"""
import logging
import sys

import pyqtgraph as pg

from graipe.app.application import create_app
from graipe.app.ui.main_window import MainWindow
from graipe.app.workspace import Workspace
from graipe.config import LOG_FILE_PATH, WORKSPACE_SUFFIX, ensure_user_dir
from graipe.logging_config import install_qt_message_handler, setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    # 1. Setup Logging (Console + the per-user log file)
    ensure_user_dir()
    setup_logging(level=logging.INFO, log_file=LOG_FILE_PATH)
    install_qt_message_handler()

    pg.setConfigOption("background", "w")
    pg.setConfigOption("foreground", "k")
    pg.setConfigOptions(antialias=True, imageAxisOrder="row-major")

    # 2. Create the Qt Application
    app = create_app()

    # 3. Initialize the workspace and the main window
    workspace = Workspace()
    window = MainWindow(workspace)
    window.show()

    for filename in app.arguments()[1:]:
        if filename.lower().endswith(WORKSPACE_SUFFIX):
            window.open_workspace(filename)
        else:
            window.open_model(filename)

    # 4. Start Event Loop
    logger.info("GRAIPE started.")
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
