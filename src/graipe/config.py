"""
Configuration & Path Management
===============================
This module serves as the central registry for per-user paths and global
constants.

Exports:
    USER_DIR (Path): Per-user directory holding the log file.
    LOG_FILE_PATH (Path): Fixed location of the session log.
    XML_SUFFIXES (tuple): File suffixes understood as model documents.
"""
from pathlib import Path


USER_DIR: Path = Path.home() / ".graipe"
LOG_FILE_PATH: Path = USER_DIR / "graipe.log"

# Plain and gzip-compressed model documents
XML_SUFFIX: str = ".xml"
XGZ_SUFFIX: str = ".xgz"
XML_SUFFIXES: tuple[str, ...] = (XML_SUFFIX, XGZ_SUFFIX)

WORKSPACE_SUFFIX: str = ".h5"


def ensure_user_dir() -> Path:
    """Create the per-user directory if needed and return it."""
    USER_DIR.mkdir(parents=True, exist_ok=True)
    return USER_DIR
