"""Boolean, string, enum and filename parameters."""
from __future__ import annotations

import logging
import os
from typing import Any, Optional, Sequence

from PySide6.QtWidgets import (
    QCheckBox, QComboBox, QFileDialog, QHBoxLayout, QLineEdit, QPlainTextEdit, QPushButton, QWidget
)

from graipe.parameters.base import Parameter

logger = logging.getLogger(__name__)


class BoolParameter(Parameter):
    """A boolean flag, edited by a check box. Often used as a parent parameter."""
    TYPE_NAME = "BoolParameter"

    def __init__(self, name: str, value: bool = False, parent: Optional[Parameter] = None,
                 invert_parent: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._value = bool(value)

    def _coerce(self, value: Any) -> bool:
        return bool(value)

    def to_string(self) -> str:
        return "true" if self._value else "false"

    def _parse(self, text: str) -> bool:
        text = text.strip().lower()
        if text in ("true", "1", "yes"):
            return True
        if text in ("false", "0", "no"):
            return False
        raise ValueError(f"'{text}' is not a boolean")

    def _create_delegate(self) -> QWidget:
        w = QCheckBox()
        w.toggled.connect(self._on_delegate_changed)
        return w

    def _update_delegate(self) -> None:
        self._delegate.setChecked(self._value)

    def _read_delegate(self) -> bool:
        return self._delegate.isChecked()


class StringParameter(Parameter):
    """A single line of text."""
    TYPE_NAME = "StringParameter"

    def __init__(self, name: str, value: str = "", parent: Optional[Parameter] = None,
                 invert_parent: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._value = str(value)

    def _coerce(self, value: Any) -> str:
        return str(value)

    def _parse(self, text: str) -> str:
        return text

    def _create_delegate(self) -> QWidget:
        w = QLineEdit()
        w.textChanged.connect(self._on_delegate_changed)
        return w

    def _update_delegate(self) -> None:
        self._delegate.setText(self._value)

    def _read_delegate(self) -> str:
        return self._delegate.text()


class LongStringParameter(StringParameter):
    """Multi-line text, e.g. descriptions and comments."""
    TYPE_NAME = "LongStringParameter"

    def value_text(self) -> str:
        return self._value.replace("\n", " ")

    def _create_delegate(self) -> QWidget:
        w = QPlainTextEdit()
        w.setMinimumHeight(60)
        w.textChanged.connect(self._on_delegate_changed)
        return w

    def _update_delegate(self) -> None:
        self._delegate.setPlainText(self._value)

    def _read_delegate(self) -> str:
        return self._delegate.toPlainText()


class EnumParameter(Parameter):
    """
    A choice between named entries. The value is the index of the
    selected entry, the value text is its name.
    """
    TYPE_NAME = "EnumParameter"

    def __init__(self, name: str, enum_names: Sequence[str], value: int = 0,
                 parent: Optional[Parameter] = None, invert_parent: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._enum_names = list(enum_names)
        self._value = int(value)

    def enum_names(self) -> list[str]:
        return list(self._enum_names)

    def _coerce(self, value: Any) -> int:
        return int(value)

    def value_text(self) -> str:
        if self.is_valid():
            return self._enum_names[self._value]
        return ""

    def to_string(self) -> str:
        return str(self._value)

    def _parse(self, text: str) -> int:
        text = text.strip()
        if text in self._enum_names:
            return self._enum_names.index(text)
        return int(text)

    def is_valid(self) -> bool:
        return 0 <= self._value < len(self._enum_names)

    def _create_delegate(self) -> QWidget:
        w = QComboBox()
        w.addItems(self._enum_names)
        w.currentIndexChanged.connect(self._on_delegate_changed)
        return w

    def _update_delegate(self) -> None:
        self._delegate.setCurrentIndex(self._value)

    def _read_delegate(self) -> int:
        return self._delegate.currentIndex()


class FilenameParameter(Parameter):
    """A file path, edited by a line edit plus a "Browse" button."""
    TYPE_NAME = "FilenameParameter"

    def __init__(self, name: str, value: str = "", parent: Optional[Parameter] = None,
                 invert_parent: bool = False, file_filter: str = "", save: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._value = str(value)
        self._file_filter = file_filter
        self._save = save
        self._line_edit: Optional[QLineEdit] = None
        self._button: Optional[QPushButton] = None

    def _coerce(self, value: Any) -> str:
        return str(value)

    def _parse(self, text: str) -> str:
        return text

    def is_valid(self) -> bool:
        if self._save:
            folder = os.path.dirname(os.path.abspath(self._value)) if self._value else ""
            return bool(self._value) and os.path.isdir(folder)
        return os.path.exists(self._value)

    def _create_delegate(self) -> QWidget:
        w = QWidget()
        layout = QHBoxLayout(w)
        layout.setContentsMargins(0, 0, 0, 0)
        self._line_edit = QLineEdit(w)
        self._button = QPushButton("Browse", w)
        layout.addWidget(self._line_edit)
        layout.addWidget(self._button)
        return w

    def _init_connections(self) -> None:
        self._line_edit.textChanged.connect(self._on_delegate_changed)
        self._button.clicked.connect(self.select_filename)
        super()._init_connections()

    def _update_delegate(self) -> None:
        self._line_edit.setText(self._value)

    def _read_delegate(self) -> str:
        return self._line_edit.text()

    def select_filename(self) -> None:
        """Show the file selection dialog and take over the chosen path."""
        if self._delegate is None:
            return
        if self._save:
            filename, _ = QFileDialog.getSaveFileName(self._delegate, self._name, self._value, self._file_filter)
        else:
            filename, _ = QFileDialog.getOpenFileName(self._delegate, self._name, self._value, self._file_filter)
        if filename:
            self._line_edit.setText(filename)
