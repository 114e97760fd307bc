"""3x3 transformation matrix parameter."""
from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np
from PySide6.QtGui import QTransform
from PySide6.QtWidgets import QGridLayout, QLineEdit, QWidget

from graipe.parameters.base import Parameter

logger = logging.getLogger(__name__)


def transform_to_matrix(transform: QTransform) -> np.ndarray:
    return np.array([
        [transform.m11(), transform.m12(), transform.m13()],
        [transform.m21(), transform.m22(), transform.m23()],
        [transform.m31(), transform.m32(), transform.m33()],
    ], dtype=np.float64)


def matrix_to_transform(matrix: np.ndarray) -> QTransform:
    m = np.asarray(matrix, dtype=np.float64)
    return QTransform(m[0, 0], m[0, 1], m[0, 2],
                      m[1, 0], m[1, 1], m[1, 2],
                      m[2, 0], m[2, 1], m[2, 2])


class TransformParameter(Parameter):
    """
    A projective transformation stored as a 3x3 matrix in Qt's (m11 .. m33)
    convention. Serialized as the nine entries joined by ", ".
    """
    TYPE_NAME = "TransformParameter"

    def __init__(self, name: str, value: Any = None, parent: Optional[Parameter] = None,
                 invert_parent: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._value = self._coerce(np.eye(3) if value is None else value)
        self._edits: list[QLineEdit] = []

    def _coerce(self, value: Any) -> np.ndarray:
        if isinstance(value, QTransform):
            return transform_to_matrix(value)
        matrix = np.array(value, dtype=np.float64).reshape(3, 3)
        return matrix

    def transform(self) -> QTransform:
        return matrix_to_transform(self._value)

    def to_string(self) -> str:
        return ", ".join(f"{v:.10g}" for v in self._value.ravel())

    def _parse(self, text: str) -> np.ndarray:
        values = text.split(",")
        if len(values) != 9:
            raise ValueError(f"expected 9 matrix entries, got {len(values)}")
        return np.array([float(v) for v in values], dtype=np.float64).reshape(3, 3)

    def _create_delegate(self) -> QWidget:
        w = QWidget()
        layout = QGridLayout(w)
        layout.setContentsMargins(0, 0, 0, 0)
        self._edits = []
        for i in range(9):
            edit = QLineEdit(w)
            layout.addWidget(edit, i // 3, i % 3)
            self._edits.append(edit)
        return w

    def _init_connections(self) -> None:
        for edit in self._edits:
            edit.textChanged.connect(self._on_delegate_changed)
        super()._init_connections()

    def _update_delegate(self) -> None:
        for edit, v in zip(self._edits, self._value.ravel()):
            edit.setText(f"{v:g}")

    def _read_delegate(self) -> np.ndarray:
        matrix = self._value.copy().ravel()
        for i, edit in enumerate(self._edits):
            try:
                matrix[i] = float(edit.text())
            except ValueError:
                # Keep the last valid entry while the user is typing
                logger.debug(f"Ignoring transform entry '{edit.text()}'")
        return matrix.reshape(3, 3)
