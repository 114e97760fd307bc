"""Parameter referencing a model of the workspace."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence

from PySide6.QtWidgets import QComboBox, QWidget

from graipe.parameters.base import Parameter

if TYPE_CHECKING:
    from graipe.app.workspace import Workspace
    from graipe.model.base import Model


class ModelParameter(Parameter):
    """
    Selects one model of the given type names from the workspace.
    Serialized by the model's name.
    """
    TYPE_NAME = "ModelParameter"

    def __init__(self, name: str, type_names: Sequence[str], workspace: Workspace,
                 parent: Optional[Parameter] = None, invert_parent: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._type_names = list(type_names)
        self._workspace = workspace
        candidates = self.candidates()
        self._value = candidates[0] if candidates else None
        workspace.models_changed.connect(self._refresh_delegate)

    def type_names(self) -> list[str]:
        return list(self._type_names)

    def candidates(self) -> list[Model]:
        return self._workspace.models_of_type(self._type_names)

    def value_text(self) -> str:
        return self._value.name() if self._value is not None else ""

    def to_string(self) -> str:
        return self.value_text()

    def _parse(self, text: str) -> Model:
        model = self._workspace.model_by_name(text)
        if model is None or model.type_name() not in self._type_names:
            raise ValueError(f"no model of type {self._type_names} named '{text}' in workspace")
        return model

    def is_valid(self) -> bool:
        return self._value is not None and self._value in self._workspace.models()

    def _create_delegate(self) -> QWidget:
        w = QComboBox()
        w.currentIndexChanged.connect(self._on_delegate_changed)
        return w

    def _update_delegate(self) -> None:
        self._delegate.clear()
        candidates = self.candidates()
        for model in candidates:
            self._delegate.addItem(model.short_name(), model)
        if self._value in candidates:
            self._delegate.setCurrentIndex(candidates.index(self._value))
        else:
            self._delegate.setCurrentIndex(-1)

    def _read_delegate(self) -> Optional[Model]:
        return self._delegate.currentData()

    def _refresh_delegate(self) -> None:
        if self._value is not None and self._value not in self._workspace.models():
            self._value = None
        if self._value is None:
            candidates = self.candidates()
            self._value = candidates[0] if candidates else None
        if self._delegate is not None:
            self._syncing = True
            try:
                self._update_delegate()
            finally:
                self._syncing = False
