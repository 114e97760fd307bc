"""
Workspace
=========
The session of a running application: all models, all view controllers
and the algorithms which may be applied to them.

Why is this file needed?
------------------------
1. State Management: models and views live here, the main window only
   displays them.
2. Persistence: this is what gets saved to and loaded from .h5 files.
3. Decoupling: parameters referencing models (``ModelParameter``) and the
   algorithms query the workspace instead of the GUI.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from PySide6.QtCore import QObject, Signal

# Importing the packages registers all model, view and algorithm types
import graipe.controller.algorithms  # noqa: F401
import graipe.view  # noqa: F401
from graipe.controller.algorithm import Algorithm, create_algorithm, list_algorithms
from graipe.model.base import Model
from graipe.model.io import IOManager
from graipe.model.registry import create_model
from graipe.view.registry import create_view_controller
from graipe.view.viewcontroller import ViewController

logger = logging.getLogger(__name__)


class Workspace(QObject):
    models_changed = Signal()
    view_controllers_changed = Signal()

    view_controller_added = Signal(object)
    view_controller_removed = Signal(object)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._models: list[Model] = []
        self._view_controllers: list[ViewController] = []
        self._filepath: Optional[str] = None

    # ---- models ----

    def models(self) -> list[Model]:
        return list(self._models)

    def models_of_type(self, type_names: Iterable[str]) -> list[Model]:
        type_names = set(type_names)
        return [m for m in self._models if m.type_name() in type_names]

    def model_by_name(self, name: str) -> Optional[Model]:
        for model in self._models:
            if model.name() == name:
                return model
        return None

    def new_model(self, type_name: str) -> Model:
        """Create an empty model of a registered type and add it."""
        model = create_model(type_name, self)
        self.add_model(model)
        return model

    def add_model(self, model: Model) -> None:
        if model in self._models:
            return
        model.set_workspace(self)
        self._models.append(model)
        model.parameters().value_changed.connect(self.models_changed)
        logger.debug(f"Added {model!r} to workspace.")
        self.models_changed.emit()

    def remove_model(self, model: Model) -> bool:
        """
        Remove a model together with all views showing it.
        Locked models cannot be removed, False is returned then.
        """
        if model not in self._models:
            return False
        if model.locked():
            logger.warning(f"{model!r} is locked by {model.locked_by()} and cannot be removed.")
            return False

        for vc in [vc for vc in self._view_controllers if vc.model() is model]:
            self.remove_view_controller(vc)

        self._models.remove(model)
        model.parameters().value_changed.disconnect(self.models_changed)
        logger.debug(f"Removed {model!r} from workspace.")
        self.models_changed.emit()
        model.deleteLater()
        return True

    def load_model(self, filepath: str) -> Model:
        model = IOManager.read_model(filepath, self)
        self.add_model(model)
        return model

    def save_model(self, model: Model, filepath: str) -> None:
        IOManager.write_model(model, filepath)

    # ---- view controllers ----

    def view_controllers(self) -> list[ViewController]:
        return list(self._view_controllers)

    def new_view_controller(self, type_name: str, model: Model) -> ViewController:
        vc = create_view_controller(type_name, model)
        self.add_view_controller(vc)
        return vc

    def add_view_controller(self, vc: ViewController) -> None:
        if vc in self._view_controllers:
            return
        if vc.model() not in self._models:
            raise ValueError(f"{vc!r} shows a model which is not part of the workspace.")
        self._view_controllers.append(vc)
        self.view_controller_added.emit(vc)
        self.view_controllers_changed.emit()

    def remove_view_controller(self, vc: ViewController) -> None:
        if vc not in self._view_controllers:
            return
        self._view_controllers.remove(vc)
        scene = vc.scene()
        if scene is not None:
            scene.removeItem(vc)
        self.view_controller_removed.emit(vc)
        self.view_controllers_changed.emit()
        vc.deleteLater()

    # ---- algorithms ----

    def algorithm_names(self) -> list[str]:
        return list_algorithms()

    def create_algorithm(self, name: str) -> Algorithm:
        return create_algorithm(name, self)

    # ---- session ----

    def filepath(self) -> Optional[str]:
        """The .h5 file this workspace was last saved to or loaded from."""
        return self._filepath

    def save(self, filepath: str) -> None:
        IOManager.save_workspace(self, filepath)
        self._filepath = filepath

    def load(self, filepath: str) -> None:
        IOManager.load_workspace(self, filepath)
        self._filepath = filepath

    def reset(self) -> None:
        """Remove all views and models. Fails if any model is locked."""
        locked = [m for m in self._models if m.locked()]
        if locked:
            raise RuntimeError(f"Cannot reset workspace, {len(locked)} model(s) are locked.")

        for vc in list(self._view_controllers):
            self.remove_view_controller(vc)
        for model in list(self._models):
            self.remove_model(model)
        self._filepath = None
        logger.debug("Workspace reset.")
