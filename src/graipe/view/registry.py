from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from graipe.model.base import Model
    from graipe.view.viewcontroller import ViewController

_REGISTRY: dict[str, type[ViewController]] = {}


def register_view_controller(cls: type[ViewController]) -> type[ViewController]:
    """Class decorator to register a view controller by its TYPE_NAME."""
    key = getattr(cls, "TYPE_NAME", None)
    if not key or not getattr(cls, "MODEL_TYPES", None):
        raise ValueError(f"{cls.__name__} must define TYPE_NAME and MODEL_TYPES")
    _REGISTRY[key] = cls
    return cls


def create_view_controller(type_name: str, model: Model) -> ViewController:
    cls = _REGISTRY.get(type_name)
    if not cls:
        raise KeyError(f"No view controller registered for type '{type_name}'")
    if model.type_name() not in cls.MODEL_TYPES:
        raise KeyError(f"{type_name} cannot display models of type '{model.type_name()}'")
    return cls(model)


def view_controllers_for(model: Model) -> list[str]:
    """Type names of all view controllers able to display the model."""
    return [key for key, cls in _REGISTRY.items() if model.type_name() in cls.MODEL_TYPES]


def list_keys() -> list[str]:
    return list(_REGISTRY.keys())
