from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from graipe.model.base import Model

if TYPE_CHECKING:
    from graipe.app.workspace import Workspace

_REGISTRY: dict[str, type[Model]] = {}


def register_model(cls: type[Model]) -> type[Model]:
    """Class decorator to register a model type by its TYPE_NAME."""
    key = getattr(cls, "TYPE_NAME", None)
    if not key:
        raise ValueError(f"{cls.__name__} must define TYPE_NAME")
    _REGISTRY[key] = cls
    return cls


def model_class(type_name: str) -> type[Model]:
    cls = _REGISTRY.get(type_name)
    if not cls:
        raise KeyError(f"No model registered for type '{type_name}'")
    return cls


def create_model(type_name: str, workspace: Optional[Workspace] = None) -> Model:
    return model_class(type_name)(workspace)


def list_model_types() -> list[str]:
    return list(_REGISTRY.keys())
