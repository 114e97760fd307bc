"""
Algorithms
==========
An algorithm is a parameter driven processing step. Its inputs are
``ModelParameter``s of its ``ParameterGroup``, its outputs are newly created
models collected in ``results()``.

``run_algorithm`` is the only way algorithms are executed: it validates the
parameters, puts a lock on every input model, runs the algorithm and
releases all locks again, whatever happens.

Classes:
    Algorithm: Base class of all algorithms.

Functions:
    register_algorithm / create_algorithm / list_algorithms: Algorithm registry.
    run_algorithm: Validate, lock, run, unlock.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from graipe.model.base import Model
from graipe.parameters import ModelParameter, ParameterGroup

if TYPE_CHECKING:
    from graipe.app.workspace import Workspace

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


def _no_progress(percentage: int, message: str) -> None:
    pass


class Algorithm:
    NAME: str = ""
    TOPIC: str = ""

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace
        self._parameters = ParameterGroup(f"{self.NAME} parameters")
        self._results: list[Model] = []

    def name(self) -> str:
        return self.NAME

    def topic(self) -> str:
        return self.TOPIC

    def workspace(self) -> Workspace:
        return self._workspace

    def parameters(self) -> ParameterGroup:
        return self._parameters

    def results(self) -> list[Model]:
        return list(self._results)

    def input_models(self) -> list[Model]:
        """All models selected by enabled model parameters."""
        return [
            p.value() for _, p in self._parameters.items()
            if isinstance(p, ModelParameter) and p.is_enabled() and p.value() is not None
        ]

    def run(self, progress: ProgressCallback) -> None:
        """Compute the results. Called with all input models locked."""
        raise NotImplementedError("`run` must be implemented in subclass.")


_REGISTRY: dict[str, type[Algorithm]] = {}


def register_algorithm(cls: type[Algorithm]) -> type[Algorithm]:
    """Class decorator to register an algorithm by its NAME."""
    if not cls.NAME:
        raise ValueError(f"{cls.__name__} must define NAME")
    _REGISTRY[cls.NAME] = cls
    return cls


def create_algorithm(name: str, workspace: Workspace) -> Algorithm:
    cls = _REGISTRY.get(name)
    if not cls:
        raise KeyError(f"No algorithm registered with name '{name}'")
    return cls(workspace)


def list_algorithms() -> list[str]:
    return list(_REGISTRY.keys())


def algorithms_by_topic() -> dict[str, list[str]]:
    """Algorithm names grouped by topic, e.g. for building menus."""
    topics: dict[str, list[str]] = {}
    for name, cls in _REGISTRY.items():
        topics.setdefault(cls.TOPIC or "Other", []).append(name)
    return topics


def run_algorithm(algorithm: Algorithm, progress: Optional[ProgressCallback] = None) -> list[Model]:
    """Run an algorithm with all of its input models locked. Returns the results."""
    if not algorithm.parameters().is_valid():
        msg = f"Algorithm '{algorithm.name()}': parameters are not valid."
        logger.error(msg)
        raise ValueError(msg)

    tickets = [(model, model.lock()) for model in algorithm.input_models()]
    logger.info(f"Running '{algorithm.name()}' on {len(tickets)} locked input model(s).")
    try:
        algorithm.run(progress or _no_progress)
    except Exception as e:
        logger.exception(f"Algorithm '{algorithm.name()}' failed: {e}")
        raise
    finally:
        for model, ticket in tickets:
            model.unlock(ticket)

    results = algorithm.results()
    logger.info(f"'{algorithm.name()}' finished with {len(results)} result(s).")
    return results
