"""
Parameter Group
===============
An ordered, named collection of parameters which is itself a parameter, so
groups nest. Any member change is re-emitted as the group's
``value_changed``.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterator, Optional

from PySide6.QtWidgets import QFormLayout, QLabel, QWidget

from graipe.parameters.base import Parameter

logger = logging.getLogger(__name__)


class ParameterGroup(Parameter):
    TYPE_NAME = "ParameterGroup"

    def __init__(self, name: str, parent: Optional[Parameter] = None, invert_parent: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._parameters: dict[str, Parameter] = {}
        self._layout: Optional[QFormLayout] = None

    def add_parameter(self, key: str, parameter: Parameter) -> Parameter:
        if key in self._parameters:
            raise KeyError(f"Parameter '{key}' already exists in group '{self._name}'")
        parameter.set_key(key)
        parameter.setParent(self)
        self._parameters[key] = parameter
        parameter.value_changed.connect(self.value_changed)
        if self._read_only:
            parameter.set_read_only(True)
        if self._layout is not None:
            self._add_row(parameter)
        return parameter

    def __getitem__(self, key: str) -> Parameter:
        return self._parameters[key]

    def __contains__(self, key: str) -> bool:
        return key in self._parameters

    def __len__(self) -> int:
        return len(self._parameters)

    def __iter__(self) -> Iterator[str]:
        return iter(self._parameters)

    def keys(self) -> list[str]:
        return list(self._parameters)

    def items(self) -> list[tuple[str, Parameter]]:
        return list(self._parameters.items())

    def value(self) -> dict[str, object]:
        return {key: p.value() for key, p in self._parameters.items()}

    def set_value(self, value: dict) -> None:
        for key, v in value.items():
            self._parameters[key].set_value(v)

    def set_read_only(self, read_only: bool) -> None:
        """Applies to every member, nested groups included."""
        super().set_read_only(read_only)
        for parameter in self._parameters.values():
            parameter.set_read_only(read_only)

    def value_text(self) -> str:
        return "\n".join(f"{p.name()} {p.value_text()}" for p in self._parameters.values())

    def to_string(self) -> str:
        return self.value_text()

    def is_valid(self) -> bool:
        return all(p.is_valid() for p in self._parameters.values() if p.is_enabled())

    # ---- serialization ----

    def serialize_value(self, element: ET.Element) -> None:
        ET.SubElement(element, "Parameters").text = str(len(self._parameters))
        for parameter in self._parameters.values():
            parameter.serialize(element)

    def deserialize_value(self, element: ET.Element) -> bool:
        for child in element:
            if child.tag in ("Name", "Parameters"):
                continue
            key = child.get("ID")
            if key not in self._parameters:
                logger.error(f"ParameterGroup '{self._name}': unknown parameter ID '{key}' <{child.tag}>")
                return False
            if not self._parameters[key].deserialize(child):
                return False
        return True

    # ---- delegate ----

    def _create_delegate(self) -> QWidget:
        w = QWidget()
        self._layout = QFormLayout(w)
        for parameter in self._parameters.values():
            self._add_row(parameter)
        return w

    def _add_row(self, parameter: Parameter) -> None:
        self._layout.addRow(QLabel(parameter.name()), parameter.delegate())

    def _update_delegate(self) -> None:
        # Members keep their own delegates in sync
        pass
