"""
Parameter Base Class
====================
A parameter is a typed, named value that can build its own editor widget.

The widget (the "delegate") is created on the first call of ``delegate()``
and cached afterwards. This keeps parameters usable from worker threads,
where no widgets may be created. Once a delegate exists, user edits are
written back into the typed value and programmatic ``set_value`` calls are
pushed into the widget.

Parameters may depend on a parent ``BoolParameter``: they are enabled iff the
parent's value differs from ``invert_parent``.

A read-only parameter (e.g. of a locked model) keeps its value: ``set_value``
is ignored and edits in the delegate are reverted.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any, Optional

from PySide6.QtCore import QObject, Signal
from PySide6.QtWidgets import QWidget

logger = logging.getLogger(__name__)


class Parameter(QObject):
    """Abstract base class of all parameters."""
    TYPE_NAME: str = "Parameter"

    value_changed = Signal()

    def __init__(self, name: str, parent: Optional[Parameter] = None, invert_parent: bool = False) -> None:
        super().__init__()
        self._name = name
        self._key = ""
        self._value: Any = None
        self._parent_parameter = parent
        self._invert_parent = invert_parent
        self._delegate: Optional[QWidget] = None
        # True while the value is pushed into the delegate
        self._syncing = False
        self._read_only = False

        if parent is not None:
            parent.value_changed.connect(self._update_enabled)

    # ---- identity ----

    def type_name(self) -> str:
        return self.TYPE_NAME

    def name(self) -> str:
        return self._name

    def set_name(self, name: str) -> None:
        self._name = name

    def key(self) -> str:
        """The ID of this parameter inside its group."""
        return self._key

    def set_key(self, key: str) -> None:
        self._key = key

    def parent_parameter(self) -> Optional[Parameter]:
        return self._parent_parameter

    def invert_parent(self) -> bool:
        return self._invert_parent

    def is_enabled(self) -> bool:
        if self._parent_parameter is None:
            return True
        return bool(self._parent_parameter.value()) != self._invert_parent

    def is_read_only(self) -> bool:
        return self._read_only

    def set_read_only(self, read_only: bool) -> None:
        self._read_only = bool(read_only)
        self._update_enabled()

    # ---- value ----

    def value(self) -> Any:
        return self._value

    def set_value(self, value: Any) -> None:
        if self._read_only:
            logger.warning(f"{self.type_name()} '{self._name}' is read-only, value not changed.")
            return
        self._value = self._coerce(value)
        self._sync_delegate()
        self.value_changed.emit()

    def value_text(self) -> str:
        """Human readable representation of the value."""
        return self.to_string()

    def to_string(self) -> str:
        """The value as written into a serialization."""
        return str(self._value)

    def from_string(self, text: str) -> bool:
        """Parse and set the value. Failures are logged and reported as False."""
        try:
            value = self._parse(text)
        except (ValueError, TypeError, KeyError) as e:
            logger.error(f"{self.type_name()} '{self._name}': value could not be imported from '{text}': {e}")
            return False
        self.set_value(value)
        return True

    def is_valid(self) -> bool:
        return True

    # ---- serialization ----

    def serialize(self, parent_element: ET.Element) -> ET.Element:
        """
        Append this parameter to an xml tree:

            <TYPENAME ID="key">
                <Name>NAME</Name>
                <Value>VALUE</Value>
            </TYPENAME>
        """
        element = ET.SubElement(parent_element, self.type_name(), {"ID": self._key})
        ET.SubElement(element, "Name").text = self._name
        self.serialize_value(element)
        return element

    def serialize_value(self, element: ET.Element) -> None:
        ET.SubElement(element, "Value").text = self.to_string()

    def deserialize(self, element: ET.Element) -> bool:
        if element.tag != self.type_name() or "ID" not in element.attrib:
            logger.error(
                f"{self.type_name()}.deserialize failed: found <{element.tag}> "
                f"with attributes {dict(element.attrib)}"
            )
            return False

        self._key = element.get("ID", "")
        name = element.findtext("Name")
        if name is not None:
            self._name = name

        try:
            return self.deserialize_value(element)
        except (ValueError, TypeError) as e:
            logger.error(f"{self.type_name()} '{self._name}' deserialize failed: {e}")
            return False

    def deserialize_value(self, element: ET.Element) -> bool:
        text = element.findtext("Value")
        if text is None:
            raise ValueError("missing <Value> element")
        return self.from_string(text)

    # ---- delegate ----

    def delegate(self) -> QWidget:
        """Editor widget of this parameter, created on first request."""
        if self._delegate is None:
            self._delegate = self._create_delegate()
            self._sync_delegate()
            self._init_connections()
        return self._delegate

    def has_delegate(self) -> bool:
        return self._delegate is not None

    def _sync_delegate(self) -> None:
        if self._delegate is None:
            return
        self._syncing = True
        try:
            self._update_delegate()
        finally:
            self._syncing = False

    def _init_connections(self) -> None:
        self._delegate.setEnabled(self.is_enabled() and not self._read_only)

    def _update_enabled(self) -> None:
        if self._delegate is not None:
            self._delegate.setEnabled(self.is_enabled() and not self._read_only)

    def _on_delegate_changed(self, *_: Any) -> None:
        """Slot for every edit signal of the delegate."""
        if self._syncing:
            return
        if self._read_only:
            self._sync_delegate()
            return
        self._value = self._read_delegate()
        self.value_changed.emit()

    # ---- abstract API for subclasses ----

    def _coerce(self, value: Any) -> Any:
        return value

    def _parse(self, text: str) -> Any:
        raise NotImplementedError("`_parse` must be implemented in subclass.")

    def _create_delegate(self) -> QWidget:
        raise NotImplementedError("`_create_delegate` must be implemented in subclass.")

    def _update_delegate(self) -> None:
        """Push the current value into the delegate."""
        raise NotImplementedError("`_update_delegate` must be implemented in subclass.")

    def _read_delegate(self) -> Any:
        """Read the value currently shown by the delegate."""
        raise NotImplementedError("`_read_delegate` must be implemented in subclass.")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name!r}, {self.value_text()!r})"
