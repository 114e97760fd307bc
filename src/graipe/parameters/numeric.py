"""
Numeric Parameters
==================
Scalar and 2-D point parameters with a legal range.

Values are stored as given; ``is_valid()`` tells whether they are inside the
range. Range changes are pushed to an existing delegate without emitting
``value_changed``.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Optional

from PySide6.QtWidgets import QDoubleSpinBox, QHBoxLayout, QLabel, QSizePolicy, QSpinBox, QWidget

from graipe.parameters.base import Parameter

INT_LIMIT = 2**31 - 1


def _format_float(value: float) -> str:
    return f"{value:.10g}"


class _RangedParameter(Parameter):
    """Shared range handling of the scalar parameters."""

    def __init__(self, name: str, low: Any, upp: Any, value: Any, parent: Optional[Parameter],
                 invert_parent: bool) -> None:
        super().__init__(name, parent, invert_parent)
        self._min_value = self._coerce(low)
        self._max_value = self._coerce(upp)
        self._value = self._coerce(value)

    def lower_bound(self) -> Any:
        return self._min_value

    def set_lower_bound(self, value: Any) -> None:
        self.set_range(value, self._max_value)

    def upper_bound(self) -> Any:
        return self._max_value

    def set_upper_bound(self, value: Any) -> None:
        self.set_range(self._min_value, value)

    def set_range(self, min_value: Any, max_value: Any) -> None:
        self._min_value = self._coerce(min_value)
        self._max_value = self._coerce(max_value)
        if self._delegate is not None:
            self._syncing = True
            try:
                self._delegate.setRange(self._min_value, self._max_value)
                self._delegate.setValue(self._value)
            finally:
                self._syncing = False

    def is_valid(self) -> bool:
        return self._min_value <= self._value <= self._max_value

    def _update_delegate(self) -> None:
        self._delegate.setRange(self._min_value, self._max_value)
        self._delegate.setValue(self._value)

    def _read_delegate(self) -> Any:
        return self._coerce(self._delegate.value())


class IntParameter(_RangedParameter):
    """An integer in [low, upp], edited by a spin box."""
    TYPE_NAME = "IntParameter"

    def __init__(self, name: str, low: int = -INT_LIMIT, upp: int = INT_LIMIT, value: int = 0,
                 parent: Optional[Parameter] = None, invert_parent: bool = False) -> None:
        super().__init__(name, low, upp, value, parent, invert_parent)

    def _coerce(self, value: Any) -> int:
        return int(value)

    def to_string(self) -> str:
        return str(self._value)

    def _parse(self, text: str) -> int:
        return int(text.strip())

    def _create_delegate(self) -> QWidget:
        w = QSpinBox()
        w.setKeyboardTracking(False)
        w.valueChanged.connect(self._on_delegate_changed)
        return w


class DoubleParameter(_RangedParameter):
    """A floating point number in [low, upp], edited by a double spin box."""
    TYPE_NAME = "DoubleParameter"

    def __init__(self, name: str, low: float = -1e20, upp: float = 1e20, value: float = 0.0,
                 parent: Optional[Parameter] = None, invert_parent: bool = False, decimals: int = 3) -> None:
        super().__init__(name, low, upp, value, parent, invert_parent)
        self._decimals = decimals

    def _coerce(self, value: Any) -> float:
        return float(value)

    def to_string(self) -> str:
        return _format_float(self._value)

    def _parse(self, text: str) -> float:
        return float(text.strip())

    def _create_delegate(self) -> QWidget:
        w = QDoubleSpinBox()
        w.setDecimals(self._decimals)
        w.setKeyboardTracking(False)
        w.valueChanged.connect(self._on_delegate_changed)
        return w


class PointParameter(Parameter):
    """
    An (x, y) pair of integers inside the rectangle spanned by a lower and
    an upper bound. Used for model corners and raster sizes.
    """
    TYPE_NAME = "PointParameter"

    def __init__(self, name: str, low: tuple = (0, 0), upp: tuple = (INT_LIMIT, INT_LIMIT),
                 value: tuple = (0, 0), parent: Optional[Parameter] = None, invert_parent: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._min_value = self._coerce(low)
        self._max_value = self._coerce(upp)
        self._value = self._coerce(value)
        self._x_spin = None
        self._y_spin = None

    def _component(self, v: Any) -> Any:
        return int(v)

    def _coerce(self, value: Any) -> tuple:
        x, y = value
        return self._component(x), self._component(y)

    def x(self) -> Any:
        return self._value[0]

    def y(self) -> Any:
        return self._value[1]

    def lower_bound(self) -> tuple:
        return self._min_value

    def upper_bound(self) -> tuple:
        return self._max_value

    def set_range(self, min_value: tuple, max_value: tuple) -> None:
        self._min_value = self._coerce(min_value)
        self._max_value = self._coerce(max_value)
        if self._delegate is not None:
            self._syncing = True
            try:
                self._update_delegate()
            finally:
                self._syncing = False

    def is_valid(self) -> bool:
        return (self._min_value[0] <= self._value[0] <= self._max_value[0]
                and self._min_value[1] <= self._value[1] <= self._max_value[1])

    def value_text(self) -> str:
        return f"({self._value[0]}x{self._value[1]})"

    def to_string(self) -> str:
        return f"{self._value[0]}, {self._value[1]}"

    def _parse(self, text: str) -> tuple:
        parts = text.strip().strip("()").split(",")
        if len(parts) != 2:
            raise ValueError("expected two comma separated components")
        return self._coerce(parts)

    def serialize_value(self, element: ET.Element) -> None:
        ET.SubElement(element, "x").text = str(self._value[0])
        ET.SubElement(element, "y").text = str(self._value[1])

    def deserialize_value(self, element: ET.Element) -> bool:
        x, y = element.findtext("x"), element.findtext("y")
        if x is None or y is None:
            raise ValueError("missing <x> or <y> element")
        self.set_value(self._coerce((x.strip(), y.strip())))
        return True

    def _make_spin(self) -> QWidget:
        spin = QSpinBox()
        spin.setKeyboardTracking(False)
        return spin

    def _create_delegate(self) -> QWidget:
        w = QWidget()
        self._x_spin = self._make_spin()
        self._y_spin = self._make_spin()
        layout = QHBoxLayout(w)
        layout.setContentsMargins(0, 0, 0, 0)
        for label, spin in (("x:", self._x_spin), ("y:", self._y_spin)):
            spin.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
            spin.valueChanged.connect(self._on_delegate_changed)
            layout.addWidget(QLabel(label, w))
            layout.addWidget(spin)
        return w

    def _update_delegate(self) -> None:
        self._x_spin.setRange(self._min_value[0], self._max_value[0])
        self._y_spin.setRange(self._min_value[1], self._max_value[1])
        self._x_spin.setValue(self._value[0])
        self._y_spin.setValue(self._value[1])

    def _read_delegate(self) -> tuple:
        return self._coerce((self._x_spin.value(), self._y_spin.value()))


class PointFParameter(PointParameter):
    """An (x, y) pair of floats, e.g. a georeferenced corner."""
    TYPE_NAME = "PointFParameter"

    def __init__(self, name: str, low: tuple = (-1e20, -1e20), upp: tuple = (1e20, 1e20),
                 value: tuple = (0.0, 0.0), parent: Optional[Parameter] = None, invert_parent: bool = False) -> None:
        super().__init__(name, low, upp, value, parent, invert_parent)

    def _component(self, v: Any) -> float:
        return float(v)

    def value_text(self) -> str:
        return f"({_format_float(self._value[0])}x{_format_float(self._value[1])})"

    def to_string(self) -> str:
        return f"{_format_float(self._value[0])}, {_format_float(self._value[1])}"

    def serialize_value(self, element: ET.Element) -> None:
        ET.SubElement(element, "x").text = _format_float(self._value[0])
        ET.SubElement(element, "y").text = _format_float(self._value[1])

    def _make_spin(self) -> QWidget:
        spin = QDoubleSpinBox()
        spin.setDecimals(3)
        spin.setKeyboardTracking(False)
        return spin
