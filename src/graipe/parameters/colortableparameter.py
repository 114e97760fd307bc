"""Color table parameter."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any, Optional, Sequence

import numpy as np
from PySide6.QtCore import QSize
from PySide6.QtGui import QIcon, QImage, QPixmap
from PySide6.QtWidgets import QComboBox, QWidget

from graipe.colortables import argb_to_hex, color_table_names, color_tables, hex_to_argb
from graipe.parameters.base import Parameter

logger = logging.getLogger(__name__)

ICON_SIZE = QSize(100, 16)


def color_table_icon(ct: Sequence[int]) -> QIcon:
    """A horizontal gradient preview of a color table."""
    ramp = np.linspace(0, len(ct) - 1, ICON_SIZE.width()).astype(np.int64)
    row = np.asarray(ct, dtype=np.uint32)[ramp]
    pixels = np.ascontiguousarray(np.tile(row, (ICON_SIZE.height(), 1)))
    image = QImage(pixels.data, ICON_SIZE.width(), ICON_SIZE.height(), ICON_SIZE.width() * 4,
                   QImage.Format.Format_ARGB32).copy()
    return QIcon(QPixmap.fromImage(image))


class ColorTableParameter(Parameter):
    """
    Selects one of the built-in color tables or a user defined one.
    Unknown tables passed to ``set_value`` are added as custom tables.

    Serialized as:

        <ColorTableParameter ID="key">
            <Name>NAME</Name>
            <Colors>COLORCOUNT</Colors>
            <Color ID="0">#AARRGGBB</Color>
            ...
        </ColorTableParameter>
    """
    TYPE_NAME = "ColorTableParameter"

    def __init__(self, name: str, value: Optional[Sequence[int]] = None, parent: Optional[Parameter] = None,
                 invert_parent: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._extra_tables: list[list[int]] = []
        self._ct_idx = 0
        if value is not None and len(value) > 0:
            self._ct_idx = self.add_custom_color_table(value)

    def _all_tables(self) -> list[list[int]]:
        return color_tables() + self._extra_tables

    def value(self) -> list[int]:
        return list(self._all_tables()[self._ct_idx])

    def color_table_index(self, ct: Sequence[int]) -> int:
        """Index of a known table (built-in or custom), -1 if unknown."""
        ct = [int(c) for c in ct]
        for i, table in enumerate(self._all_tables()):
            if table == ct:
                return i
        return -1

    def add_custom_color_table(self, ct: Sequence[int]) -> int:
        idx = self.color_table_index(ct)
        if idx != -1:
            return idx
        self._extra_tables.append([int(c) for c in ct])
        idx = len(self._all_tables()) - 1
        if self._delegate is not None:
            self._delegate.addItem(color_table_icon(ct), "Custom")
        return idx

    def set_value(self, value: Sequence[int]) -> None:
        if self._read_only:
            logger.warning(f"{self.type_name()} '{self._name}' is read-only, value not changed.")
            return
        if len(value) == 0:
            raise ValueError("empty color table")
        self._ct_idx = self.add_custom_color_table(value)
        self._sync_delegate()
        self.value_changed.emit()

    def value_text(self) -> str:
        names = color_table_names()
        if self._ct_idx < len(names):
            return names[self._ct_idx]
        return f"Custom color table ({len(self.value())} colors)"

    def to_string(self) -> str:
        return ", ".join(argb_to_hex(c) for c in self.value())

    def _parse(self, text: str) -> list[int]:
        ct = [hex_to_argb(c) for c in text.split(",") if c.strip()]
        if not ct:
            raise ValueError("empty color table")
        return ct

    def serialize_value(self, element: ET.Element) -> None:
        ct = self.value()
        ET.SubElement(element, "Colors").text = str(len(ct))
        for i, color in enumerate(ct):
            ET.SubElement(element, "Color", {"ID": str(i)}).text = argb_to_hex(color)

    def deserialize_value(self, element: ET.Element) -> bool:
        count = int(element.findtext("Colors", "0"))
        ct = [0] * count
        for color in element.findall("Color"):
            idx = int(color.get("ID", "-1"))
            if not 0 <= idx < count:
                raise ValueError(f"color ID {idx} outside of [0, {count})")
            ct[idx] = hex_to_argb(color.text or "")
        if count == 0:
            raise ValueError("empty color table")
        self.set_value(ct)
        return True

    def _create_delegate(self) -> QWidget:
        w = QComboBox()
        w.setIconSize(ICON_SIZE)
        for name, ct in zip(color_table_names() + ["Custom"] * len(self._extra_tables), self._all_tables()):
            w.addItem(color_table_icon(ct), name)
        w.currentIndexChanged.connect(self._on_delegate_changed)
        return w

    def _update_delegate(self) -> None:
        self._delegate.setCurrentIndex(self._ct_idx)

    def _on_delegate_changed(self, *_: Any) -> None:
        if self._syncing:
            return
        if self._read_only:
            self._sync_delegate()
            return
        self._ct_idx = self._delegate.currentIndex()
        self.value_changed.emit()
