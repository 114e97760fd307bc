"""
Vector Field Models
===================
SparseVectorField2D: an ordered list of (origin, direction) pairs.
DenseVectorField2D: one direction per raster cell, stored as two float32
bands ``u`` (x-component) and ``v`` (y-component).
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Optional

import numpy as np

from graipe.model.base import ListModel, Model, RasteredModel
from graipe.model.image import decode_band, encode_band
from graipe.model.registry import register_model

if TYPE_CHECKING:
    from graipe.app.workspace import Workspace

logger = logging.getLogger(__name__)

Vector = tuple[float, float]


def _fmt(value: float) -> str:
    return f"{value:.10g}"


@register_model
class SparseVectorField2D(ListModel):
    """
    Vectors at arbitrary positions.

    Content serialization:

        <Legend>x, y, u, v</Legend>
        <Vector ID="0"><px>X</px><py>Y</py><dx>U</dx><dy>V</dy></Vector>
        ...
    """
    TYPE_NAME = "SparseVectorField2D"
    ITEM_TAG = "Vector"

    def __init__(self, workspace: Optional[Workspace] = None) -> None:
        super().__init__(workspace)
        self._origins: list[Vector] = []
        self._directions: list[Vector] = []

    def size(self) -> int:
        return len(self._origins)

    def clear(self) -> None:
        if self.locked():
            return
        self._origins.clear()
        self._directions.clear()
        self.update_model()

    def origin(self, index: int) -> Vector:
        return self._origins[index]

    def direction(self, index: int) -> Vector:
        return self._directions[index]

    def length(self, index: int) -> float:
        return float(np.hypot(*self._directions[index]))

    def max_length(self) -> float:
        if not self._directions:
            return 0.0
        return float(np.max(np.hypot(*np.asarray(self._directions).T)))

    def set_origin(self, index: int, origin: Vector) -> None:
        if self.locked():
            return
        self._origins[index] = (float(origin[0]), float(origin[1]))
        self.model_changed.emit()

    def set_direction(self, index: int, direction: Vector) -> None:
        if self.locked():
            return
        self._directions[index] = (float(direction[0]), float(direction[1]))
        self.model_changed.emit()

    def add_vector(self, origin: Vector, direction: Vector) -> None:
        if self.locked():
            return
        self._origins.append((float(origin[0]), float(origin[1])))
        self._directions.append((float(direction[0]), float(direction[1])))
        self.model_changed.emit()

    def copy_data(self, other: Model) -> None:
        super().copy_data(other)
        if other is not self and other.type_name() == self.type_name():
            other.clear()
            for origin, direction in zip(self._origins, self._directions):
                other.add_vector(origin, direction)

    def _take_payload(self, other: Model) -> None:
        self._origins, self._directions = other._origins, other._directions

    # ---- CSV ----

    def csv_header(self) -> str:
        return "x, y, u, v"

    def item_to_csv(self, index: int) -> str:
        (x, y), (u, v) = self._origins[index], self._directions[index]
        return ", ".join(_fmt(c) for c in (x, y, u, v))

    def item_from_csv(self, serial: str) -> bool:
        if self.locked():
            return False
        try:
            x, y, u, v = (float(c) for c in serial.split(","))
        except ValueError as e:
            logger.error(f"{self.type_name()}: unable to read vector '{serial}': {e}")
            return False
        self._origins.append((x, y))
        self._directions.append((u, v))
        return True

    # ---- xml ----

    def serialize_item(self, index: int, content: ET.Element) -> ET.Element:
        (x, y), (u, v) = self._origins[index], self._directions[index]
        element = ET.SubElement(content, self.ITEM_TAG, {"ID": str(index)})
        for tag, value in (("px", x), ("py", y), ("dx", u), ("dy", v)):
            ET.SubElement(element, tag).text = _fmt(value)
        return element

    def deserialize_item(self, element: ET.Element) -> bool:
        if self.locked():
            return False
        try:
            x, y, u, v = (float(element.findtext(tag, "")) for tag in ("px", "py", "dx", "dy"))
        except ValueError as e:
            logger.error(f"{self.type_name()}: unable to read <Vector ID={element.get('ID')}>: {e}")
            return False
        self._origins.append((x, y))
        self._directions.append((u, v))
        return True


@register_model
class DenseVectorField2D(RasteredModel):
    """
    One vector per raster cell.

    Content serialization:

        <Width>W</Width>
        <Height>H</Height>
        <Encoding>Base64</Encoding>
        <U>...</U>
        <V>...</V>
    """
    TYPE_NAME = "DenseVectorField2D"
    DTYPE = np.float32

    def __init__(self, workspace: Optional[Workspace] = None, size: tuple[int, int] = (0, 0)) -> None:
        super().__init__(workspace)
        self._u = np.zeros((0, 0), dtype=self.DTYPE)
        self._v = np.zeros((0, 0), dtype=self.DTYPE)
        if size != (0, 0):
            self.set_size(*size)

    def update_model(self) -> None:
        shape = (self.height(), self.width())
        if self._u.shape != shape and not self.locked():
            self._u = np.zeros(shape, dtype=self.DTYPE)
            self._v = np.zeros(shape, dtype=self.DTYPE)
        super().update_model()

    def u(self) -> np.ndarray:
        return self._u

    def v(self) -> np.ndarray:
        return self._v

    def set_uv(self, u: np.ndarray, v: np.ndarray) -> None:
        if self.locked():
            return
        shape = (self.height(), self.width())
        u, v = np.asarray(u), np.asarray(v)
        if u.shape != shape or v.shape != shape:
            raise ValueError(f"Components of shape {u.shape}/{v.shape} do not fit raster {shape}")
        self._u = u.astype(self.DTYPE, copy=True)
        self._v = v.astype(self.DTYPE, copy=True)
        self.model_changed.emit()

    def lengths(self) -> np.ndarray:
        return np.hypot(self._u, self._v)

    def max_length(self) -> float:
        if self._u.size == 0:
            return 0.0
        return float(np.max(self.lengths()))

    def vectors(self, step: int = 1) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Cell centers (x, y) and directions (u, v) of every ``step``-th cell, flattened."""
        step = max(int(step), 1)
        ys, xs = np.mgrid[0:self.height():step, 0:self.width():step]
        u = self._u[::step, ::step]
        v = self._v[::step, ::step]
        return (xs + 0.5).ravel(), (ys + 0.5).ravel(), u.ravel(), v.ravel()

    def copy_data(self, other: Model) -> None:
        super().copy_data(other)
        if other is not self and other.type_name() == self.type_name():
            other.set_uv(self._u, self._v)

    def serialize_content(self, content: ET.Element) -> None:
        ET.SubElement(content, "Width").text = str(self.width())
        ET.SubElement(content, "Height").text = str(self.height())
        ET.SubElement(content, "Encoding").text = "Base64"
        ET.SubElement(content, "U").text = encode_band(self._u, self.DTYPE)
        ET.SubElement(content, "V").text = encode_band(self._v, self.DTYPE)

    def deserialize_content(self, content: ET.Element) -> bool:
        w, h = self.width(), self.height()
        if w == 0 or h == 0:
            logger.error(f"{self.type_name()}.deserialize_content: field has zero size.")
            return False
        try:
            for tag, expected in (("Width", w), ("Height", h)):
                text = content.findtext(tag)
                if text is not None and int(text) != expected:
                    raise ValueError(f"{tag} does not match header info.")
            if content.findtext("Encoding", "Base64").strip() != "Base64":
                raise ValueError("Encoding of data has to be 'Base64'.")
            u = decode_band(content.findtext("U", ""), self.DTYPE, (h, w))
            v = decode_band(content.findtext("V", ""), self.DTYPE, (h, w))
        except ValueError as e:
            logger.error(f"{self.type_name()}.deserialize_content failed: {e}")
            return False
        self._u, self._v = u, v
        return True

    def _take_payload(self, other: Model) -> None:
        self._u, self._v = other._u, other._v
