"""
Polygon List Models
===================
Ordered lists of 2-D polygons. Each polygon is an (n, 2) float array of
(x, y) points. The weighted variant keeps one weight per polygon, e.g. the
iso value of a contour line.

Content serialization:

    <Legend>CSV header</Legend>
    <Polygon2D ID="0" Points="N" [Weight="W"]>
        <Point ID="0"><x>X</x><y>Y</y></Point>
        ...
    </Polygon2D>
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from graipe.model.base import ListModel, Model
from graipe.model.registry import register_model

if TYPE_CHECKING:
    from graipe.app.workspace import Workspace

logger = logging.getLogger(__name__)


def _fmt(value: float) -> str:
    return f"{value:.10g}"


def as_polygon(points: Sequence) -> np.ndarray:
    """Convert a point sequence into an (n, 2) float array."""
    return np.asarray(points, dtype=np.float64).reshape(-1, 2).copy()


@register_model
class PolygonList2D(ListModel):
    TYPE_NAME = "PolygonList2D"
    ITEM_TAG = "Polygon2D"

    def __init__(self, workspace: Optional[Workspace] = None) -> None:
        super().__init__(workspace)
        self._polygons: list[np.ndarray] = []

    def size(self) -> int:
        return len(self._polygons)

    def clear(self) -> None:
        if self.locked():
            return
        self._polygons.clear()
        self.update_model()

    def polygon(self, index: int) -> np.ndarray:
        return self._polygons[index]

    def polygons(self) -> list[np.ndarray]:
        return list(self._polygons)

    def set_polygon(self, index: int, points: Sequence) -> None:
        if self.locked():
            return
        self._polygons[index] = as_polygon(points)
        self.model_changed.emit()

    def add_polygon(self, points: Sequence) -> None:
        if self.locked():
            return
        self._polygons.append(as_polygon(points))
        self.model_changed.emit()

    def copy_data(self, other: Model) -> None:
        super().copy_data(other)
        if other is not self and other.type_name() == self.type_name():
            other.clear()
            for poly in self._polygons:
                other.add_polygon(poly)

    def _take_payload(self, other: Model) -> None:
        self._polygons = other._polygons

    # ---- CSV ----

    def csv_header(self) -> str:
        return "p0_x, p0_y, p1_x, p1_y, ... , pN_x, pN_y"

    def item_to_csv(self, index: int) -> str:
        return ", ".join(_fmt(v) for v in self._polygons[index].ravel())

    def _parse_points(self, serial: str) -> np.ndarray:
        values = [float(v) for v in serial.split(",")]
        if len(values) < 2 or len(values) % 2:
            raise ValueError(f"expected an even number of coordinates, got {len(values)}")
        return as_polygon(values)

    def item_from_csv(self, serial: str) -> bool:
        if self.locked():
            return False
        try:
            poly = self._parse_points(serial)
        except ValueError as e:
            logger.error(f"{self.type_name()}: unable to read polygon '{serial}': {e}")
            return False
        self._polygons.append(poly)
        return True

    # ---- xml ----

    def serialize_item(self, index: int, content: ET.Element) -> ET.Element:
        poly = self._polygons[index]
        element = ET.SubElement(content, self.ITEM_TAG, {"ID": str(index), "Points": str(len(poly))})
        for i, (x, y) in enumerate(poly):
            point = ET.SubElement(element, "Point", {"ID": str(i)})
            ET.SubElement(point, "x").text = _fmt(x)
            ET.SubElement(point, "y").text = _fmt(y)
        return element

    def _read_points(self, element: ET.Element) -> np.ndarray:
        count = int(element.get("Points", "-1"))
        if count < 0:
            raise ValueError("missing 'Points' attribute")
        poly = np.zeros((count, 2), dtype=np.float64)
        found = 0
        for point in element.findall("Point"):
            idx = int(point.get("ID", "-1"))
            if not 0 <= idx < count:
                raise ValueError(f"point ID {idx} outside of [0, {count})")
            poly[idx] = (float(point.findtext("x", "")), float(point.findtext("y", "")))
            found += 1
        if found != count:
            raise ValueError(f"found {found} points, expected {count}")
        return poly

    def deserialize_item(self, element: ET.Element) -> bool:
        if self.locked():
            return False
        try:
            poly = self._read_points(element)
        except ValueError as e:
            logger.error(f"{self.type_name()}: unable to read <{element.tag} ID={element.get('ID')}>: {e}")
            return False
        self._polygons.append(poly)
        return True


@register_model
class WeightedPolygonList2D(PolygonList2D):
    """A polygon list with one float weight per polygon."""
    TYPE_NAME = "WeightedPolygonList2D"

    def __init__(self, workspace: Optional[Workspace] = None) -> None:
        super().__init__(workspace)
        self._weights: list[float] = []

    def clear(self) -> None:
        if self.locked():
            return
        self._weights.clear()
        super().clear()

    def weight(self, index: int) -> float:
        return self._weights[index]

    def weights(self) -> list[float]:
        return list(self._weights)

    def set_weight(self, index: int, weight: float) -> None:
        if self.locked():
            return
        self._weights[index] = float(weight)
        self.model_changed.emit()

    def set_polygon(self, index: int, points: Sequence, weight: Optional[float] = None) -> None:
        if self.locked():
            return
        if weight is not None:
            self._weights[index] = float(weight)
        super().set_polygon(index, points)

    def add_polygon(self, points: Sequence, weight: float = 0.0) -> None:
        if self.locked():
            return
        self._weights.append(float(weight))
        super().add_polygon(points)

    def copy_data(self, other: Model) -> None:
        Model.copy_data(self, other)
        if other is not self and other.type_name() == self.type_name():
            other.clear()
            for poly, weight in zip(self._polygons, self._weights):
                other.add_polygon(poly, weight)

    def _take_payload(self, other: Model) -> None:
        super()._take_payload(other)
        self._weights = other._weights

    def csv_header(self) -> str:
        return "weight, " + super().csv_header()

    def item_to_csv(self, index: int) -> str:
        return f"{_fmt(self._weights[index])}, {super().item_to_csv(index)}"

    def item_from_csv(self, serial: str) -> bool:
        if self.locked():
            return False
        weight_text, _, points_text = serial.partition(",")
        try:
            weight = float(weight_text)
            poly = self._parse_points(points_text)
        except ValueError as e:
            logger.error(f"{self.type_name()}: unable to read weighted polygon '{serial}': {e}")
            return False
        self._polygons.append(poly)
        self._weights.append(weight)
        return True

    def serialize_item(self, index: int, content: ET.Element) -> ET.Element:
        element = super().serialize_item(index, content)
        element.set("Weight", _fmt(self._weights[index]))
        return element

    def deserialize_item(self, element: ET.Element) -> bool:
        if self.locked():
            return False
        try:
            weight = float(element.get("Weight", "0"))
            poly = self._read_points(element)
        except ValueError as e:
            logger.error(f"{self.type_name()}: unable to read <{element.tag} ID={element.get('ID')}>: {e}")
            return False
        self._polygons.append(poly)
        self._weights.append(weight)
        return True
