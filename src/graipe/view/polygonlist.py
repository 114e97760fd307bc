"""View controller drawing (weighted) polygon lists as poly-lines."""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QPainter, QPen, QPolygonF
from PySide6.QtWidgets import QGraphicsItem

from graipe.colortables import color_table
from graipe.model.polygonlist import PolygonList2D, WeightedPolygonList2D
from graipe.parameters import BoolParameter, ColorTableParameter, DoubleParameter
from graipe.view.registry import register_view_controller
from graipe.view.viewcontroller import Description, ViewController

logger = logging.getLogger(__name__)


def normalized_weights(weights: list[float]) -> np.ndarray:
    """Weights scaled onto [0, 1]. Constant weights map to 1."""
    w = np.asarray(weights, dtype=np.float64)
    if w.size == 0:
        return w
    low, upp = float(w.min()), float(w.max())
    if upp == low:
        return np.ones_like(w)
    return (w - low) / (upp - low)


def polygon_contains(points: np.ndarray, x: float, y: float) -> bool:
    return QPolygonF([QPointF(px, py) for px, py in points]).containsPoint(QPointF(x, y), Qt.FillRule.OddEvenFill)


@register_view_controller
class PolygonList2DViewController(ViewController):
    """
    Draws every polygon of the list. Weighted polygons are colored by their
    normalized weight, all others by the last entry of the color table.
    """
    TYPE_NAME = "PolygonList2DViewController"
    MODEL_TYPES = ("PolygonList2D", "WeightedPolygonList2D")

    def __init__(self, polygons: PolygonList2D, parent_item: Optional[QGraphicsItem] = None) -> None:
        super().__init__(polygons, parent_item)
        self._colors: list[int] = []

        self._line_width = DoubleParameter("Line width:", 0, 100, 1.0)
        self._color_table = ColorTableParameter("Color table:", color_table("Jet"))
        self._closed = BoolParameter("Close polygons:", False)
        self._show_points = BoolParameter("Show points:", False)
        self._point_size = DoubleParameter("Point size:", 0, 100, 3.0, self._show_points)

        self._parameters.add_parameter("lineWidth", self._line_width)
        self._parameters.add_parameter("colorTable", self._color_table)
        self._parameters.add_parameter("closePolygons", self._closed)
        self._parameters.add_parameter("showPoints", self._show_points)
        self._parameters.add_parameter("pointSize", self._point_size)

        self.update_view()

    def rect(self) -> QRectF:
        """The model extent, grown to include all polygon points."""
        rect = super().rect()
        polygons = self._model.polygons()
        if polygons:
            points = np.concatenate(polygons)
            x0, y0 = points.min(axis=0)
            x1, y1 = points.max(axis=0)
            rect = rect.united(QRectF(x0, y0, x1 - x0, y1 - y0))
        return rect

    def polygon_colors(self) -> list[int]:
        """ARGB color of every polygon as it is drawn."""
        return list(self._colors)

    def update_view(self) -> None:
        super().update_view()
        model = self._model
        ct = self._color_table.value()
        if isinstance(model, WeightedPolygonList2D):
            idx = (normalized_weights(model.weights()) * (len(ct) - 1)).astype(int)
            self._colors = [ct[i] for i in idx]
        else:
            self._colors = [ct[-1]] * model.size()
        self.update()

    def paint_content(self, painter: QPainter) -> None:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        pen = QPen()
        pen.setWidthF(self._line_width.value())
        pen.setCosmetic(True)
        for poly, argb in zip(self._model.polygons(), self._colors):
            color = QColor.fromRgba(argb)
            pen.setColor(color)
            painter.setPen(pen)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            points = [QPointF(x, y) for x, y in poly]
            qpoly = QPolygonF(points)
            if self._closed.value():
                painter.drawPolygon(qpoly)
            else:
                painter.drawPolyline(qpoly)
            if self._show_points.value():
                r = self._point_size.value() / 2
                painter.setPen(Qt.PenStyle.NoPen)
                painter.setBrush(QBrush(color))
                for p in points:
                    painter.drawEllipse(p, r, r)

    def describe_position(self, x: float, y: float) -> Optional[Description]:
        model = self._model
        hits = [i for i, poly in enumerate(model.polygons()) if len(poly) > 2 and polygon_contains(poly, x, y)]
        name = model.short_name()
        text = f"{name} [{x:.1f},{y:.1f}]"
        description = f"<b>Mouse moved over Object: </b><br/><i>{name}</i><br/> at position [{x:.1f},{y:.1f}]"
        if hits:
            text += f" inside polygon {hits[0]}"
            description += f"<br/> <b>Inside polygon(s): {', '.join(str(i) for i in hits)}</b>"
            if isinstance(model, WeightedPolygonList2D):
                description += f"<br/> <b>Weight: {model.weight(hits[0]):g}</b>"
        return text, description
