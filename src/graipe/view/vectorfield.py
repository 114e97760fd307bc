"""
Vector Field View Controllers
=============================
Both controllers draw arrows with a shared ``VectorDrawer``. The arrow
color is looked up in a color table by the vector length, normalized by the
longest vector of the field.
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np
from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QBrush, QColor, QPainter, QPen, QPolygonF, QTransform
from PySide6.QtWidgets import QGraphicsItem

from graipe.colortables import color_table
from graipe.model.vectorfield import DenseVectorField2D, SparseVectorField2D
from graipe.parameters import ColorTableParameter, DoubleParameter, IntParameter
from graipe.view.registry import register_view_controller
from graipe.view.viewcontroller import Description, ViewController

logger = logging.getLogger(__name__)


class VectorDrawer:
    """Paints arrows: a line plus a filled triangular head at the target."""

    def __init__(self, line_width: float = 1.0, head_size: float = 2.0,
                 color_table: Optional[Sequence[int]] = None) -> None:
        self._line_pen = QPen()
        self._line_pen.setWidthF(line_width)
        self._head_size = head_size
        self._color_table = list(color_table) if color_table is not None else [0xFF000000]
        self._triangle = self._head_triangle()

    def line_width(self) -> float:
        return self._line_pen.widthF()

    def set_line_width(self, value: float) -> None:
        self._line_pen.setWidthF(value)

    def head_size(self) -> float:
        return self._head_size

    def set_head_size(self, value: float) -> None:
        self._head_size = value
        self._triangle = self._head_triangle()

    def color_table(self) -> list[int]:
        return list(self._color_table)

    def set_color_table(self, ct: Sequence[int]) -> None:
        self._color_table = list(ct)

    def color(self, normalized_weight: float) -> int:
        """ARGB color for a weight in [0, 1]."""
        idx = int(min(max(normalized_weight, 0.0), 1.0) * (len(self._color_table) - 1))
        return self._color_table[idx]

    def _head_triangle(self) -> QPolygonF:
        s = self._head_size
        return QPolygonF([QPointF(0, 0), QPointF(-2 * s, -0.6 * s), QPointF(-2 * s, 0.6 * s), QPointF(0, 0)])

    def paint(self, painter: QPainter, origin: QPointF, target: QPointF, normalized_weight: float) -> None:
        color = QColor.fromRgba(self.color(normalized_weight))
        dx, dy = target.x() - origin.x(), target.y() - origin.y()
        length = math.hypot(dx, dy)
        if length == 0:
            return

        line_length = length - 2 * self._head_size
        if line_length > 0:
            self._line_pen.setColor(color)
            painter.setPen(self._line_pen)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawLine(origin, QPointF(origin.x() + dx / length * line_length,
                                             origin.y() + dy / length * line_length))

        t = QTransform()
        t.translate(target.x(), target.y())
        t.rotate(math.degrees(math.atan2(dy, dx)))
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(color))
        painter.drawConvexPolygon(t.map(self._triangle))


class _VectorFieldViewController(ViewController):
    """Drawing parameters shared by sparse and dense vector fields."""

    def __init__(self, field, parent_item: Optional[QGraphicsItem] = None) -> None:
        super().__init__(field, parent_item)
        self._drawer = VectorDrawer()

        self._scale = DoubleParameter("Vector scale:", 0, 1e6, 1.0)
        self._line_width = DoubleParameter("Line width:", 0, 100, 1.0)
        self._head_size = DoubleParameter("Head size:", 0, 100, 2.0)
        self._color_table = ColorTableParameter("Color table:", color_table("Jet"))

        self._parameters.add_parameter("scale", self._scale)
        self._parameters.add_parameter("lineWidth", self._line_width)
        self._parameters.add_parameter("headSize", self._head_size)
        self._parameters.add_parameter("colorTable", self._color_table)

    def drawer(self) -> VectorDrawer:
        return self._drawer

    def update_view(self) -> None:
        super().update_view()
        self._drawer.set_line_width(self._line_width.value())
        self._drawer.set_head_size(self._head_size.value())
        self._drawer.set_color_table(self._color_table.value())

    def _arrows(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        raise NotImplementedError("`_arrows` must be implemented in subclass.")

    def normalized_lengths(self) -> np.ndarray:
        _, _, u, v = self._arrows()
        lengths = np.hypot(u, v)
        max_length = float(lengths.max()) if lengths.size else 0.0
        return lengths / max_length if max_length > 0 else np.zeros_like(lengths)

    def paint_content(self, painter: QPainter) -> None:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        x, y, u, v = self._arrows()
        scale = self._scale.value()
        for px, py, dx, dy, w in zip(x, y, u, v, self.normalized_lengths()):
            self._drawer.paint(painter, QPointF(px, py), QPointF(px + scale * dx, py + scale * dy), float(w))


@register_view_controller
class SparseVectorField2DViewController(_VectorFieldViewController):
    TYPE_NAME = "SparseVectorField2DViewController"
    MODEL_TYPES = ("SparseVectorField2D",)

    def __init__(self, field: SparseVectorField2D, parent_item: Optional[QGraphicsItem] = None) -> None:
        super().__init__(field, parent_item)
        self.update_view()

    def _arrows(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        field = self._model
        if field.size() == 0:
            empty = np.zeros(0)
            return empty, empty, empty, empty
        origins = np.asarray([field.origin(i) for i in range(field.size())], dtype=np.float64)
        directions = np.asarray([field.direction(i) for i in range(field.size())], dtype=np.float64)
        return origins[:, 0], origins[:, 1], directions[:, 0], directions[:, 1]

    def rect(self) -> QRectF:
        """The model extent, grown to include all vector origins and targets."""
        rect = super().rect()
        x, y, u, v = self._arrows()
        if x.size:
            scale = self._scale.value()
            xs, ys = np.concatenate([x, x + scale * u]), np.concatenate([y, y + scale * v])
            rect = rect.united(QRectF(xs.min(), ys.min(), xs.max() - xs.min(), ys.max() - ys.min()))
        return rect

    def nearest_vector(self, x: float, y: float) -> int:
        """Index of the vector whose origin is closest to (x, y), -1 if the field is empty."""
        ox, oy, _, _ = self._arrows()
        if ox.size == 0:
            return -1
        return int(np.argmin(np.hypot(ox - x, oy - y)))

    def describe_position(self, x: float, y: float) -> Optional[Description]:
        idx = self.nearest_vector(x, y)
        if idx < 0:
            return super().describe_position(x, y)
        field = self._model
        (ox, oy), (u, v) = field.origin(idx), field.direction(idx)
        name = field.short_name()
        return (
            f"{name} vector {idx}: ({ox:g},{oy:g}) -> ({u:g},{v:g})",
            f"<b>Mouse moved over Object: </b><br/><i>{name}</i><br/> at position [{x:.1f},{y:.1f}]"
            f"<br/> <b>Nearest vector {idx}</b> at ({ox:g},{oy:g})"
            f"<br/> <b>Direction: ({u:g},{v:g}), length: {field.length(idx):g}</b>",
        )


@register_view_controller
class DenseVectorField2DViewController(_VectorFieldViewController):
    """Draws every ``step``-th vector of a dense field from the cell centers."""
    TYPE_NAME = "DenseVectorField2DViewController"
    MODEL_TYPES = ("DenseVectorField2D",)

    def __init__(self, field: DenseVectorField2D, parent_item: Optional[QGraphicsItem] = None) -> None:
        super().__init__(field, parent_item)
        self._step = IntParameter("Draw every n-th vector:", 1, 1000, 1)
        self._parameters.add_parameter("step", self._step)
        self.update_view()

    def _arrows(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        return self._model.vectors(self._step.value())

    def describe_position(self, x: float, y: float) -> Optional[Description]:
        field = self._model
        ix, iy = int(math.floor(x)), int(math.floor(y))
        if not (0 <= ix < field.width() and 0 <= iy < field.height()):
            return None
        u, v = float(field.u()[iy, ix]), float(field.v()[iy, ix])
        name = field.short_name()
        return (
            f"{name}[{ix},{iy}] = ({u:g},{v:g})",
            f"<b>Mouse moved over Object: </b><br/><i>{name}</i><br/> at position [{ix},{iy}]"
            f"<br/> <b>Direction: ({u:g},{v:g}), length: {math.hypot(u, v):g}</b>",
        )
