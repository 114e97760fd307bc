"""
View Controller Base Class
==========================
A view controller is the rendering adapter between one model and a
``QGraphicsScene``. It owns its own ``ParameterGroup`` (name, z-order,
transformation, bounding rect) and re-renders whenever the model or one of
its parameters changes.

Item coordinates are model coordinates: (0, 0) is the upper left corner of
the model. The item transform maps them through the model's local
transformation and the user defined transformation into the scene.

Hovering the item emits a short status text and a longer HTML description
of the value under the mouse.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QRectF, Qt, Signal
from PySide6.QtGui import QColor, QPainter, QPen
from PySide6.QtWidgets import QGraphicsItem, QGraphicsObject, QGraphicsSceneHoverEvent, QStyleOptionGraphicsItem, QWidget

from graipe.model.base import Model
from graipe.parameters import BoolParameter, DoubleParameter, IntParameter, ParameterGroup, StringParameter, TransformParameter

logger = logging.getLogger(__name__)

Description = tuple[str, str]


class ViewController(QGraphicsObject):
    TYPE_NAME: str = "ViewController"
    # Model type names this controller can display
    MODEL_TYPES: tuple[str, ...] = ()

    status_text_changed = Signal(str)
    status_description_changed = Signal(str)

    def __init__(self, model: Model, parent_item: Optional[QGraphicsItem] = None) -> None:
        super().__init__(parent_item)
        self._model = model

        self._name = StringParameter("Name:", f"{self.TYPE_NAME} of {model.short_name()}")
        self._z_order = IntParameter("Z-Order:", -1000, 1000, 0)
        self._transformation = TransformParameter("Transformation:")
        self._show_bbox = BoolParameter("Show bounding rect:", False)
        self._bbox_width = DoubleParameter("Bounding rect line width:", 0, 100, 1.0, self._show_bbox)

        self._parameters = ParameterGroup(f"{self.TYPE_NAME} parameters")
        self._parameters.add_parameter("name", self._name)
        self._parameters.add_parameter("zOrder", self._z_order)
        self._parameters.add_parameter("transformation", self._transformation)
        self._parameters.add_parameter("showBBox", self._show_bbox)
        self._parameters.add_parameter("bboxLineWidth", self._bbox_width)

        self.setAcceptHoverEvents(True)

        model.model_changed.connect(self.update_view)
        self._parameters.value_changed.connect(self.update_view)

    def type_name(self) -> str:
        return self.TYPE_NAME

    def model(self) -> Model:
        return self._model

    def parameters(self) -> ParameterGroup:
        return self._parameters

    def name(self) -> str:
        return self._name.value()

    def set_name(self, name: str) -> None:
        self._name.set_value(name)

    def rect(self) -> QRectF:
        """Extent of the model in item coordinates."""
        return QRectF(0, 0, self._model.width(), self._model.height())

    def update_view(self) -> None:
        """Re-apply geometry parameters. Subclasses recompute their caches and call ``update()``."""
        self.prepareGeometryChange()
        self.setZValue(self._z_order.value())
        self.setTransform(self._model.local_transformation() * self._transformation.transform())
        self.update()

    # ---- painting ----

    def boundingRect(self) -> QRectF:
        margin = self._bbox_width.value() / 2 if self._show_bbox.value() else 0.0
        return self.rect().adjusted(-margin, -margin, margin, margin)

    def paint(self, painter: QPainter, option: QStyleOptionGraphicsItem, widget: Optional[QWidget] = None) -> None:
        self.paint_before(painter)
        self.paint_content(painter)
        self.paint_after(painter)

    def paint_before(self, painter: QPainter) -> None:
        painter.save()

    def paint_content(self, painter: QPainter) -> None:
        pass

    def paint_after(self, painter: QPainter) -> None:
        painter.restore()
        if self._show_bbox.value():
            pen = QPen(QColor(Qt.GlobalColor.black))
            pen.setWidthF(self._bbox_width.value())
            pen.setCosmetic(True)
            painter.setPen(pen)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(self.rect())

    # ---- hover ----

    def describe_position(self, x: float, y: float) -> Optional[Description]:
        """Status text and HTML description for a position in item coordinates."""
        name = self._model.short_name()
        return (
            f"{name} [{x:.1f},{y:.1f}]",
            f"<b>Mouse moved over Object: </b><br/><i>{name}</i><br/> at position [{x:.1f},{y:.1f}]",
        )

    def hoverMoveEvent(self, event: QGraphicsSceneHoverEvent) -> None:
        super().hoverMoveEvent(event)
        pos = event.pos()
        if not self.rect().contains(pos):
            return
        described = self.describe_position(pos.x(), pos.y())
        if described is not None:
            text, description = described
            self.status_text_changed.emit(text)
            self.status_description_changed.emit(description)

    def __repr__(self) -> str:
        return f"<{self.TYPE_NAME} of {self._model!r}>"
