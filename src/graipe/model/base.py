"""
Model Base Classes
==================
Every data entity of a workspace is a ``Model``: a 2-D shape aligned in
local (left, top, right, bottom) coordinates and, independently, in global
(e.g. world) coordinates, described by a ``ParameterGroup``.

Models can be locked read-only, e.g. while an algorithm works on them. Each
``lock()`` hands out a random ticket which is needed to ``unlock()`` again.
All mutating accessors silently do nothing while a model is locked, and its
parameters (with their editor widgets) are read-only.

Loading (xml or CSV) is all-or-nothing: the data is read into a scratch
model first and only taken over when everything could be read.

Classes:
    Model: The base class.
    RasteredModel: A model with an underlying raster of width x height cells.
    ListModel: A model holding an ordered list of items with CSV support.
"""
from __future__ import annotations

import logging
import random
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QTransform

from graipe.parameters import LongStringParameter, ParameterGroup, PointFParameter, PointParameter, StringParameter
from graipe.parameters.numeric import INT_LIMIT

if TYPE_CHECKING:
    from graipe.app.workspace import Workspace

logger = logging.getLogger(__name__)

_POINT_LOW = (-INT_LIMIT, -INT_LIMIT)
_POINT_UPP = (INT_LIMIT, INT_LIMIT)


def _scaled_transform(left: float, top: float, sx: float, sy: float) -> QTransform:
    t = QTransform()
    t.translate(left, top)
    t.scale(sx, sy)
    return t


class Model(QObject):
    """Base class of all models."""
    TYPE_NAME: str = "Model"

    model_changed = Signal()
    lock_changed = Signal(bool)

    def __init__(self, workspace: Optional[Workspace] = None) -> None:
        super().__init__()
        self._workspace = workspace
        self._locks: list[int] = []

        self._name = StringParameter("Name:", f"New {self.TYPE_NAME}")
        self._description = LongStringParameter(
            "Description:",
            f"This new {self.TYPE_NAME} has been created on {datetime.now():%d.%m.%Y %H:%M:%S}"
        )
        self._ul = PointParameter("Upper left:", _POINT_LOW, _POINT_UPP, (0, 0))
        self._lr = PointParameter("Lower right:", _POINT_LOW, _POINT_UPP, (0, 0))
        self._global_ul = PointFParameter("Global upper left:", value=(0.0, 0.0))
        self._global_lr = PointFParameter("Global lower right:", value=(0.0, 0.0))

        self._parameters = ParameterGroup(f"{self.TYPE_NAME} parameters")
        self._parameters.add_parameter("name", self._name)
        self._parameters.add_parameter("description", self._description)
        self._parameters.add_parameter("ul", self._ul)
        self._parameters.add_parameter("lr", self._lr)
        self._parameters.add_parameter("global_ul", self._global_ul)
        self._parameters.add_parameter("global_lr", self._global_lr)

        # Parameters follow the model when it is moved to another thread
        self._parameters.setParent(self)
        self._parameters.value_changed.connect(self.update_model)
        self.lock_changed.connect(self._parameters.set_read_only)

    def type_name(self) -> str:
        return self.TYPE_NAME

    def workspace(self) -> Optional[Workspace]:
        return self._workspace

    def set_workspace(self, workspace: Optional[Workspace]) -> None:
        self._workspace = workspace

    def parameters(self) -> ParameterGroup:
        """The parameters of this model, editable in a GUI."""
        return self._parameters

    def update_model(self) -> None:
        """Called whenever a parameter changes. Informs connected views."""
        self.model_changed.emit()

    # ---- naming ----

    def name(self) -> str:
        return self._name.value()

    def short_name(self, length: int = 60) -> str:
        name = self.name()
        if len(name) > length:
            return name[:max(length - 3, 0)] + "..."
        return name

    def set_name(self, name: str) -> None:
        if self.locked():
            return
        self._name.set_value(name)

    def description(self) -> str:
        return self._description.value()

    def set_description(self, description: str) -> None:
        if self.locked():
            return
        self._description.set_value(description)

    # ---- local geometry ----

    def left(self) -> int:
        return self._ul.x()

    def set_left(self, value: int) -> None:
        if self.locked():
            return
        self._ul.set_value((value, self._ul.y()))

    def top(self) -> int:
        return self._ul.y()

    def set_top(self, value: int) -> None:
        if self.locked():
            return
        self._ul.set_value((self._ul.x(), value))

    def right(self) -> int:
        return self._lr.x()

    def set_right(self, value: int) -> None:
        if self.locked():
            return
        self._lr.set_value((value, self._lr.y()))

    def bottom(self) -> int:
        return self._lr.y()

    def set_bottom(self, value: int) -> None:
        if self.locked():
            return
        self._lr.set_value((self._lr.x(), value))

    def width(self) -> int:
        return self.right() - self.left()

    def height(self) -> int:
        return self.bottom() - self.top()

    # ---- global geometry ----

    def global_left(self) -> float:
        return self._global_ul.x()

    def set_global_left(self, value: float) -> None:
        if self.locked():
            return
        self._global_ul.set_value((value, self._global_ul.y()))

    def global_top(self) -> float:
        return self._global_ul.y()

    def set_global_top(self, value: float) -> None:
        if self.locked():
            return
        self._global_ul.set_value((self._global_ul.x(), value))

    def global_right(self) -> float:
        return self._global_lr.x()

    def set_global_right(self, value: float) -> None:
        if self.locked():
            return
        self._global_lr.set_value((value, self._global_lr.y()))

    def global_bottom(self) -> float:
        return self._global_lr.y()

    def set_global_bottom(self, value: float) -> None:
        if self.locked():
            return
        self._global_lr.set_value((self._global_lr.x(), value))

    def is_viewable(self) -> bool:
        """Only models with a valid local extent may be shown in geometric view mode."""
        return self.right() > self.left() and self.bottom() > self.top()

    def is_geo_viewable(self) -> bool:
        return self.global_right() > self.global_left() and self.global_bottom() > self.global_top()

    def local_transformation(self) -> QTransform:
        """Maps model coordinates into the local (scene) frame."""
        return QTransform.fromTranslate(self.left(), self.top())

    def global_transformation(self) -> QTransform:
        """Maps model coordinates into the global frame."""
        w, h = self.width(), self.height()
        sx = (self.global_right() - self.global_left()) / w if w else 1.0
        sy = (self.global_bottom() - self.global_top()) / h if h else 1.0
        return _scaled_transform(self.global_left(), self.global_top(), sx, sy)

    # ---- copying ----

    def copy_geometry(self, other: Model) -> None:
        if other is self:
            return
        other.set_left(self.left())
        other.set_top(self.top())
        other.set_right(self.right())
        other.set_bottom(self.bottom())
        other.set_global_left(self.global_left())
        other.set_global_top(self.global_top())
        other.set_global_right(self.global_right())
        other.set_global_bottom(self.global_bottom())

    def copy_metadata(self, other: Model) -> None:
        if other is self:
            return
        self.copy_geometry(other)
        other.set_name(self.name())
        other.set_description(self.description())

    def copy_data(self, other: Model) -> None:
        """Copy metadata and payload. Subclasses add their payload."""
        self.copy_metadata(other)

    def copy(self) -> Model:
        """A deep copy of parameters and data. Locks are never copied."""
        clone = type(self)(self._workspace)
        self.copy_data(clone)
        return clone

    # ---- serialization ----

    def serialize(self) -> ET.Element:
        """
        Serialize the complete model into an xml tree:

            <TYPENAME>
                <Header>
                    HEADER
                </Header>
                <Content>
                    CONTENT
                </Content>
            </TYPENAME>
        """
        root = ET.Element(self.type_name())
        self.serialize_header(ET.SubElement(root, "Header"))
        self.serialize_content(ET.SubElement(root, "Content"))
        return root

    def serialize_header(self, header: ET.Element) -> None:
        self._parameters.serialize(header)

    def serialize_content(self, content: ET.Element) -> None:
        pass

    def deserialize(self, element: ET.Element) -> bool:
        """Restore the model from an xml tree. Returns False on any failure."""
        if self.locked():
            logger.warning(f"Cannot deserialize into locked model '{self.name()}'.")
            return False
        if element.tag != self.type_name():
            logger.error(f"{self.type_name()}.deserialize: found <{element.tag}> instead.")
            return False

        header = element.find("Header")
        content = element.find("Content")
        if header is None or content is None:
            logger.error(f"{self.type_name()}.deserialize: <Header> or <Content> missing.")
            return False

        scratch = type(self)(self._workspace)
        if not scratch.deserialize_header(header):
            logger.error(f"{self.type_name()}.deserialize: header could not be restored.")
            return False
        if not scratch.deserialize_content(content):
            logger.error(f"{self.type_name()}.deserialize: content could not be restored.")
            return False

        # The scratch model accepted the same header
        self.deserialize_header(header)
        self._take_payload(scratch)
        self.update_model()
        return True

    def deserialize_header(self, header: ET.Element) -> bool:
        group = header.find(ParameterGroup.TYPE_NAME)
        if group is None:
            logger.error(f"{self.type_name()}: no <{ParameterGroup.TYPE_NAME}> inside <Header>.")
            return False
        return self._parameters.deserialize(group)

    def deserialize_content(self, content: ET.Element) -> bool:
        return True

    def _take_payload(self, other: Model) -> None:
        """Take over the data (not the parameters) of a scratch model of the same type."""
        pass

    # ---- locking ----

    def locked(self) -> bool:
        return len(self._locks) > 0

    def locked_by(self) -> int:
        """Number of currently active locks."""
        return len(self._locks)

    def lock(self) -> int:
        """Put a read-only lock on the model and return the ticket needed to unlock it."""
        ticket = random.getrandbits(32)
        self._locks.append(ticket)
        logger.debug(f"Model '{self.name()}' locked ({len(self._locks)} active).")
        self.lock_changed.emit(True)
        return ticket

    def unlock(self, ticket: int) -> None:
        """Remove one lock using its ticket. Unknown tickets are ignored."""
        try:
            self._locks.remove(ticket)
        except ValueError:
            logger.warning(f"Model '{self.name()}': unlock with unknown ticket {ticket} ignored.")
            return
        logger.debug(f"Model '{self.name()}' unlocked ({len(self._locks)} active).")
        if not self._locks:
            self.lock_changed.emit(False)

    def __repr__(self) -> str:
        return f"<{self.type_name()} '{self.name()}'>"


class RasteredModel(Model):
    """A model with an underlying raster of width x height cells."""
    TYPE_NAME = "RasteredModel"

    def __init__(self, workspace: Optional[Workspace] = None) -> None:
        super().__init__(workspace)
        self._size = PointParameter("Raster size:", (0, 0), _POINT_UPP, (0, 0))
        self._parameters.add_parameter("size", self._size)

    def width(self) -> int:
        return self._size.x()

    def set_width(self, value: int) -> None:
        if self.locked():
            return
        self._size.set_value((value, self._size.y()))

    def height(self) -> int:
        return self._size.y()

    def set_height(self, value: int) -> None:
        if self.locked():
            return
        self._size.set_value((self._size.x(), value))

    def set_size(self, width: int, height: int) -> None:
        """
        Set the raster size in one step. A model without local extent gets
        one raster cell per unit.
        """
        if self.locked():
            return
        if self.right() == self.left() and self.bottom() == self.top():
            self._lr.set_value((self.left() + width, self.top() + height))
        self._size.set_value((width, height))

    def is_empty(self) -> bool:
        return self.width() == 0 or self.height() == 0

    def is_viewable(self) -> bool:
        return not self.is_empty() and super().is_viewable()

    def is_geo_viewable(self) -> bool:
        return not self.is_empty() and super().is_geo_viewable()

    def raster_scale(self) -> tuple[float, float]:
        """Size of one raster cell in local units."""
        extent_w = self.right() - self.left()
        extent_h = self.bottom() - self.top()
        sx = extent_w / self.width() if self.width() else 1.0
        sy = extent_h / self.height() if self.height() else 1.0
        return sx, sy

    def local_transformation(self) -> QTransform:
        """Maps raster coordinates into the local frame, scaled by the resolution."""
        return _scaled_transform(self.left(), self.top(), *self.raster_scale())

    def copy_geometry(self, other: Model) -> None:
        super().copy_geometry(other)
        if other is not self and isinstance(other, RasteredModel):
            other.set_width(self.width())
            other.set_height(self.height())


class ListModel(Model):
    """
    A model holding an ordered list of items. Items serialize to one CSV row
    each and to one xml element (ITEM_TAG) each.
    """
    TYPE_NAME = "ListModel"
    ITEM_TAG = "Item"

    def size(self) -> int:
        raise NotImplementedError("`size` must be implemented in subclass.")

    def __len__(self) -> int:
        return self.size()

    def clear(self) -> None:
        raise NotImplementedError("`clear` must be implemented in subclass.")

    def csv_header(self) -> str:
        raise NotImplementedError("`csv_header` must be implemented in subclass.")

    def item_to_csv(self, index: int) -> str:
        raise NotImplementedError("`item_to_csv` must be implemented in subclass.")

    def item_from_csv(self, serial: str) -> bool:
        raise NotImplementedError("`item_from_csv` must be implemented in subclass.")

    def serialize_item(self, index: int, content: ET.Element) -> None:
        raise NotImplementedError("`serialize_item` must be implemented in subclass.")

    def deserialize_item(self, element: ET.Element) -> bool:
        raise NotImplementedError("`deserialize_item` must be implemented in subclass.")

    def to_csv(self) -> str:
        """The header line followed by one line per item."""
        return "\n".join([self.csv_header()] + [self.item_to_csv(i) for i in range(self.size())]) + "\n"

    def from_csv(self, text: str) -> bool:
        """Replace all items by the rows of a CSV text (first line is the header)."""
        if self.locked():
            return False
        scratch = type(self)(self._workspace)
        for line_no, line in enumerate(text.splitlines()[1:], start=2):
            line = line.strip()
            if not line:
                continue
            if not scratch.item_from_csv(line):
                logger.error(f"{self.type_name()}: CSV line {line_no} could not be read: '{line}'")
                return False
        self._take_payload(scratch)
        self.update_model()
        return True

    def serialize_content(self, content: ET.Element) -> None:
        ET.SubElement(content, "Legend").text = self.csv_header()
        for i in range(self.size()):
            self.serialize_item(i, content)

    def deserialize_content(self, content: ET.Element) -> bool:
        if self.locked():
            return False
        scratch = type(self)(self._workspace)
        for child in content:
            if child.tag == self.ITEM_TAG:
                if not scratch.deserialize_item(child):
                    return False
        self._take_payload(scratch)
        return True
