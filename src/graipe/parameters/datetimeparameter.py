"""Date/time parameter."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from PySide6.QtWidgets import QDateTimeEdit, QWidget

from graipe.parameters.base import Parameter

# Text format of serialized timestamps (Qt notation: dd.MM.yyyy hh:mm:ss)
DATETIME_FORMAT = "%d.%m.%Y %H:%M:%S"
QT_DATETIME_FORMAT = "dd.MM.yyyy hh:mm:ss"


class DateTimeParameter(Parameter):
    """A timestamp with second resolution, edited by a QDateTimeEdit."""
    TYPE_NAME = "DateTimeParameter"

    def __init__(self, name: str, value: Optional[datetime] = None, parent: Optional[Parameter] = None,
                 invert_parent: bool = False) -> None:
        super().__init__(name, parent, invert_parent)
        self._value = self._coerce(value if value is not None else datetime.now())

    def _coerce(self, value: Any) -> datetime:
        if isinstance(value, str):
            value = datetime.strptime(value.strip(), DATETIME_FORMAT)
        return value.replace(microsecond=0)

    def to_string(self) -> str:
        return self._value.strftime(DATETIME_FORMAT)

    def _parse(self, text: str) -> datetime:
        return datetime.strptime(text.strip(), DATETIME_FORMAT)

    def _create_delegate(self) -> QWidget:
        w = QDateTimeEdit()
        w.setDisplayFormat(QT_DATETIME_FORMAT)
        w.setCalendarPopup(True)
        w.dateTimeChanged.connect(self._on_delegate_changed)
        return w

    def _update_delegate(self) -> None:
        self._delegate.setDateTime(self._value)

    def _read_delegate(self) -> datetime:
        return self._coerce(self._delegate.dateTime().toPython())
