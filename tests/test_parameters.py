"""Tests for the parameter primitives and parameter groups.

Validates value handling, ranges, parent dependencies, string and xml
(de)serialization and the delegate synchronization in both directions.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime

import numpy as np
import pytest
from PySide6.QtGui import QTransform

from graipe.colortables import color_table, color_table_names
from graipe.parameters import (
    BoolParameter,
    ColorTableParameter,
    DateTimeParameter,
    DoubleParameter,
    EnumParameter,
    FilenameParameter,
    IntParameter,
    LongStringParameter,
    ModelParameter,
    ParameterGroup,
    PointFParameter,
    PointParameter,
    StringParameter,
    TransformParameter,
)


def roundtrip(parameter, fresh):
    """Serialize ``parameter`` into xml and restore it into ``fresh``."""
    root = ET.Element("Root")
    element = parameter.serialize(root)
    assert fresh.deserialize(element)
    return fresh


# ---------------------------------------------------------------------------
# Values and signals
# ---------------------------------------------------------------------------


class TestValues:
    def test_set_value_emits_value_changed(self, qapp) -> None:
        p = StringParameter("Name:", "a")
        calls = []
        p.value_changed.connect(lambda: calls.append(p.value()))
        p.set_value("b")
        assert calls == ["b"]

    def test_int_does_not_clamp(self, qapp) -> None:
        p = IntParameter("Count:", 0, 10, 5)
        p.set_value(42)
        assert p.value() == 42
        assert not p.is_valid()
        p.set_value(10)
        assert p.is_valid()

    def test_set_range_updates_validity(self, qapp) -> None:
        p = DoubleParameter("Sigma:", 0.0, 1.0, 2.0)
        assert not p.is_valid()
        p.set_range(0.0, 5.0)
        assert p.is_valid()
        assert p.lower_bound() == 0.0
        assert p.upper_bound() == 5.0

    def test_set_range_does_not_emit(self, qapp) -> None:
        p = IntParameter("Count:", 0, 10, 5)
        p.delegate()
        calls = []
        p.value_changed.connect(lambda: calls.append(1))
        p.set_range(0, 3)
        assert calls == []
        assert p.value() == 5

    def test_point_validity(self, qapp) -> None:
        p = PointParameter("Size:", (0, 0), (100, 100), (10, 20))
        assert p.x() == 10 and p.y() == 20
        assert p.is_valid()
        p.set_value((-1, 5))
        assert not p.is_valid()

    def test_enum_value_text(self, qapp) -> None:
        p = EnumParameter("Mode:", ["one", "two", "three"], 1)
        assert p.value_text() == "two"
        p.set_value(7)
        assert not p.is_valid()
        assert p.value_text() == ""

    def test_long_string_value_text_is_single_line(self, qapp) -> None:
        p = LongStringParameter("Description:", "first\nsecond")
        assert p.value_text() == "first second"
        assert p.to_string() == "first\nsecond"

    def test_filename_validity(self, qapp, tmp_path) -> None:
        existing = tmp_path / "a.txt"
        existing.write_text("x")
        p = FilenameParameter("File:", str(existing))
        assert p.is_valid()
        p.set_value(str(tmp_path / "missing.txt"))
        assert not p.is_valid()

    def test_save_filename_needs_existing_folder(self, qapp, tmp_path) -> None:
        p = FilenameParameter("File:", str(tmp_path / "new.png"), save=True)
        assert p.is_valid()
        p.set_value(str(tmp_path / "nowhere" / "new.png"))
        assert not p.is_valid()

    def test_transform_accepts_qtransform(self, qapp) -> None:
        p = TransformParameter("T:", QTransform.fromTranslate(3, 4))
        assert p.value()[2, 0] == 3.0
        assert p.value()[2, 1] == 4.0
        assert p.transform().dx() == 3.0


# ---------------------------------------------------------------------------
# Parent dependencies
# ---------------------------------------------------------------------------


class TestParentDependency:
    def test_enabled_follows_parent(self, qapp) -> None:
        flag = BoolParameter("Use:", False)
        child = DoubleParameter("Width:", 0, 10, 1, flag)
        assert not child.is_enabled()
        flag.set_value(True)
        assert child.is_enabled()

    def test_inverted_parent(self, qapp) -> None:
        flag = BoolParameter("Auto:", True)
        child = IntParameter("Manual value:", 0, 10, 1, flag, invert_parent=True)
        assert not child.is_enabled()
        flag.set_value(False)
        assert child.is_enabled()

    def test_delegate_enabled_state_follows_parent(self, qapp) -> None:
        flag = BoolParameter("Use:", False)
        child = StringParameter("Text:", "", flag)
        widget = child.delegate()
        assert not widget.isEnabled()
        flag.set_value(True)
        assert widget.isEnabled()


# ---------------------------------------------------------------------------
# Delegates
# ---------------------------------------------------------------------------


class TestDelegates:
    def test_delegate_is_created_once(self, qapp) -> None:
        p = StringParameter("Name:", "a")
        assert not p.has_delegate()
        assert p.delegate() is p.delegate()
        assert p.has_delegate()

    def test_value_to_widget(self, qapp) -> None:
        p = IntParameter("Count:", 0, 100, 5)
        spin = p.delegate()
        assert spin.value() == 5
        p.set_value(17)
        assert spin.value() == 17

    def test_widget_to_value(self, qapp) -> None:
        p = StringParameter("Name:", "a")
        calls = []
        p.value_changed.connect(lambda: calls.append(p.value()))
        p.delegate().setText("edited")
        assert p.value() == "edited"
        assert calls[-1] == "edited"

    def test_programmatic_update_does_not_reenter(self, qapp) -> None:
        p = BoolParameter("Flag:", False)
        p.delegate()
        calls = []
        p.value_changed.connect(lambda: calls.append(p.value()))
        p.set_value(True)
        assert calls == [True]

    def test_point_delegate_roundtrip(self, qapp) -> None:
        p = PointParameter("Size:", (0, 0), (100, 100), (1, 2))
        p.delegate()
        p._x_spin.setValue(30)
        assert p.value() == (30, 2)

    def test_color_table_delegate(self, qapp) -> None:
        p = ColorTableParameter("Colors:", color_table("Grey"))
        combo = p.delegate()
        assert combo.count() == len(color_table_names())
        combo.setCurrentIndex(1)
        assert p.value() == color_table("Jet")


# ---------------------------------------------------------------------------
# String and xml serialization
# ---------------------------------------------------------------------------


class TestSerialization:
    def test_bool_strings(self, qapp) -> None:
        p = BoolParameter("Flag:", True)
        assert p.to_string() == "true"
        assert p.from_string("false")
        assert p.value() is False
        assert not p.from_string("maybe")

    def test_invalid_number_is_reported(self, qapp) -> None:
        p = IntParameter("Count:", 0, 10, 3)
        assert not p.from_string("three")
        assert p.value() == 3

    def test_xml_layout(self, qapp) -> None:
        p = DoubleParameter("Sigma:", 0, 10, 1.5)
        p.set_key("sigma")
        element = p.serialize(ET.Element("Root"))
        assert element.tag == "DoubleParameter"
        assert element.get("ID") == "sigma"
        assert element.findtext("Name") == "Sigma:"
        assert element.findtext("Value") == "1.5"

    def test_wrong_tag_fails(self, qapp) -> None:
        element = ET.Element("IntParameter", {"ID": "x"})
        ET.SubElement(element, "Value").text = "1"
        assert not DoubleParameter("x").deserialize(element)

    def test_pointf_uses_xy_children(self, qapp) -> None:
        p = PointFParameter("Corner:", value=(1.25, -2.5))
        element = p.serialize(ET.Element("Root"))
        assert element.findtext("x") == "1.25"
        assert element.findtext("y") == "-2.5"
        assert element.find("Value") is None
        restored = roundtrip(p, PointFParameter("Corner:"))
        assert restored.value() == (1.25, -2.5)

    def test_datetime_format(self, qapp) -> None:
        p = DateTimeParameter("When:", datetime(2024, 3, 1, 14, 5, 9))
        assert p.to_string() == "01.03.2024 14:05:09"
        restored = roundtrip(p, DateTimeParameter("When:"))
        assert restored.value() == datetime(2024, 3, 1, 14, 5, 9)

    def test_transform_text(self, qapp) -> None:
        p = TransformParameter("T:")
        assert p.to_string() == "1, 0, 0, 0, 1, 0, 0, 0, 1"
        assert p.from_string("2, 0, 0, 0, 2, 0, 5, 6, 1")
        assert p.transform().m11() == 2.0
        assert p.transform().dy() == 6.0
        assert not p.from_string("1, 2, 3")

    def test_color_table_xml(self, qapp) -> None:
        custom = [0xFF000000, 0xFFFF0000, 0x80FFFFFF]
        p = ColorTableParameter("Colors:", custom)
        element = p.serialize(ET.Element("Root"))
        assert element.findtext("Colors") == "3"
        colors = element.findall("Color")
        assert [c.get("ID") for c in colors] == ["0", "1", "2"]
        assert colors[2].text == "#80FFFFFF"
        restored = roundtrip(p, ColorTableParameter("Colors:"))
        assert restored.value() == custom

    def test_empty_color_table_rejected(self, qapp) -> None:
        p = ColorTableParameter("Colors:", color_table("Jet"))
        assert not p.from_string("")
        assert not p.from_string(" , ")
        assert p.value() == color_table("Jet")
        with pytest.raises(ValueError):
            p.set_value([])

    def test_builtin_color_table_value_text(self, qapp) -> None:
        p = ColorTableParameter("Colors:", color_table("Jet"))
        assert p.value_text() == "Jet"

    def test_transform_roundtrip(self, qapp) -> None:
        matrix = np.array([[1, 0.5, 0], [0, 1, 0], [10, 20, 1]], dtype=np.float64)
        restored = roundtrip(TransformParameter("T:", matrix), TransformParameter("T:"))
        np.testing.assert_allclose(restored.value(), matrix)


# ---------------------------------------------------------------------------
# Parameter groups
# ---------------------------------------------------------------------------


@pytest.fixture
def group(qapp) -> ParameterGroup:
    g = ParameterGroup("Settings")
    g.add_parameter("name", StringParameter("Name:", "x"))
    flag = g.add_parameter("use", BoolParameter("Use limit:", False))
    g.add_parameter("limit", IntParameter("Limit:", 0, 10, 50, flag))
    return g


class TestParameterGroup:
    def test_mapping_access(self, group) -> None:
        assert group.keys() == ["name", "use", "limit"]
        assert len(group) == 3
        assert "limit" in group
        assert group["name"].key() == "name"

    def test_duplicate_key_rejected(self, group) -> None:
        with pytest.raises(KeyError):
            group.add_parameter("name", StringParameter("Other:"))

    def test_reemits_member_changes(self, group) -> None:
        calls = []
        group.value_changed.connect(lambda: calls.append(1))
        group["name"].set_value("y")
        assert calls == [1]

    def test_only_enabled_members_count_for_validity(self, group) -> None:
        # limit=50 is out of range but disabled
        assert group.is_valid()
        group["use"].set_value(True)
        assert not group.is_valid()

    def test_value_text(self, group) -> None:
        assert group.value_text().splitlines()[0] == "Name: x"

    def test_xml_layout_and_roundtrip(self, group, qapp) -> None:
        group["name"].set_value("restored")
        element = group.serialize(ET.Element("Root"))
        assert element.tag == "ParameterGroup"
        assert element.findtext("Parameters") == "3"

        fresh = ParameterGroup("Settings")
        fresh.add_parameter("name", StringParameter("Name:", ""))
        flag = fresh.add_parameter("use", BoolParameter("Use limit:", True))
        fresh.add_parameter("limit", IntParameter("Limit:", 0, 10, 0, flag))
        assert fresh.deserialize(element)
        assert fresh["name"].value() == "restored"
        assert fresh["use"].value() is False
        assert fresh["limit"].value() == 50

    def test_unknown_id_fails(self, group, qapp) -> None:
        element = group.serialize(ET.Element("Root"))
        other = ParameterGroup("Settings")
        other.add_parameter("name", StringParameter("Name:", ""))
        assert not other.deserialize(element)

    def test_delegate_contains_member_delegates(self, group) -> None:
        widget = group.delegate()
        assert group["name"].delegate().parent() is widget

    def test_read_only_reaches_members(self, group) -> None:
        group.set_read_only(True)
        group.add_parameter("extra", StringParameter("Extra:", "e"))
        assert all(group[key].is_read_only() for key in group)
        group.set_value({"name": "y"})
        assert group["name"].value() == "x"
        group.set_read_only(False)
        group.set_value({"name": "y"})
        assert group["name"].value() == "y"


# ---------------------------------------------------------------------------
# Read-only parameters
# ---------------------------------------------------------------------------


class TestReadOnly:
    def test_set_value_ignored(self, qapp) -> None:
        p = IntParameter("Count:", 0, 10, 3)
        calls = []
        p.value_changed.connect(lambda: calls.append(1))
        p.set_read_only(True)
        p.set_value(5)
        assert p.value() == 3
        assert calls == []

    def test_delegate_edit_reverted(self, qapp) -> None:
        p = IntParameter("Count:", 0, 10, 3)
        spin = p.delegate()
        p.set_read_only(True)
        assert not spin.isEnabled()
        spin.setValue(7)
        assert spin.value() == 3
        assert p.value() == 3

    def test_color_table_edit_reverted(self, qapp) -> None:
        p = ColorTableParameter("Colors:", color_table("Grey"))
        combo = p.delegate()
        p.set_read_only(True)
        combo.setCurrentIndex(1)
        assert combo.currentIndex() == 0
        assert p.value() == color_table("Grey")

    def test_parent_dependency_still_applies(self, qapp) -> None:
        flag = BoolParameter("Use:", False)
        p = IntParameter("Limit:", 0, 10, 5, flag)
        spin = p.delegate()
        p.set_read_only(True)
        flag.set_value(True)
        assert not spin.isEnabled()
        p.set_read_only(False)
        assert spin.isEnabled()


# ---------------------------------------------------------------------------
# Model references
# ---------------------------------------------------------------------------


class TestModelParameter:
    def test_selects_first_candidate(self, workspace, ramp_image) -> None:
        p = ModelParameter("Image:", ["Image"], workspace)
        assert p.value() is ramp_image
        assert p.is_valid()
        assert p.to_string() == "ramp"

    def test_invalid_without_models(self, workspace) -> None:
        p = ModelParameter("Image:", ["Image"], workspace)
        assert p.value() is None
        assert not p.is_valid()

    def test_from_string_by_name(self, workspace, ramp_image) -> None:
        p = ModelParameter("Image:", ["Image", "ByteImage"], workspace)
        p.set_value(None)
        assert p.from_string("ramp")
        assert p.value() is ramp_image
        assert not p.from_string("unknown")

    def test_follows_removed_models(self, workspace, ramp_image) -> None:
        p = ModelParameter("Image:", ["Image"], workspace)
        workspace.remove_model(ramp_image)
        assert p.value() is None
        assert not p.is_valid()
