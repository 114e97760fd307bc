"""Tests for the built-in color tables and ARGB helpers."""

from __future__ import annotations

import numpy as np
import pytest

from graipe.colortables import (
    TABLE_SIZE,
    argb_to_hex,
    color_table,
    color_table_names,
    color_tables,
    hex_to_argb,
    rgba_to_argb,
)


class TestColorTables:
    def test_names_and_order(self) -> None:
        assert color_table_names() == ["Grey", "Jet", "Viridis", "Inferno", "Plasma", "Magma", "Cividis", "Turbo"]
        assert len(color_tables()) == len(color_table_names())

    def test_tables_are_opaque_and_complete(self) -> None:
        for ct in color_tables():
            assert len(ct) == TABLE_SIZE
            assert all(argb >> 24 == 0xFF for argb in ct)

    def test_grey_ramp(self) -> None:
        grey = color_table("Grey")
        assert grey[0] == 0xFF000000
        assert grey[128] == 0xFF808080
        assert grey[-1] == 0xFFFFFFFF

    def test_lookup_is_case_insensitive(self) -> None:
        assert color_table("viridis") == color_table("Viridis")

    def test_unknown_table(self) -> None:
        with pytest.raises(KeyError):
            color_table("Rainbow")

    def test_returned_tables_are_copies(self) -> None:
        ct = color_table("Jet")
        ct[0] = 0
        assert color_table("Jet")[0] != 0


class TestArgbHelpers:
    def test_pack_rgb_and_rgba(self) -> None:
        assert rgba_to_argb(np.array([[255, 0, 0]])) == [0xFFFF0000]
        assert rgba_to_argb(np.array([[1, 2, 3, 4]])) == [0x04010203]

    def test_hex(self) -> None:
        assert argb_to_hex(0x80FF0010) == "#80FF0010"
        assert hex_to_argb("#80FF0010") == 0x80FF0010
        assert hex_to_argb("#00FF00") == 0xFF00FF00

    def test_bad_hex(self) -> None:
        with pytest.raises(ValueError):
            hex_to_argb("#12345")
