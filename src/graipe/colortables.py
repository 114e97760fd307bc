"""
Color Tables
============
Built-in 256-entry color tables used by color table parameters and view
controllers. Each table is a list of ARGB32 integers (``0xAARRGGBB``), the
layout expected by ``QImage.setColorTable``.
"""
from __future__ import annotations

from functools import lru_cache

import numpy as np
import pyqtgraph as pg

TABLE_SIZE = 256

# Colormaps bundled with pyqtgraph
_PG_COLORMAPS = ("viridis", "inferno", "plasma", "magma", "cividis", "turbo")

_JET_STOPS = (
    (0.0, (0, 0, 128)),
    (0.125, (0, 0, 255)),
    (0.375, (0, 255, 255)),
    (0.625, (255, 255, 0)),
    (0.875, (255, 0, 0)),
    (1.0, (128, 0, 0)),
)


def rgba_to_argb(rgba: np.ndarray) -> list[int]:
    """Pack an (N, 3|4) uint8 array into a list of ARGB32 integers."""
    rgba = np.asarray(rgba, dtype=np.uint32)
    alpha = rgba[:, 3] if rgba.shape[1] == 4 else np.full(len(rgba), 255, dtype=np.uint32)
    packed = (alpha << 24) | (rgba[:, 0] << 16) | (rgba[:, 1] << 8) | rgba[:, 2]
    return [int(v) for v in packed]


def argb_to_hex(argb: int) -> str:
    return f"#{argb & 0xFFFFFFFF:08X}"


def hex_to_argb(text: str) -> int:
    text = text.strip().lstrip("#")
    if len(text) == 6:
        text = "FF" + text
    if len(text) != 8:
        raise ValueError(f"'{text}' is not a #AARRGGBB color")
    return int(text, 16)


def _grey() -> list[int]:
    ramp = np.arange(TABLE_SIZE, dtype=np.uint8)
    return rgba_to_argb(np.stack([ramp, ramp, ramp], axis=1))


def _jet() -> list[int]:
    positions = [p for p, _ in _JET_STOPS]
    colors = [c for _, c in _JET_STOPS]
    cmap = pg.ColorMap(positions, colors)
    return rgba_to_argb(cmap.getLookupTable(0.0, 1.0, TABLE_SIZE, alpha=False))


def _from_pyqtgraph(name: str) -> list[int]:
    cmap = pg.colormap.get(name)
    return rgba_to_argb(cmap.getLookupTable(0.0, 1.0, TABLE_SIZE, alpha=False))


@lru_cache(maxsize=1)
def _tables() -> tuple[tuple[str, tuple[int, ...]], ...]:
    tables: list[tuple[str, list[int]]] = [("Grey", _grey()), ("Jet", _jet())]
    for name in _PG_COLORMAPS:
        tables.append((name.capitalize(), _from_pyqtgraph(name)))
    return tuple((name, tuple(ct)) for name, ct in tables)


def color_tables() -> list[list[int]]:
    """All built-in color tables, in display order."""
    return [list(ct) for _, ct in _tables()]


def color_table_names() -> list[str]:
    return [name for name, _ in _tables()]


def color_table(name: str) -> list[int]:
    for table_name, ct in _tables():
        if table_name.lower() == name.lower():
            return list(ct)
    raise KeyError(f"No color table named '{name}'")
