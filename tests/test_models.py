"""Tests for the model base classes: geometry, locking, copying and serialization."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import numpy as np
import pytest

from graipe.model import (
    ByteImage,
    DenseVectorField2D,
    Image,
    IntImage,
    PolygonList2D,
    SparseVectorField2D,
    WeightedPolygonList2D,
    create_model,
    list_model_types,
)
from graipe.model.image import band_histogram, image_statistics
from graipe.model.registry import model_class


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_all_types_registered(self) -> None:
        types = list_model_types()
        for name in ("Image", "IntImage", "ByteImage", "PolygonList2D", "WeightedPolygonList2D",
                     "SparseVectorField2D", "DenseVectorField2D"):
            assert name in types

    def test_create_model(self, qapp) -> None:
        model = create_model("WeightedPolygonList2D")
        assert isinstance(model, WeightedPolygonList2D)
        assert model_class("ByteImage") is ByteImage

    def test_unknown_type(self) -> None:
        with pytest.raises(KeyError):
            model_class("Mesh3D")


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class TestGeometry:
    def test_defaults(self, qapp) -> None:
        model = PolygonList2D()
        assert model.name() == "New PolygonList2D"
        assert model.width() == 0 and model.height() == 0
        assert not model.is_viewable()

    def test_local_rect(self, qapp) -> None:
        model = PolygonList2D()
        model.set_left(10)
        model.set_top(20)
        model.set_right(110)
        model.set_bottom(70)
        assert model.width() == 100
        assert model.height() == 50
        assert model.is_viewable()
        t = model.local_transformation()
        assert (t.dx(), t.dy()) == (10.0, 20.0)

    def test_global_rect_is_independent(self, qapp) -> None:
        model = PolygonList2D()
        model.set_global_left(1.5)
        model.set_global_right(3.5)
        model.set_global_top(6.0)
        model.set_global_bottom(10.0)
        assert model.left() == 0
        assert model.is_geo_viewable()
        assert not model.is_viewable()
        t = model.global_transformation()
        assert (t.dx(), t.dy()) == (1.5, 6.0)

    def test_raster_scale(self, qapp) -> None:
        image = Image(size=(10, 5), num_bands=1)
        assert (image.right(), image.bottom()) == (10, 5)
        image.set_right(20)
        assert image.raster_scale() == (2.0, 1.0)
        t = image.local_transformation()
        assert t.m11() == 2.0 and t.m22() == 1.0

    def test_set_size_keeps_existing_extent(self, qapp) -> None:
        image = Image()
        image.set_right(100)
        image.set_bottom(100)
        image.set_size(10, 10)
        assert image.raster_scale() == (10.0, 10.0)

    def test_model_changed_on_parameter_edit(self, qapp) -> None:
        model = SparseVectorField2D()
        calls = []
        model.model_changed.connect(lambda: calls.append(1))
        model.set_name("renamed")
        assert calls
        assert model.short_name(4) == "r..."


# ---------------------------------------------------------------------------
# Locking
# ---------------------------------------------------------------------------


class TestLocking:
    def test_tickets(self, qapp) -> None:
        model = PolygonList2D()
        assert not model.locked()
        t1 = model.lock()
        t2 = model.lock()
        assert model.locked()
        assert model.locked_by() == 2
        model.unlock(t1)
        assert model.locked_by() == 1
        model.unlock(t2)
        assert not model.locked()

    def test_unknown_ticket_is_ignored(self, qapp) -> None:
        model = PolygonList2D()
        ticket = model.lock()
        model.unlock(ticket + 1)
        assert model.locked_by() == 1

    def test_mutators_noop_while_locked(self, qapp) -> None:
        model = WeightedPolygonList2D()
        model.add_polygon([(0, 0), (1, 1)], 1.0)
        ticket = model.lock()
        model.set_name("changed")
        model.set_left(5)
        model.add_polygon([(2, 2), (3, 3)], 2.0)
        model.set_weight(0, 7.0)
        model.clear()
        assert model.name() == "New WeightedPolygonList2D"
        assert model.left() == 0
        assert model.size() == 1
        assert model.weight(0) == 1.0
        model.unlock(ticket)
        model.set_name("changed")
        assert model.name() == "changed"

    def test_lock_changed_signal(self, qapp) -> None:
        model = PolygonList2D()
        states = []
        model.lock_changed.connect(states.append)
        ticket = model.lock()
        model.unlock(ticket)
        assert states == [True, False]

    def test_copy_does_not_copy_locks(self, qapp) -> None:
        model = Image(size=(2, 2), num_bands=1)
        model.lock()
        clone = model.copy()
        assert not clone.locked()
        assert clone.width() == 2

    def test_deserialize_into_locked_model_fails(self, qapp) -> None:
        source = PolygonList2D()
        source.add_polygon([(0, 0), (1, 0), (1, 1)])
        target = PolygonList2D()
        target.lock()
        assert not target.deserialize(source.serialize())
        assert target.size() == 0

    def test_editor_of_locked_model_is_read_only(self, ramp_image) -> None:
        editor = ramp_image.parameters()["numbands"].delegate()
        ticket = ramp_image.lock()
        assert not editor.isEnabled()

        editor.setValue(3)
        assert editor.value() == 1
        assert ramp_image.num_bands() == 1
        assert len(ramp_image.bands()) == 1

        ramp_image.parameters()["size"].set_value((8, 8))
        assert (ramp_image.width(), ramp_image.height()) == (4, 3)
        assert ramp_image.band(0).shape == (3, 4)

        ramp_image.unlock(ticket)
        assert editor.isEnabled()
        editor.setValue(3)
        assert ramp_image.num_bands() == 3

    def test_editor_created_while_locked(self, ramp_image) -> None:
        ramp_image.lock()
        editor = ramp_image.parameters().delegate()
        assert not editor.isEnabled()
        assert not ramp_image.parameters()["name"].delegate().isEnabled()


# ---------------------------------------------------------------------------
# Failed loads
# ---------------------------------------------------------------------------


class TestFailedLoads:
    def test_csv_keeps_existing_items(self, qapp) -> None:
        polygons = PolygonList2D()
        polygons.add_polygon([(0, 0), (1, 1)])
        # second row has an odd number of coordinates
        assert not polygons.from_csv("header\n1, 2, 3, 4\n1, 2, 3\n")
        assert polygons.size() == 1
        np.testing.assert_array_equal(polygons.polygon(0), [[0, 0], [1, 1]])

    def test_weighted_csv_keeps_weights(self, qapp) -> None:
        polygons = WeightedPolygonList2D()
        polygons.add_polygon([(0, 0), (1, 1)], 4.0)
        assert not polygons.from_csv("header\n1, 0, 0, 2, 2\nheavy, 0, 0, 1, 1\n")
        assert polygons.weights() == [4.0]
        assert polygons.size() == 1

    def test_sparse_csv_keeps_vectors(self, qapp) -> None:
        field = SparseVectorField2D()
        field.add_vector((1, 2), (3, 4))
        assert not field.from_csv("x, y, u, v\n0, 0, 1, 1\n1, 2, 3\n")
        assert field.size() == 1
        assert field.origin(0) == (1.0, 2.0)

    def test_xml_keeps_header_and_items(self, qapp) -> None:
        target = PolygonList2D()
        target.set_name("keep me")
        target.add_polygon([(0, 0), (1, 1)])

        source = PolygonList2D()
        source.set_name("broken")
        source.add_polygon([(5, 5), (6, 6)])
        source.add_polygon([(7, 7), (8, 8)])
        root = source.serialize()
        root.findall("Content/Polygon2D")[1].set("Points", "3")

        assert not target.deserialize(root)
        assert target.name() == "keep me"
        assert target.size() == 1
        np.testing.assert_array_equal(target.polygon(0), [[0, 0], [1, 1]])

    def test_image_keeps_size_and_bands(self, ramp_image) -> None:
        other = Image.from_array(np.ones((2, 5, 2), dtype=np.float32), name="other")
        root = other.serialize()
        root.find("Content/Channel").text = "AAAA"

        assert not ramp_image.deserialize(root)
        assert ramp_image.name() == "ramp"
        assert (ramp_image.width(), ramp_image.height(), ramp_image.num_bands()) == (4, 3, 1)
        np.testing.assert_array_equal(ramp_image.band(0), np.arange(12).reshape(3, 4))

    def test_successful_load_replaces_items(self, qapp) -> None:
        polygons = WeightedPolygonList2D()
        polygons.add_polygon([(0, 0), (1, 1)], 4.0)
        assert polygons.from_csv("header\n2, 0, 0, 2, 2\n3, 1, 1, 3, 3\n")
        assert polygons.weights() == [2.0, 3.0]


# ---------------------------------------------------------------------------
# Serialization frame
# ---------------------------------------------------------------------------


class TestSerializationFrame:
    def test_header_and_content(self, qapp) -> None:
        root = PolygonList2D().serialize()
        assert root.tag == "PolygonList2D"
        assert [child.tag for child in root] == ["Header", "Content"]
        assert root.find("Header/ParameterGroup") is not None

    def test_wrong_root_tag(self, qapp) -> None:
        root = PolygonList2D().serialize()
        assert not SparseVectorField2D().deserialize(root)

    def test_missing_content(self, qapp) -> None:
        root = PolygonList2D().serialize()
        root.remove(root.find("Content"))
        assert not PolygonList2D().deserialize(root)

    def test_header_roundtrip(self, qapp) -> None:
        source = SparseVectorField2D()
        source.set_name("field")
        source.set_description("two\nlines")
        source.set_right(40)
        source.set_global_bottom(-2.5)
        target = SparseVectorField2D()
        assert target.deserialize(source.serialize())
        assert target.name() == "field"
        assert target.description() == "two\nlines"
        assert target.right() == 40
        assert target.global_bottom() == -2.5


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


class TestImage:
    def test_no_bands_for_empty_raster(self, qapp) -> None:
        image = Image()
        image.set_num_bands(3)
        assert image.num_bands() == 3
        assert image.bands() == []
        assert image.is_empty()

    def test_bands_follow_parameters(self, qapp) -> None:
        image = Image(size=(4, 3), num_bands=2)
        assert [b.shape for b in image.bands()] == [(3, 4), (3, 4)]
        assert image.band(0).dtype == np.float32

        image.set_band(1, np.ones((3, 4)))
        image.set_num_bands(3)
        assert len(image.bands()) == 3
        assert image.band(1).sum() == 12
        assert image.band(2).sum() == 0

        image.set_num_bands(1)
        assert len(image.bands()) == 1

    def test_resize_zeroes_bands(self, qapp) -> None:
        image = Image(size=(4, 3), num_bands=1)
        image.set_band(0, np.full((3, 4), 5))
        image.set_width(6)
        assert image.band(0).shape == (3, 6)
        assert image.band(0).sum() == 0

    def test_set_band_shape_check(self, qapp) -> None:
        image = Image(size=(4, 3), num_bands=1)
        with pytest.raises(ValueError):
            image.set_band(0, np.zeros((4, 3)))

    def test_pixel_types(self, qapp) -> None:
        data = np.array([[1.7, 300.0]])
        assert IntImage.from_array(data).band(0).dtype == np.int32
        assert ByteImage.from_array(np.array([[1, 2]], dtype=np.uint8)).band(0).dtype == np.uint8

    def test_from_array_multiband(self, qapp) -> None:
        rgb = np.zeros((5, 7, 3), dtype=np.uint8)
        rgb[..., 2] = 9
        image = Image.from_array(rgb, name="rgb")
        assert image.name() == "rgb"
        assert (image.width(), image.height(), image.num_bands()) == (7, 5, 3)
        assert image.band(2).max() == 9

    def test_statistics(self, ramp_image) -> None:
        stats = ramp_image.statistics(0)
        assert (stats.min, stats.max, stats.mean) == (0.0, 11.0, 5.5)

    def test_statistics_skip_non_finite_samples(self, qapp) -> None:
        data = np.arange(12, dtype=np.float32).reshape(3, 4)
        data[0, 0] = np.nan
        data[2, 3] = np.inf
        stats = Image.from_array(data).statistics(0)
        assert (stats.min, stats.max) == (1.0, 10.0)
        assert stats.mean == pytest.approx(5.5)

    def test_statistics_without_finite_samples(self, qapp) -> None:
        stats = image_statistics(np.full((2, 2), np.nan, dtype=np.float32))
        assert (stats.min, stats.max, stats.mean) == (0.0, 0.0, 0.0)

    def test_histogram_skips_non_finite_samples(self, qapp) -> None:
        band = np.array([[0.0, 1.0, np.nan], [-np.inf, 1.0, np.inf]], dtype=np.float32)
        counts, edges = band_histogram(band, 2)
        assert counts.tolist() == [1, 2]
        assert (edges[0], edges[-1]) == (0.0, 1.0)

    def test_content_layout(self, ramp_image) -> None:
        content = ramp_image.serialize().find("Content")
        assert content.findtext("Width") == "4"
        assert content.findtext("Height") == "3"
        assert content.findtext("Channels") == "1"
        assert content.findtext("Order") == "Row-major"
        assert content.findtext("Encoding") == "Base64"
        assert content.find("Channel").get("ID") == "0"

    def test_xml_roundtrip(self, qapp) -> None:
        source = IntImage.from_array(np.arange(24, dtype=np.int32).reshape(2, 4, 3))
        source.set_units("K")
        source.set_comment("calibrated")
        target = IntImage()
        assert target.deserialize(source.serialize())
        assert target.units() == "K"
        assert target.comment() == "calibrated"
        for i in range(3):
            np.testing.assert_array_equal(target.band(i), source.band(i))

    def test_size_mismatch_fails(self, ramp_image) -> None:
        root = ramp_image.serialize()
        root.find("Content/Width").text = "5"
        assert not Image().deserialize(root)

    def test_wrong_block_size_fails(self, ramp_image) -> None:
        root = ramp_image.serialize()
        root.find("Content/Channel").text = "AAAA"
        assert not Image().deserialize(root)

    def test_zero_size_header_fails(self, qapp) -> None:
        assert not Image().deserialize(Image().serialize())

    def test_copy_data(self, ramp_image) -> None:
        clone = ramp_image.copy()
        assert clone.name() == "ramp"
        np.testing.assert_array_equal(clone.band(0), ramp_image.band(0))
        assert clone.band(0) is not ramp_image.band(0)


# ---------------------------------------------------------------------------
# Polygon lists
# ---------------------------------------------------------------------------


class TestPolygonList:
    def test_csv(self, qapp) -> None:
        polygons = PolygonList2D()
        polygons.add_polygon([(0, 0), (1.5, 2)])
        polygons.add_polygon([(3, 4), (5, 6), (7, 8)])
        lines = polygons.to_csv().splitlines()
        assert lines[0] == "p0_x, p0_y, p1_x, p1_y, ... , pN_x, pN_y"
        assert lines[1] == "0, 0, 1.5, 2"
        assert lines[2] == "3, 4, 5, 6, 7, 8"

        restored = PolygonList2D()
        assert restored.from_csv(polygons.to_csv())
        assert restored.size() == 2
        np.testing.assert_array_equal(restored.polygon(1), [[3, 4], [5, 6], [7, 8]])

    def test_odd_coordinate_count_rejected(self, qapp) -> None:
        polygons = PolygonList2D()
        assert not polygons.from_csv("header\n1, 2, 3\n")

    def test_xml_layout(self, qapp) -> None:
        polygons = PolygonList2D()
        polygons.add_polygon([(0, 0), (1, 2)])
        content = polygons.serialize().find("Content")
        assert content.findtext("Legend") == polygons.csv_header()
        item = content.find("Polygon2D")
        assert item.get("ID") == "0" and item.get("Points") == "2"
        assert item.findall("Point")[1].findtext("y") == "2"

    def test_point_count_mismatch_fails(self, qapp) -> None:
        polygons = PolygonList2D()
        polygons.add_polygon([(0, 0), (1, 2)])
        root = polygons.serialize()
        root.find("Content/Polygon2D").set("Points", "3")
        assert not PolygonList2D().deserialize(root)


class TestWeightedPolygonList:
    def test_weights_track_polygons(self, qapp) -> None:
        polygons = WeightedPolygonList2D()
        polygons.add_polygon([(0, 0), (1, 1)], 0.5)
        polygons.add_polygon([(2, 2), (3, 3)])
        assert polygons.weights() == [0.5, 0.0]
        polygons.set_polygon(1, [(9, 9), (8, 8)])
        assert polygons.weight(1) == 0.0
        polygons.set_polygon(1, [(9, 9), (8, 8)], 4.0)
        assert polygons.weight(1) == 4.0
        polygons.clear()
        assert polygons.size() == 0 and polygons.weights() == []

    def test_csv(self, qapp) -> None:
        polygons = WeightedPolygonList2D()
        polygons.add_polygon([(0, 1), (2, 3)], 2.5)
        text = polygons.to_csv()
        assert text.splitlines()[0].startswith("weight, ")
        assert text.splitlines()[1] == "2.5, 0, 1, 2, 3"
        restored = WeightedPolygonList2D()
        assert restored.from_csv(text)
        assert restored.weights() == [2.5]

    def test_xml_roundtrip(self, qapp) -> None:
        polygons = WeightedPolygonList2D()
        polygons.add_polygon([(0, 1), (2, 3), (4, 5)], -1.25)
        root = polygons.serialize()
        assert root.find("Content/Polygon2D").get("Weight") == "-1.25"
        restored = WeightedPolygonList2D()
        assert restored.deserialize(root)
        assert restored.weights() == [-1.25]
        np.testing.assert_array_equal(restored.polygon(0), polygons.polygon(0))


# ---------------------------------------------------------------------------
# Vector fields
# ---------------------------------------------------------------------------


class TestSparseVectorField:
    def test_vectors(self, qapp) -> None:
        field = SparseVectorField2D()
        field.add_vector((1, 2), (3, 4))
        field.add_vector((0, 0), (0, 1))
        assert len(field) == 2
        assert field.length(0) == 5.0
        assert field.max_length() == 5.0
        field.set_direction(1, (6, 8))
        assert field.max_length() == 10.0

    def test_csv_and_xml(self, qapp) -> None:
        field = SparseVectorField2D()
        field.add_vector((1, 2), (-3, 0.5))
        assert field.to_csv().splitlines() == ["x, y, u, v", "1, 2, -3, 0.5"]

        vector = field.serialize().find("Content/Vector")
        assert [c.tag for c in vector] == ["px", "py", "dx", "dy"]
        restored = SparseVectorField2D()
        assert restored.deserialize(field.serialize())
        assert restored.origin(0) == (1.0, 2.0)
        assert restored.direction(0) == (-3.0, 0.5)

    def test_bad_csv_line(self, qapp) -> None:
        assert not SparseVectorField2D().from_csv("x, y, u, v\n1, 2, 3\n")


class TestDenseVectorField:
    def test_uv_follow_size(self, qapp) -> None:
        field = DenseVectorField2D(size=(3, 2))
        assert field.u().shape == (2, 3)
        with pytest.raises(ValueError):
            field.set_uv(np.zeros((3, 2)), np.zeros((3, 2)))

    def test_vectors_sampling(self, qapp) -> None:
        field = DenseVectorField2D(size=(4, 4))
        u = np.arange(16, dtype=np.float32).reshape(4, 4)
        field.set_uv(u, np.zeros((4, 4)))
        xs, ys, us, vs = field.vectors(2)
        np.testing.assert_array_equal(xs, [0.5, 2.5, 0.5, 2.5])
        np.testing.assert_array_equal(ys, [0.5, 0.5, 2.5, 2.5])
        np.testing.assert_array_equal(us, [0, 2, 8, 10])
        assert field.max_length() == 15.0

    def test_xml_roundtrip(self, qapp) -> None:
        field = DenseVectorField2D(size=(3, 2))
        field.set_uv(np.full((2, 3), 1.5), np.full((2, 3), -2.0))
        content = field.serialize().find("Content")
        assert content.find("U") is not None and content.find("V") is not None
        restored = DenseVectorField2D()
        assert restored.deserialize(field.serialize())
        np.testing.assert_array_equal(restored.u(), field.u())
        np.testing.assert_array_equal(restored.v(), field.v())

    def test_parse_element_tree(self, qapp) -> None:
        field = DenseVectorField2D(size=(1, 1))
        text = ET.tostring(field.serialize(), encoding="unicode")
        assert text.startswith("<DenseVectorField2D>")
