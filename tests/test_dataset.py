"""Tests for chunk sampling, pose csv parsing and dataset output."""

import json

import cv2
import numpy as np
import pytest

from georender.dataset.chunk_sampler import chunk_camera_positions, chunk_render_requests
from georender.dataset.dataset_writer import DatasetWriter
from georender.dataset.pose_csv_reader import POSE_COLUMNS, read_pose_csv
from georender.domain.tile_coordinate import TileCoordinate
from georender.errors import ConfigurationError
from georender.render.rasterizer import RenderedImage
from georender.render.render_request import FacingAsl, NormalizedRenderRequest, PositionAgl
from georender.render.renderer import RenderedRequest


def _write_csv(path, rows, columns=POSE_COLUMNS):
    lines = [",".join(columns)] + [",".join(str(v) for v in row) for row in rows]
    path.write_text("\n".join(lines) + "\n")


class TestChunkSampler:
    def test_positions(self):
        positions = chunk_camera_positions(TileCoordinate(2600, 1200))
        assert len(positions) == 36 + 9 + 4 + 4 + 1
        assert positions[0] == pytest.approx((2600083.333, 1200083.333, 300.0), abs=1e-3)
        assert positions[-1] == (2600500.0, 1200500.0, 2000.0)
        assert sorted({p[2] for p in positions}) == [300.0, 550.0, 800.0, 1200.0, 2000.0]

    def test_positions_within_chunk(self):
        for x, y, _ in chunk_camera_positions(TileCoordinate(3, -2)):
            assert TileCoordinate.from_world((x, y)) == TileCoordinate(3, -2)

    def test_requests(self):
        requests = chunk_render_requests(TileCoordinate(0, 0), altitudes_m=[1000])
        assert [r.request_id for r in requests] == [0, 1, 2, 3]
        assert all(isinstance(r.pose, PositionAgl) for r in requests)
        assert requests[1].pose.position_agl == (250.0, 750.0, 1000.0)


class TestPoseCsvReader:
    def test_read(self, tmp_path):
        path = tmp_path / "poses.csv"
        _write_csv(path, [
            [2600500, 1200500, 1500, 0, 0, -1, 0, -1, 0],
            [2601000.5, 1200000, 900, 1, 0, 0, 0, 0, 1],
        ])
        requests = read_pose_csv(path)

        assert [r.request_id for r in requests] == [0, 1]
        pose = requests[1].pose
        assert isinstance(pose, FacingAsl)
        assert pose.position_asl == (2601000.5, 1200000.0, 900.0)
        assert pose.forward == (1.0, 0.0, 0.0)
        assert pose.up == (0.0, 0.0, 1.0)

    def test_missing_column(self, tmp_path):
        path = tmp_path / "poses.csv"
        _write_csv(path, [[1, 2, 3, 4, 5, 6, 7, 8]], POSE_COLUMNS[:-1])
        with pytest.raises(ConfigurationError):
            read_pose_csv(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "poses.csv"
        _write_csv(path, [[2600500, "abc", 1500, 0, 0, -1, 0, -1, 0]])
        with pytest.raises(ConfigurationError):
            read_pose_csv(path)

    def test_lv95_input_is_unchanged(self, tmp_path):
        path = tmp_path / "poses.csv"
        _write_csv(path, [[2600500, 1200500, 1500, 0, 0, -1, 0, -1, 0]])
        pose = read_pose_csv(path, input_crs="EPSG:2056")[0].pose
        assert pose.position_asl == pytest.approx((2600500.0, 1200500.0, 1500.0))

    def test_wgs84_input(self, tmp_path):
        path = tmp_path / "poses.csv"
        # LV95 origin in Bern
        _write_csv(path, [[7.438632, 46.951083, 1500, 0, 0, -1, 0, -1, 0]])
        pose = read_pose_csv(path, input_crs="EPSG:4326")[0].pose
        assert pose.position_asl[0] == pytest.approx(2600000.0, abs=10.0)
        assert pose.position_asl[1] == pytest.approx(1200000.0, abs=10.0)
        assert pose.forward == (0.0, 0.0, -1.0)


class TestDatasetWriter:
    @pytest.fixture
    def rendered(self):
        request = NormalizedRenderRequest(
            position_agl=np.array([2600500.0, 1200500.0, 300.0]),
            position_asl=np.array([2600500.0, 1200500.0, 800.0]),
            request_id=4,
            forward=np.array([0.0, 0.0, -1.0]),
            up=np.array([0.0, -1.0, 0.0]),
        )
        rgba = np.zeros((6, 8, 4), dtype=np.uint8)
        rgba[..., 0] = 255
        rgba[..., 3] = 255
        depth = np.arange(48, dtype=np.float32).reshape(6, 8)
        return RenderedRequest(request, RenderedImage(rgba, depth))

    def test_write(self, tmp_path, rendered, pinhole_intrinsics):
        writer = DatasetWriter(tmp_path / "out", pinhole_intrinsics)
        assert not writer.exists()
        writer.add([rendered])
        path = writer.finish()
        assert writer.exists()

        png = cv2.imread(str(tmp_path / "out" / "image_4.png"), cv2.IMREAD_UNCHANGED)
        assert png.shape == (6, 8, 4)
        # stored as BGRA
        assert png[0, 0, 2] == 255 and png[0, 0, 0] == 0
        depth = np.fromfile(tmp_path / "out" / "image_4.bin", dtype=np.float32).reshape(6, 8)
        np.testing.assert_array_equal(depth, rendered.image.depth)

        with open(path) as f:
            dataset = json.load(f)
        assert dataset["intrinsics"] == pinhole_intrinsics.to_dict()
        entry = dataset["images"][0]
        assert entry["rgb_image_path"] == "image_4.png"
        assert entry["depth_image_path"] == "image_4.bin"
        assert entry["camera_pos_lv95"] == {"easting_m": 2600500.0, "northing_m": 1200500.0, "altitude_m": 800.0}
        assert entry["camera_forward"] == [0.0, 0.0, -1.0]
        assert entry["camera_up"] == [0.0, -1.0, 0.0]

    def test_custom_name(self, tmp_path, rendered, pinhole_intrinsics):
        entry = DatasetWriter(tmp_path, pinhole_intrinsics).write_image(rendered, "frame")
        assert entry["rgb_image_path"] == "frame.png"
        assert (tmp_path / "frame.bin").exists()
