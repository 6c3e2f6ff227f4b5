"""Tests for the fisheye camera model."""

import math

import numpy as np
import pytest

from georender.camera.fisheye_camera import FisheyeCamera
from georender.camera.intrinsics import Intrinsics
from georender.errors import OutsideFieldOfViewError


class TestPinhole:
    def test_project_center(self, pinhole_intrinsics):
        camera = FisheyeCamera((0, 0, 0), pinhole_intrinsics)
        np.testing.assert_allclose(camera.project((0, 0, 10)), [480, 540])

    def test_project_matches_pinhole(self, pinhole_intrinsics):
        camera = FisheyeCamera((0, 0, 0), pinhole_intrinsics)
        np.testing.assert_allclose(camera.project((1, 2, 10)), [530, 640])

    def test_unproject_exact(self, pinhole_intrinsics):
        camera = FisheyeCamera((0, 0, 0), pinhole_intrinsics)
        np.testing.assert_allclose(camera.unproject((530, 640), 10), [1, 2, 10])

    def test_unproject_never_outside_fov(self, pinhole_intrinsics):
        camera = FisheyeCamera((0, 0, 0), pinhole_intrinsics)
        for px in [(0, 0), (960, 1080), (-1e5, 3e5)]:
            assert camera.unproject(px, 1.0)[2] == 1.0


class TestFisheye:
    @pytest.mark.parametrize("point", [(1, 2, 10), (-3, 5, 7), (10, 0, 1), (0.5, -0.5, 100)])
    def test_inverse(self, fisheye_intrinsics, point):
        camera = FisheyeCamera((0, 0, 0), fisheye_intrinsics)
        px = camera.project(point)
        np.testing.assert_allclose(camera.unproject(px, point[2]), point, rtol=1e-9, atol=1e-9)

    def test_outside_fov(self):
        intrinsics = Intrinsics(xi=2.0, focal_length_x_px=100.0, focal_length_y_px=100.0,
                                optical_center_x_px=0.0, optical_center_y_px=0.0,
                                image_width_px=100, image_height_px=100)
        camera = FisheyeCamera((0, 0, 0), intrinsics)
        # arg = 1 - 3 r^2 for xi = 2
        camera.unproject((40, 0), 1.0)
        with pytest.raises(OutsideFieldOfViewError):
            camera.unproject((60, 0), 1.0)

    def test_just_inside_fov_boundary(self):
        intrinsics = Intrinsics(xi=2.0, focal_length_x_px=1.0, focal_length_y_px=1.0,
                                optical_center_x_px=0.0, optical_center_y_px=0.0,
                                image_width_px=1, image_height_px=1)
        camera = FisheyeCamera((0, 0, 0), intrinsics)
        r = math.sqrt(1.0 / 3.0)
        point = camera.unproject((r - 1e-6, 0.0), 1.0)
        assert point[2] == 1.0
        assert np.all(np.isfinite(point))
        with pytest.raises(OutsideFieldOfViewError):
            camera.unproject((r + 1e-6, 0.0), 1.0)

    def test_exactly_on_fov_boundary(self):
        intrinsics = Intrinsics(xi=3.0, focal_length_x_px=1.0, focal_length_y_px=1.0,
                                optical_center_x_px=0.0, optical_center_y_px=0.0,
                                image_width_px=1, image_height_px=1)
        # arg = 1 + r^2 - 9 r^2 is exactly 0 for r^2 = 1/8
        with pytest.raises(OutsideFieldOfViewError):
            FisheyeCamera((0, 0, 0), intrinsics).unproject((0.25, 0.25), 1.0)

    @pytest.mark.parametrize("xi,r", [(1.0, 1.5), (0.9, 1.2), (2.0, 0.57)])
    def test_wide_pixels_inside_fov(self, xi, r):
        intrinsics = Intrinsics(xi=xi, focal_length_x_px=1.0, focal_length_y_px=1.0,
                                optical_center_x_px=0.0, optical_center_y_px=0.0,
                                image_width_px=1, image_height_px=1)
        point = FisheyeCamera((0, 0, 0), intrinsics).unproject((r, 0.0), 2.0)
        assert point[2] == 2.0
        assert point[1] == 0.0

    @pytest.mark.parametrize("point", [(10, 0, -1), (3, 4, -2)])
    def test_inverse_beyond_image_plane(self, fisheye_intrinsics, point):
        camera = FisheyeCamera((0, 0, 0), fisheye_intrinsics)
        px = camera.project(point)
        np.testing.assert_allclose(camera.unproject(px, point[2]), point, rtol=1e-9, atol=1e-9)

    def test_outside_fov_is_value_error(self):
        intrinsics = Intrinsics(xi=2.0, focal_length_x_px=1.0, focal_length_y_px=1.0,
                                optical_center_x_px=0.0, optical_center_y_px=0.0,
                                image_width_px=1, image_height_px=1)
        with pytest.raises(ValueError):
            FisheyeCamera((0, 0, 0), intrinsics).unproject((5, 5), 1.0)


class TestPose:
    def test_nadir_view_matrix(self, pinhole_intrinsics):
        camera = FisheyeCamera((0, 0, 100), pinhole_intrinsics)
        view = np.asarray(camera.view_matrix())
        np.testing.assert_allclose(np.array([0, 0, 0, 1.0]) @ view, [0, 0, -100, 1], atol=1e-9)
        np.testing.assert_allclose(np.array([10, 0, 0, 1.0]) @ view, [-10, 0, -100, 1], atol=1e-9)
        np.testing.assert_allclose(np.array([0, 10, 0, 1.0]) @ view, [0, -10, -100, 1], atol=1e-9)

    def test_set_pose(self, pinhole_intrinsics):
        camera = FisheyeCamera((0, 0, 0), pinhole_intrinsics)
        camera.set_pose((1, 2, 3), (1, 0, 0), (0, 0, 1))
        view = np.asarray(camera.view_matrix())
        # A point in front of the camera ends up on the negative z axis
        np.testing.assert_allclose(np.array([11, 2, 3, 1.0]) @ view, [0, 0, -10, 1], atol=1e-9)

    def test_shader_parameters(self, pinhole_intrinsics):
        params = FisheyeCamera((0, 0, 0), pinhole_intrinsics).shader_parameters()
        assert params["view"].dtype == np.float32
        assert params["view"].shape == (4, 4)
        assert params["xi"] == 0.0
        assert params["focal"] == pytest.approx((1000 / 960, 1000 / 1080))
        assert params["center"] == pytest.approx((0.0, 0.0))
