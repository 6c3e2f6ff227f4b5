"""
Unified spherical camera model

Points are given in the camera frame: x to the right, y downwards (image rows) and z along the
viewing direction. A point is projected onto the unit sphere, shifted by xi along the optical
axis and then projected like a pinhole camera. xi = 0 is a pinhole camera.
"""
import math
from typing import Dict, Sequence

import numpy as np
from pyrr import Matrix44, Vector3

from georender.camera.intrinsics import Intrinsics
from georender.errors import OutsideFieldOfViewError

NADIR_FORWARD = (0.0, 0.0, -1.0)
NADIR_UP = (0.0, -1.0, 0.0)


class FisheyeCamera:
    """
    Camera pose together with the intrinsics of the fisheye lens
    """

    def __init__(self, position: Sequence[float], intrinsics: Intrinsics,
                 forward: Sequence[float] = NADIR_FORWARD, up: Sequence[float] = NADIR_UP):
        """
        :param position: world position of the camera
        :param intrinsics: Intrinsics of the lens, shared between cameras
        :param forward: viewing direction, defaults to straight down
        :param up: up direction of the image
        """
        self.position = Vector3(position, dtype=np.float64)
        self.forward = Vector3(forward, dtype=np.float64)
        self.up = Vector3(up, dtype=np.float64)
        self.intrinsics = intrinsics

    def set_pose(self, position: Sequence[float], forward: Sequence[float], up: Sequence[float]) -> None:
        self.position = Vector3(position, dtype=np.float64)
        self.forward = Vector3(forward, dtype=np.float64)
        self.up = Vector3(up, dtype=np.float64)

    def view_matrix(self) -> Matrix44:
        """
        Right handed look-at matrix from the camera position towards position + forward.
        pyrr matrices are applied to row vectors: view_point = point @ view_matrix
        :return: 4x4 view matrix
        """
        return Matrix44.look_at(self.position, self.position + self.forward, self.up)

    def project(self, point_m: Sequence[float]) -> np.ndarray:
        """
        Project a point in the camera frame (positive z) into pixel coordinates
        :param point_m: point in camera frame
        :return: pixel coordinates (x, y)
        """
        x, y, z = (float(v) for v in point_m)
        intr = self.intrinsics
        norm = z + intr.xi * math.sqrt(x * x + y * y + z * z)
        return np.array([
            intr.focal_length_x_px * x / norm + intr.optical_center_x_px,
            intr.focal_length_y_px * y / norm + intr.optical_center_y_px,
        ])

    def unproject(self, point_px: Sequence[float], depth_m: float) -> np.ndarray:
        """
        Project a pixel back into the camera frame
        :param point_px: pixel coordinates (x, y)
        :param depth_m: depth along the camera's z-axis (not the euclidean distance)
        :return: point in camera frame
        """
        intr = self.intrinsics
        x = (float(point_px[0]) - intr.optical_center_x_px) / intr.focal_length_x_px
        y = (float(point_px[1]) - intr.optical_center_y_px) / intr.focal_length_y_px

        norm2 = x * x + y * y
        xi2 = intr.xi * intr.xi
        arg = 1.0 + norm2 - norm2 * xi2
        if arg <= 0.0:
            raise OutsideFieldOfViewError(tuple(point_px))
        a = intr.xi + math.sqrt(arg)
        # Rays beyond 90 degrees get a negative scale, a zero denominator gives inf
        with np.errstate(divide="ignore", invalid="ignore"):
            s = np.float64(a) / np.float64(a - intr.xi * (norm2 + 1.0))
            return depth_m * np.array([s * x, s * y, 1.0])

    def shader_parameters(self) -> Dict[str, object]:
        """
        Camera parameters for the vertex shader. Focal lengths and optical center are changed from
        [0, w] x [0, h] pixels to [-1, 1] x [-1, 1] normalized device coordinates.
        :return: dict with view matrix, xi, focal and center
        """
        intr = self.intrinsics
        return {
            "view": np.asarray(self.view_matrix(), dtype=np.float32),
            "xi": intr.xi,
            "focal": (
                2.0 * intr.focal_length_x_px / intr.image_width_px,
                2.0 * intr.focal_length_y_px / intr.image_height_px,
            ),
            "center": (
                2.0 * intr.optical_center_x_px / intr.image_width_px - 1.0,
                2.0 * intr.optical_center_y_px / intr.image_height_px - 1.0,
            ),
        }
