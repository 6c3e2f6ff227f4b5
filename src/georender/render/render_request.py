from dataclasses import dataclass, field
from typing import Tuple, Union

import numpy as np

from georender.camera.fisheye_camera import NADIR_FORWARD, NADIR_UP
from georender.config.settings import DEFAULT_TILE_SIZE_M
from georender.domain.tile_coordinate import TileCoordinate
from georender.terrain.terrain_tile import TerrainTile

Vec3 = Tuple[float, float, float]


def _vec3(value) -> np.ndarray:
    return np.asarray(value, dtype=np.float64).reshape(3)


@dataclass
class PositionAgl:
    """Camera looking straight down, the z coordinate is the altitude above ground"""
    position_agl: Vec3

    def position(self) -> np.ndarray:
        return _vec3(self.position_agl)

    def tile_coordinate(self, tile_size_m: float = DEFAULT_TILE_SIZE_M) -> TileCoordinate:
        return TileCoordinate.from_world(self.position(), tile_size_m)


@dataclass
class PositionAsl:
    """Camera looking straight down, the z coordinate is the altitude above sea level"""
    position_asl: Vec3

    def position(self) -> np.ndarray:
        return _vec3(self.position_asl)

    def tile_coordinate(self, tile_size_m: float = DEFAULT_TILE_SIZE_M) -> TileCoordinate:
        return TileCoordinate.from_world(self.position(), tile_size_m)


@dataclass
class FacingAsl:
    """Fully specified camera pose, the z coordinate is the altitude above sea level"""
    position_asl: Vec3
    forward: Vec3
    up: Vec3

    def position(self) -> np.ndarray:
        return _vec3(self.position_asl)

    def tile_coordinate(self, tile_size_m: float = DEFAULT_TILE_SIZE_M) -> TileCoordinate:
        return TileCoordinate.from_world(self.position(), tile_size_m)


RequestPose = Union[PositionAgl, PositionAsl, FacingAsl]


@dataclass
class RenderRequest:
    pose: RequestPose
    request_id: int


@dataclass
class NormalizedRenderRequest:
    """
    Render request with both altitudes and the viewing direction resolved
    """
    position_agl: np.ndarray
    position_asl: np.ndarray
    request_id: int
    forward: np.ndarray = field(default_factory=lambda: _vec3(NADIR_FORWARD))
    up: np.ndarray = field(default_factory=lambda: _vec3(NADIR_UP))

    @property
    def agl_m(self) -> float:
        return float(self.position_agl[2])


def normalize_request(request: RenderRequest, ground_tile: TerrainTile) -> NormalizedRenderRequest:
    """
    Fills in all optional fields of a render request
    :param request: request to be normalized
    :param ground_tile: tile containing the camera position, provides the ground altitude
    :return: NormalizedRenderRequest
    """
    pose = request.pose
    if not isinstance(pose, (PositionAgl, PositionAsl, FacingAsl)):
        raise TypeError(f"Unknown camera pose {pose!r}")
    position = pose.position()
    ground_m = ground_tile.sample_altitude(position)

    if isinstance(pose, PositionAgl):
        position_asl = position.copy()
        position_asl[2] = position[2] + ground_m
        return NormalizedRenderRequest(position, position_asl, request.request_id)

    position_agl = position.copy()
    position_agl[2] = position[2] - ground_m
    if isinstance(pose, PositionAsl):
        return NormalizedRenderRequest(position_agl, position, request.request_id)
    return NormalizedRenderRequest(position_agl, position, request.request_id,
                                   forward=_vec3(pose.forward), up=_vec3(pose.up))
