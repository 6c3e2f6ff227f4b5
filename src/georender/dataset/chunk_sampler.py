from typing import Iterable, List

from georender.config.settings import DEFAULT_TILE_SIZE_M
from georender.domain.tile_coordinate import TileCoordinate
from georender.render.render_request import PositionAgl, RenderRequest

DEFAULT_ALTITUDES_M = (300, 550, 800, 1200, 2000)
# Horizontal spacing of the images is roughly this distance divided by the altitude
COVERAGE_DISTANCE_M = 1500


def chunk_camera_positions(chunk: TileCoordinate, altitudes_m: Iterable[int] = DEFAULT_ALTITUDES_M,
                           tile_size_m: float = DEFAULT_TILE_SIZE_M) -> List[tuple]:
    """
    Camera positions covering a chunk on a regular grid per altitude. Lower altitudes use denser grids.
    :param chunk: chunk to be covered
    :param altitudes_m: altitudes above ground
    :param tile_size_m: edge length of a chunk in meters
    :return: List of (x, y, agl) positions
    """
    origin = chunk.to_world_origin(tile_size_m)
    positions = []
    for agl_m in altitudes_m:
        resolution = COVERAGE_DISTANCE_M // agl_m + 1
        step_m = tile_size_m / resolution
        offset_m = step_m / 2.0
        for x_step in range(resolution):
            for y_step in range(resolution):
                positions.append((
                    float(origin[0] + step_m * x_step + offset_m),
                    float(origin[1] + step_m * y_step + offset_m),
                    float(agl_m),
                ))
    return positions


def chunk_render_requests(chunk: TileCoordinate, altitudes_m: Iterable[int] = DEFAULT_ALTITUDES_M,
                          tile_size_m: float = DEFAULT_TILE_SIZE_M) -> List[RenderRequest]:
    positions = chunk_camera_positions(chunk, altitudes_m, tile_size_m)
    return [RenderRequest(PositionAgl(position), request_id) for request_id, position in enumerate(positions)]
