import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

import numpy as np

from georender.camera.fisheye_camera import FisheyeCamera
from georender.config.settings import TerrainSettings
from georender.domain.tile_coordinate import TileCoordinate
from georender.errors import OutsideFieldOfViewError, TileLoadError
from georender.terrain.elevation_source import ElevationSource
from georender.terrain.terrain_tile import TerrainTile

logger = logging.getLogger(__name__)


def estimate_ground_resolution(camera: FisheyeCamera, distance_m: float, agl_m: float,
                               settings: TerrainSettings = TerrainSettings()) -> float:
    """
    Estimates the ground distance covered by one pixel for terrain at a horizontal distance from the camera.
    The point (0, distance_m, agl_m) in the camera frame is projected, moved by one pixel along both image axes
    and unprojected again at the same depth.
    :param camera: camera used for the observation
    :param distance_m: horizontal distance of the terrain
    :param agl_m: altitude of the camera above the terrain
    :param settings: Grid settings, provides the fallback resolution
    :return: resolution in meters per pixel
    """
    if agl_m <= 0:
        logger.warning(f"Unable to estimate resolution at {agl_m}m above ground, "
                       f"using {settings.fallback_resolution_m}m")
        return settings.fallback_resolution_m
    pt1_m = np.array([0.0, distance_m, agl_m])
    pt1_px = camera.project(pt1_m)
    try:
        pt2_m = camera.unproject((pt1_px[0], pt1_px[1] + 1.0), agl_m)
        pt3_m = camera.unproject((pt1_px[0] + 1.0, pt1_px[1]), agl_m)
    except OutsideFieldOfViewError as e:
        logger.warning(f"{e} for terrain at {distance_m}m, using {settings.fallback_resolution_m}m")
        return settings.fallback_resolution_m
    resolution_m = 0.5 * (np.linalg.norm(pt2_m - pt1_m) + np.linalg.norm(pt3_m - pt1_m))
    if not math.isfinite(resolution_m) or resolution_m <= 0:
        logger.warning(f"Invalid resolution estimate {resolution_m} for terrain at {distance_m}m, "
                       f"using {settings.fallback_resolution_m}m")
        return settings.fallback_resolution_m
    return float(resolution_m)


class TerrainStreamer:
    """
    Loads the terrain around a viewpoint. Tiles close to the camera are loaded in a higher
    resolution than tiles far away, the borders of neighbouring tiles are stitched afterwards.
    """

    def __init__(self, source: ElevationSource, settings: TerrainSettings = TerrainSettings()):
        """
        :param source: Source of the elevation rasters
        :param settings: Grid settings
        """
        self.source = source
        self.settings = settings
        self.tiles: Dict[TileCoordinate, TerrainTile] = {}

    def load(self, center: TileCoordinate, agl_m: float, camera: FisheyeCamera,
             view_range_m: float) -> List[TerrainTile]:
        """
        Loads terrain in a circular grid around center. Replaces the previously loaded tiles.
        :param center: coordinates of the central tile
        :param agl_m: altitude of the viewpoint above the terrain
        :param camera: the camera used for the observation
        :param view_range_m: all tiles that are within this radius from any part of the central tile are loaded
        :return: Loaded tiles in ascending coordinate order
        """
        circle = center.circle_within_radius_m(view_range_m, self.settings.tile_size_m)
        logger.info(f"Loading {len(circle)} terrain tiles around {center}")

        resolutions = {}
        for coords in circle:
            distance_m = coords.min_corner_distance_m(center, self.settings.tile_size_m)
            resolutions[coords] = estimate_ground_resolution(camera, distance_m, agl_m, self.settings)

        tiles: Dict[TileCoordinate, TerrainTile] = {}
        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
            futures = {executor.submit(self._load_tile, coords, resolutions[coords]): coords for coords in circle}
            for future in as_completed(futures):
                tile = future.result()
                if tile is not None:
                    tiles[tile.coords] = tile

            if len(tiles) < len(circle):
                logger.warning(f"Loaded {len(tiles)} of {len(circle)} terrain tiles around {center}")
            self._stitch(tiles, executor)

        self.tiles = tiles
        return self.ordered_tiles()

    def _load_tile(self, coords: TileCoordinate, resolution_m: float) -> Optional[TerrainTile]:
        try:
            return TerrainTile.load(coords, resolution_m, self.source, self.settings)
        except TileLoadError as e:
            logger.warning(f"Unable to load square at {coords}: {e}")
            return None

    @staticmethod
    def _stitch(tiles: Dict[TileCoordinate, TerrainTile], executor: ThreadPoolExecutor) -> None:
        """
        Stitches the borders of all loaded tiles.
        The bottom and right borders are computed from the unmodified neighbours and written once all of them are
        known. Top and left borders are then copied tile by tile in ascending coordinate order, so they follow the
        already stitched neighbours and corners shared by four tiles end up with a single altitude.
        A descending sweep would leave the top and left borders reading neighbours that are not stitched yet.
        :param tiles: loaded tiles by coordinate
        :param executor: executor used for the first pass
        :return: None
        """
        ordered = sorted(tiles)

        def bottom_right(coords: TileCoordinate):
            return tiles[coords].compute_borders(
                bottom=tiles.get(coords.below()),
                right=tiles.get(coords.right()),
            )

        new_borders = list(executor.map(bottom_right, ordered))
        for coords, borders in zip(ordered, new_borders):
            tiles[coords].apply_borders(borders)

        for coords in ordered:
            tiles[coords].cleanup_borders(
                top=tiles.get(coords.above()),
                left=tiles.get(coords.left()),
            )

    def ordered_tiles(self) -> List[TerrainTile]:
        return [self.tiles[coords] for coords in sorted(self.tiles)]


class TerrainReloadPolicy:
    """
    Decides when the terrain has to be reloaded for a rising camera. Terrain loaded for an altitude is
    reused until the altitude exceeds reload_factor times that altitude.
    """

    def __init__(self, settings: TerrainSettings = TerrainSettings()):
        self.settings = settings
        self.last_reload_agl_m = settings.initial_reload_altitude_m

    def should_reload(self, agl_m: float) -> bool:
        return agl_m > self.settings.reload_factor * self.last_reload_agl_m

    def record_reload(self, agl_m: float) -> None:
        self.last_reload_agl_m = agl_m

    def update(self, agl_m: float) -> bool:
        """
        Checks whether a reload is required and records it if so
        :param agl_m: altitude of the next request above ground
        :return: True if the terrain has to be reloaded
        """
        if self.should_reload(agl_m):
            self.record_reload(agl_m)
            return True
        return False

    def reset(self) -> None:
        self.last_reload_agl_m = self.settings.initial_reload_altitude_m
