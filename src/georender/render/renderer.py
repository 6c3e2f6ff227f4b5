import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np

from georender.camera.fisheye_camera import FisheyeCamera
from georender.camera.intrinsics import Intrinsics
from georender.config.settings import TerrainSettings
from georender.config.storage_config import StorageConfig
from georender.domain.tile_coordinate import TileCoordinate
from georender.errors import TileLoadError
from georender.render.rasterizer import Rasterizer, RenderedImage
from georender.render.render_request import NormalizedRenderRequest, RenderRequest, normalize_request
from georender.render.tile_model import build_tile_models
from georender.terrain.elevation_source import ElevationSource, GeoTiffElevationSource
from georender.terrain.orthoimage import JpegOrthoimageSource, OrthoimageSource
from georender.terrain.terrain_streamer import TerrainReloadPolicy, TerrainStreamer
from georender.terrain.terrain_tile import TerrainTile

logger = logging.getLogger(__name__)


@dataclass
class RenderedRequest:
    request: NormalizedRenderRequest
    image: RenderedImage

    @property
    def request_id(self) -> int:
        return self.request.request_id


class Renderer:
    """
    Renders images for batches of camera poses. Requests are grouped by the tile below the camera,
    within a group the terrain is only reloaded when the camera rises far enough above the last load.
    """

    def __init__(self, intrinsics: Intrinsics, elevation: ElevationSource, orthoimages: OrthoimageSource,
                 rasterizer: Rasterizer, settings: TerrainSettings = TerrainSettings(), image_max_lod: int = 0):
        """
        :param intrinsics: intrinsics of the camera
        :param elevation: Source of the elevation rasters
        :param orthoimages: Source of the textures
        :param rasterizer: Rasterizer drawing the tile models
        :param settings: Grid settings
        :param image_max_lod: finest orthoimage level that may be used
        """
        self.intrinsics = intrinsics
        self.elevation = elevation
        self.orthoimages = orthoimages
        self.rasterizer = rasterizer
        self.settings = settings
        self.image_max_lod = image_max_lod
        self.streamer = TerrainStreamer(elevation, settings)

    @classmethod
    def from_storage(cls, intrinsics: Intrinsics, storage_config: StorageConfig, rasterizer: Rasterizer,
                     settings: TerrainSettings = TerrainSettings()) -> "Renderer":
        storage_config.validate()
        return cls(intrinsics,
                   GeoTiffElevationSource(storage_config.surface_dir, storage_config.alti_dir),
                   JpegOrthoimageSource(storage_config.image_dir),
                   rasterizer, settings, storage_config.image_max_lod)

    def render_images(self, requests: Sequence[RenderRequest], view_range_m: float) -> List[RenderedRequest]:
        """
        Renders all requests
        :param requests: requests with arbitrary camera poses
        :param view_range_m: radius around the camera tile within which terrain is loaded
        :return: Rendered requests sorted by request id. Requests above tiles without elevation data are missing
        """
        groups: Dict[TileCoordinate, List[RenderRequest]] = {}
        for request in requests:
            groups.setdefault(request.pose.tile_coordinate(self.settings.tile_size_m), []).append(request)

        rendered = []
        for coords in sorted(groups):
            rendered.extend(self._render_group(coords, groups[coords], view_range_m))
        rendered.sort(key=lambda r: r.request_id)
        return rendered

    def _render_group(self, coords: TileCoordinate, requests: List[RenderRequest],
                      view_range_m: float) -> List[RenderedRequest]:
        try:
            ground_tile = TerrainTile.load(coords, self.settings.ground_resolution_m, self.elevation, self.settings)
        except TileLoadError as e:
            logger.warning(f"Skipping {len(requests)} requests above {coords}: {e}")
            return []

        normalized = sorted((normalize_request(r, ground_tile) for r in requests), key=lambda r: r.agl_m)
        origin = coords.to_world_origin(self.settings.tile_size_m)
        policy = TerrainReloadPolicy(self.settings)
        camera = FisheyeCamera(origin, self.intrinsics)

        rendered = []
        for request in normalized:
            camera.set_pose(request.position_asl, request.forward, request.up)
            if policy.update(request.agl_m):
                tiles = self.streamer.load(coords, request.agl_m, camera, view_range_m)
                models = build_tile_models(tiles, self.orthoimages, self.settings, origin, self.image_max_lod)
                self.rasterizer.prepare(models)
            logger.info(f"Rendering image {request.request_id} at {np.round(request.position_asl, 2).tolist()} "
                        f"agl: {request.agl_m:.1f}/{policy.last_reload_agl_m:.1f}m")
            rendered.append(RenderedRequest(request, self.rasterizer.render(camera, origin)))
        return rendered
