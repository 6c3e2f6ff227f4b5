import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import trimesh

from georender.config.settings import TerrainSettings
from georender.domain.tile_coordinate import TileCoordinate
from georender.errors import TileLoadError
from georender.terrain.orthoimage import OrthoimageSource, TileTexture, load_tile_texture
from georender.terrain.terrain_tile import TerrainTile

logger = logging.getLogger(__name__)


@dataclass
class TileModel:
    """
    Textured mesh of one terrain tile, ready to be uploaded to a rasterizer
    """
    coords: TileCoordinate
    mesh: trimesh.Trimesh
    texture: TileTexture


def build_tile_model(tile: TerrainTile, orthoimages: OrthoimageSource, settings: TerrainSettings = TerrainSettings(),
                     origin: Optional[Sequence[float]] = None, image_max_lod: int = 0) -> TileModel:
    """
    Builds the textured mesh of a tile
    :param tile: stitched terrain tile
    :param orthoimages: Source of the textures
    :param settings: Grid settings
    :param origin: World position subtracted from all vertices
    :param image_max_lod: finest orthoimage level that may be used
    :return: TileModel
    """
    texture = load_tile_texture(tile.coords, tile.resolution, orthoimages, settings, image_max_lod)
    return TileModel(tile.coords, tile.mesh(origin), texture)


def build_tile_models(tiles: Sequence[TerrainTile], orthoimages: OrthoimageSource,
                      settings: TerrainSettings = TerrainSettings(), origin: Optional[Sequence[float]] = None,
                      image_max_lod: int = 0) -> List[TileModel]:
    """
    Builds the models of all tiles, tiles without texture are left out
    :return: List of TileModel
    """
    models = []
    for tile in tiles:
        try:
            models.append(build_tile_model(tile, orthoimages, settings, origin, image_max_lod))
        except TileLoadError as e:
            logger.warning(f"Unable to load square texture at {tile.coords}: {e}")
    return models
