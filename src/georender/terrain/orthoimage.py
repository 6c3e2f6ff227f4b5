import abc
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Union

import cv2
import numpy as np
import numpy.typing as npt

from georender.config.settings import TerrainSettings
from georender.domain.tile_coordinate import TileCoordinate
from georender.errors import TileFormatError, TileNotFoundError
from georender.terrain.terrain_tile import calc_lod

logger = logging.getLogger(__name__)

# Number of mip levels uploaded per texture at most
MAX_MIP_LEVELS = 5


class OrthoimageSource(abc.ABC):
    """
    Source of square RGB orthoimages, one per tile and LOD. Row 0 is the northern edge.
    """

    @abc.abstractmethod
    def read(self, coords: TileCoordinate, lod: int) -> npt.NDArray[np.uint8]:
        """
        :param coords: tile to be read
        :param lod: level of the image pyramid
        :return: H x W x 3 RGB image
        """
        pass


class JpegOrthoimageSource(OrthoimageSource):
    """
    Reads SWISSIMAGE jpegs named {x}-{y}_lod{lod}.jpg
    """

    def __init__(self, image_dir: Union[str, Path]):
        self.image_dir = Path(image_dir)

    def path(self, coords: TileCoordinate, lod: int) -> Path:
        return self.image_dir / f"{coords.x}-{coords.y}_lod{lod}.jpg"

    def read(self, coords: TileCoordinate, lod: int) -> npt.NDArray[np.uint8]:
        path = self.path(coords, lod)
        if not path.exists():
            raise TileNotFoundError(coords, f"no orthoimage {path.name}")
        img = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if img is None:
            raise TileFormatError(coords, f"unable to decode {path.name}")
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


class InMemoryOrthoimageSource(OrthoimageSource):
    """
    Orthoimages backed by numpy arrays. Levels that were not added are derived from LOD 0.
    """

    def __init__(self, images: Mapping[TileCoordinate, npt.NDArray] = None):
        self.images: Dict[TileCoordinate, npt.NDArray] = dict(images or {})

    def add(self, coords: TileCoordinate, image: npt.NDArray) -> None:
        self.images[coords] = image

    def read(self, coords: TileCoordinate, lod: int) -> npt.NDArray[np.uint8]:
        image = self.images.get(coords)
        if image is None:
            raise TileNotFoundError(coords, "no orthoimage")
        if image.dtype != np.uint8 or image.ndim != 3 or image.shape[2] != 3:
            raise TileFormatError(coords, f"orthoimage must be uint8 RGB, got {image.dtype} {image.shape}")
        width = max(1, image.shape[1] >> lod)
        if width == image.shape[1]:
            return image
        return cv2.resize(image, (width, width), interpolation=cv2.INTER_AREA)


@dataclass
class TileTexture:
    image: npt.NDArray[np.uint8]
    lod: int
    # Number of mip levels to be generated for the image
    mip_levels: int


def finest_texture_width(settings: TerrainSettings, image_max_lod: int) -> int:
    return settings.orthoimage_resolution_px // (1 << image_max_lod)


def select_texture_lod(tile_resolution: int, settings: TerrainSettings = TerrainSettings(),
                       image_max_lod: int = 0) -> (int, int):
    """
    Finds the orthoimage level matching the vertex resolution of a tile
    :param tile_resolution: requested number of vertices along a tile edge
    :param settings: Grid settings
    :param image_max_lod: finest orthoimage level that may be used
    :return: target texture width in pixels and the orthoimage LOD
    """
    resolution = min(tile_resolution, finest_texture_width(settings, image_max_lod))
    lod = calc_lod(settings.orthoimage_resolution_px, resolution)
    lod = min(max(lod, image_max_lod), settings.orthoimage_max_lod)
    return resolution, lod


def load_tile_texture(coords: TileCoordinate, tile_resolution: int, source: OrthoimageSource,
                      settings: TerrainSettings = TerrainSettings(), image_max_lod: int = 0) -> TileTexture:
    """
    Loads the orthoimage of a tile prepared for texturing
    :param coords: tile to be textured
    :param tile_resolution: requested number of vertices along a tile edge
    :param source: Source of the orthoimages
    :param settings: Grid settings
    :param image_max_lod: finest orthoimage level that may be used
    :return: TileTexture
    """
    resolution, lod = select_texture_lod(tile_resolution, settings, image_max_lod)
    img = source.read(coords, lod)
    width = img.shape[1]
    mip_levels = int(math.floor(math.log2(max(width / resolution, 1.0)))) + 1

    finest_width = finest_texture_width(settings, image_max_lod)
    if width > finest_width:
        # Remove detail finer than the allowed orthoimage level but keep the image size
        img = cv2.resize(img, (finest_width, finest_width), interpolation=cv2.INTER_LANCZOS4)
        img = cv2.resize(img, (width, width), interpolation=cv2.INTER_LANCZOS4)
    if mip_levels == 1 and resolution < settings.orthoimage_resolution_px:
        # If there's only one LOD, downscale the image to the required resolution
        img = cv2.resize(img, (resolution, resolution), interpolation=cv2.INTER_LANCZOS4)

    logger.debug(f"Loading texture for {coords} at LOD {lod} ({img.shape[1]}x{img.shape[0]}) "
                 f"target {resolution} mip levels {mip_levels}")
    return TileTexture(np.ascontiguousarray(img), lod, min(mip_levels, MAX_MIP_LEVELS))
