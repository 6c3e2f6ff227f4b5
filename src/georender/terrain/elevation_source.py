import abc
import logging
from pathlib import Path
from typing import Dict, Mapping, Union

import numpy as np
import numpy.typing as npt
import rasterio
from rasterio.enums import Resampling
from rasterio.errors import RasterioError

from georender.domain.tile_coordinate import TileCoordinate
from georender.errors import TileFormatError, TileLoadError, TileNotFoundError

logger = logging.getLogger(__name__)


class ElevationSource(abc.ABC):
    """
    Source of square elevation rasters, one per tile. Rasters are returned with row 0 at the
    northern (highest y) edge of the tile.
    """

    @abc.abstractmethod
    def native_width(self, coords: TileCoordinate) -> int:
        """
        :param coords: tile to be queried
        :return: Width of the full resolution raster in pixels
        """
        pass

    @abc.abstractmethod
    def read(self, coords: TileCoordinate, lod: int) -> npt.NDArray[np.float32]:
        """
        Reads the raster decimated by 2^lod
        :param coords: tile to be read
        :param lod: power of two decimation level
        :return: float32 heights in meters
        """
        pass


class GeoTiffElevationSource(ElevationSource):
    """
    Reads swissSURFACE3D / swissALTI3D GeoTIFFs named {x}-{y}.tif. The surface model is preferred,
    the terrain model is used where no surface model tile exists.
    """

    def __init__(self, surface_dir: Union[str, Path], alti_dir: Union[str, Path]):
        self.surface_dir = Path(surface_dir)
        self.alti_dir = Path(alti_dir)

    def path(self, coords: TileCoordinate) -> Path:
        """
        :param coords: tile for which the path should be found
        :return: Path of the raster file
        """
        filename = f"{coords.x}-{coords.y}.tif"
        path = self.surface_dir / filename
        if not path.exists():
            path = self.alti_dir / filename
        if not path.exists():
            raise TileNotFoundError(coords, f"no elevation raster {filename}")
        return path

    def native_width(self, coords: TileCoordinate) -> int:
        path = self.path(coords)
        try:
            with rasterio.open(path) as src:
                return src.width
        except RasterioError as e:
            raise TileLoadError(coords, str(e)) from e

    def read(self, coords: TileCoordinate, lod: int) -> npt.NDArray[np.float32]:
        path = self.path(coords)
        try:
            with rasterio.open(path) as src:
                if src.dtypes[0] != "float32":
                    raise TileFormatError(coords, f"elevation data not float32 but {src.dtypes[0]}")
                # GDAL serves the decimated read from the raster's overviews where present
                out_shape = (max(1, src.height >> lod), max(1, src.width >> lod))
                pixels = src.read(1, out_shape=out_shape, resampling=Resampling.average)
        except RasterioError as e:
            raise TileLoadError(coords, str(e)) from e
        logger.debug(f"Read elevation {path} at LOD {lod} ({out_shape[1]}x{out_shape[0]})")
        return pixels.astype(np.float32, copy=False)


class InMemoryElevationSource(ElevationSource):
    """
    Elevation source backed by numpy arrays, decimated by striding. Used for synthetic scenes.
    """

    def __init__(self, rasters: Mapping[TileCoordinate, npt.NDArray] = None):
        self.rasters: Dict[TileCoordinate, npt.NDArray] = dict(rasters or {})

    def add(self, coords: TileCoordinate, raster: npt.NDArray) -> None:
        self.rasters[coords] = raster

    def _raster(self, coords: TileCoordinate) -> npt.NDArray:
        raster = self.rasters.get(coords)
        if raster is None:
            raise TileNotFoundError(coords, "no elevation raster")
        return raster

    def native_width(self, coords: TileCoordinate) -> int:
        return self._raster(coords).shape[1]

    def read(self, coords: TileCoordinate, lod: int) -> npt.NDArray[np.float32]:
        raster = self._raster(coords)
        if raster.dtype != np.float32:
            raise TileFormatError(coords, f"elevation data not float32 but {raster.dtype}")
        step = 1 << lod
        return np.ascontiguousarray(raster[::step, ::step])
