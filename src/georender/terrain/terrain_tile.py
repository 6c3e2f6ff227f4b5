import logging
import math
from enum import Enum
from typing import Dict, Optional, Sequence, Union

import cv2
import numpy as np
import numpy.typing as npt
import trimesh
from trimesh.visual import TextureVisuals

from georender.config.settings import TerrainSettings
from georender.domain.tile_coordinate import TileCoordinate
from georender.terrain.elevation_source import ElevationSource

logger = logging.getLogger(__name__)


class Border(Enum):
    Bottom = 0
    Right = 1
    Top = 2
    Left = 3


def calc_lod(image_resolution: int, target_resolution: int) -> int:
    """
    Given an image resolution, calculate the coarsest power of 2 LOD that still satisfies the target resolution.
    E.g. with image_resolution = 1024 and target_resolution = 256, calc_lod returns 2
    :param image_resolution: width of the full resolution image
    :param target_resolution: required width
    :return: LOD
    """
    ratio = image_resolution // target_resolution
    if ratio < 1:
        return 0
    return max(int(math.floor(math.log2(ratio))), 0)


def next_power_of_two(value: int) -> int:
    if value <= 1:
        return 1
    return 1 << (value - 1).bit_length()


class TerrainTile:
    """
    A terrain tile of tile_size_m x tile_size_m in a given resolution.
    The elevation grid is indexed [x, y] with y growing northward and holds one more
    vertex than cells along every axis.
    """

    def __init__(self, coords: TileCoordinate, elevation: npt.NDArray, resolution: Optional[int] = None,
                 settings: TerrainSettings = TerrainSettings()):
        """
        :param coords: Coordinates of the tile
        :param elevation: Square (m + 1) x (m + 1) grid with the altitude of every vertex in meters
        :param resolution: Requested vertex resolution before clamping, used to pick the texture LOD
        :param settings: Grid settings
        """
        elevation = np.asarray(elevation, dtype=np.float32)
        if elevation.ndim != 2 or elevation.shape[0] != elevation.shape[1] or elevation.shape[0] < 2:
            raise ValueError(f"Elevation grid must be square with at least 2x2 vertices, got {elevation.shape}")
        self.coords = coords
        self.elevation = elevation
        self.settings = settings
        self.resolution = resolution if resolution is not None else self.mesh_resolution

    @classmethod
    def load(cls, coords: TileCoordinate, resolution_m: float, source: ElevationSource,
             settings: TerrainSettings = TerrainSettings()) -> "TerrainTile":
        """
        Loads the elevation of a tile with roughly the given ground resolution
        :param coords: tile to be loaded
        :param resolution_m: desired distance between two mesh vertices in meters
        :param source: Source of the elevation rasters
        :param settings: Grid settings
        :return: TerrainTile
        """
        if not resolution_m > 0:
            raise ValueError(f"Invalid resolution {resolution_m}")
        resolution = max(int(math.ceil(settings.tile_size_m / resolution_m)), 2)
        mesh_resolution = min(max(resolution, settings.mesh_min_resolution), settings.mesh_max_resolution)
        logger.debug(f"Loading tile {coords} at resolution {resolution_m}m -> {resolution}")

        native_width = source.native_width(coords)
        lod = calc_lod(native_width, mesh_resolution)
        # Make sure meshes are similar resolutions to allow good matching with neighboring tiles
        mesh_resolution = next_power_of_two(native_width >> lod)
        logger.debug(f"Mesh is {mesh_resolution}x{mesh_resolution}")

        read_lod = min(lod, settings.elevation_max_lod)
        pixels = source.read(coords, read_lod)
        height, width = pixels.shape
        logger.debug(f"Loading elevation for {coords} at LOD {read_lod} ({width}x{height})")
        if width != mesh_resolution or height != mesh_resolution:
            pixels = cv2.resize(pixels, (mesh_resolution, mesh_resolution), interpolation=cv2.INTER_AREA)
            logger.debug(f"Resized elevation to {mesh_resolution}x{mesh_resolution}")

        m = mesh_resolution
        elevation = np.empty((m + 1, m + 1), dtype=np.float32)
        # raster row 0 is the northern edge
        elevation[:m, :m] = pixels[::-1, :].T
        # Fill bottom row and rightmost column, overwritten by stitching where neighbours exist
        elevation[:m, m] = elevation[:m, m - 1]
        elevation[m, :] = elevation[m - 1, :]
        return cls(coords, elevation, resolution, settings)

    @property
    def mesh_resolution(self) -> int:
        """
        :return: Number of cells along one edge of the tile
        """
        return self.elevation.shape[0] - 1

    @property
    def origin(self) -> np.ndarray:
        return self.coords.to_world_origin(self.settings.tile_size_m)

    def sample_altitudes(self, xs: Union[float, npt.ArrayLike], ys: Union[float, npt.ArrayLike]) -> np.ndarray:
        """
        Bilinearly interpolated sampling of the altitude mesh. Positions outside the tile are clamped to its border.
        :param xs: world x coordinates
        :param ys: world y coordinates
        :return: altitudes in meters
        """
        m = self.mesh_resolution
        size = self.settings.tile_size_m
        origin = self.origin
        idx_x = np.clip(m * (np.asarray(xs, dtype=np.float64) - origin[0]) / size, 0.0, m)
        idx_y = np.clip(m * (np.asarray(ys, dtype=np.float64) - origin[1]) / size, 0.0, m)

        left = np.floor(idx_x).astype(np.int64)
        right = left + 1
        left_fac = right - idx_x
        right_fac = idx_x - left
        bottom = np.floor(idx_y).astype(np.int64)
        top = bottom + 1
        bottom_fac = top - idx_y
        top_fac = idx_y - bottom
        right = np.minimum(right, m)
        top = np.minimum(top, m)

        elevation = self.elevation
        left_val = elevation[left, top] * top_fac + elevation[left, bottom] * bottom_fac
        right_val = elevation[right, top] * top_fac + elevation[right, bottom] * bottom_fac
        return left_val * left_fac + right_val * right_fac

    def sample_altitude(self, point: Sequence[float]) -> float:
        """
        Bilinearly interpolated altitude at a world position
        :param point: world position, only x and y are used
        :return: altitude in meters
        """
        return float(self.sample_altitudes(point[0], point[1]))

    def border_positions(self, border: Border) -> (np.ndarray, np.ndarray):
        """
        :param border: border of the tile
        :return: world x and y coordinates of all vertices on the border
        """
        m = self.mesh_resolution
        size = self.settings.tile_size_m
        origin = self.origin
        steps = np.arange(m + 1, dtype=np.float64) / m * size
        if border == Border.Bottom:
            return origin[0] + steps, np.full(m + 1, origin[1] + size)
        elif border == Border.Right:
            return np.full(m + 1, origin[0] + size), origin[1] + steps
        elif border == Border.Top:
            return origin[0] + steps, np.full(m + 1, origin[1])
        return np.full(m + 1, origin[0]), origin[1] + steps

    def compute_borders(self, bottom: Optional["TerrainTile"] = None, right: Optional["TerrainTile"] = None,
                        top: Optional["TerrainTile"] = None,
                        left: Optional["TerrainTile"] = None) -> Dict[Border, np.ndarray]:
        """
        Computes the border values matching the given neighbours without modifying any tile
        :return: new altitudes per border
        """
        borders = {}
        for border, neighbour in [(Border.Bottom, bottom), (Border.Right, right), (Border.Top, top), (Border.Left, left)]:
            if neighbour is None:
                continue
            xs, ys = self.border_positions(border)
            borders[border] = neighbour.sample_altitudes(xs, ys)
        return borders

    def apply_borders(self, borders: Dict[Border, np.ndarray]) -> None:
        """
        Writes border values in the order bottom, right, top, left
        :param borders: altitudes per border as returned by compute_borders
        :return: None
        """
        m = self.mesh_resolution
        for border in Border:
            values = borders.get(border)
            if values is None:
                continue
            if border == Border.Bottom:
                self.elevation[:, m] = values
            elif border == Border.Right:
                self.elevation[m, :] = values
            elif border == Border.Top:
                self.elevation[:, 0] = values
            else:
                self.elevation[0, :] = values

    def cleanup_borders(self, bottom: Optional["TerrainTile"] = None, right: Optional["TerrainTile"] = None,
                        top: Optional["TerrainTile"] = None, left: Optional["TerrainTile"] = None) -> None:
        """
        Fill in the border of the elevation grid to match with neighbouring tiles.
        Every border vertex takes the altitude the neighbour reports at its position.
        """
        self.apply_borders(self.compute_borders(bottom, right, top, left))

    def mesh(self, origin: Optional[Sequence[float]] = None) -> trimesh.Trimesh:
        """
        Creates a textured triangle mesh of the tile, two triangles per cell
        :param origin: World position subtracted from all vertices (keeps float32 precision for large coordinates)
        :return: Trimesh with uv coordinates
        """
        m = self.mesh_resolution
        size = self.settings.tile_size_m
        tile_origin = self.origin
        if origin is not None:
            tile_origin = tile_origin - np.asarray(origin, dtype=np.float64)

        steps = np.arange(m + 1, dtype=np.float64)
        grid_x, grid_y = np.meshgrid(steps, steps, indexing="ij")
        vertices = np.column_stack([
            tile_origin[0] + grid_x.ravel() * size / m,
            tile_origin[1] + grid_y.ravel() * size / m,
            tile_origin[2] + self.elevation.ravel(),
        ])
        uv = np.column_stack([grid_x.ravel() / m, 1.0 - grid_y.ravel() / m])

        cell_x, cell_y = np.meshgrid(np.arange(m), np.arange(m), indexing="ij")
        v0 = (cell_x * (m + 1) + cell_y).ravel()
        v1 = v0 + 1
        v2 = v0 + m + 1
        v3 = v2 + 1
        faces = np.concatenate([
            np.column_stack([v2, v1, v0]),
            np.column_stack([v1, v2, v3]),
        ])
        return trimesh.Trimesh(vertices=vertices, faces=faces, visual=TextureVisuals(uv=uv), process=False)

    def __repr__(self):
        return f"TerrainTile({self.coords}, {self.mesh_resolution}x{self.mesh_resolution})"
