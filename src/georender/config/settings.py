from dataclasses import dataclass
from typing import Optional

DEFAULT_TILE_SIZE_M = 1000.0


@dataclass(frozen=True)
class TerrainSettings:
    """Fixed parameters of the tile grid, the source rasters and the mesh generation."""
    # Edge length of one tile in meters
    tile_size_m: float = DEFAULT_TILE_SIZE_M

    # Width of a full resolution orthoimage tile (10cm per pixel)
    orthoimage_resolution_px: int = 10_000

    # Coarsest decimation level that is read from the elevation rasters
    elevation_max_lod: int = 2
    # Coarsest orthoimage level available on disk
    orthoimage_max_lod: int = 5

    # Limits for the number of mesh cells along one tile edge
    mesh_max_resolution: int = 4000
    mesh_min_resolution: int = 2

    # Resolution of the tile used to look up the ground altitude of a request
    ground_resolution_m: float = 10.0
    # Used if the ground sampling distance of a tile can not be estimated
    fallback_resolution_m: float = DEFAULT_TILE_SIZE_M

    # Terrain is reloaded once the altitude exceeds reload_factor times the altitude of the last load
    reload_factor: float = 1.5
    initial_reload_altitude_m: float = -1000.0

    # Worker threads used for loading and stitching (None: executor default)
    max_workers: Optional[int] = None
