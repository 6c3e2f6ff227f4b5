"""Pytest configuration and fixtures for georender tests."""

import numpy as np
import pytest

from georender.camera.intrinsics import Intrinsics
from georender.config.settings import TerrainSettings
from georender.domain.tile_coordinate import TileCoordinate
from georender.terrain.elevation_source import InMemoryElevationSource


@pytest.fixture
def settings():
    return TerrainSettings()


@pytest.fixture
def pinhole_intrinsics():
    """Fisheye intrinsics with xi = 0, i.e. a pinhole camera."""
    return Intrinsics(
        xi=0.0,
        focal_length_x_px=500.0,
        focal_length_y_px=500.0,
        optical_center_x_px=480.0,
        optical_center_y_px=540.0,
        image_width_px=960,
        image_height_px=1080,
    )


@pytest.fixture
def fisheye_intrinsics():
    return Intrinsics(
        xi=0.9,
        focal_length_x_px=300.0,
        focal_length_y_px=300.0,
        optical_center_x_px=256.0,
        optical_center_y_px=256.0,
        image_width_px=512,
        image_height_px=512,
    )


@pytest.fixture
def random_block_source():
    """3x3 block of tiles (0..2, 0..2) with random 16x16 elevation rasters."""
    rng = np.random.default_rng(42)
    source = InMemoryElevationSource()
    for x in range(3):
        for y in range(3):
            source.add(TileCoordinate(x, y), rng.uniform(400, 600, size=(16, 16)).astype(np.float32))
    return source
