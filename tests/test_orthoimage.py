"""Tests for orthoimage sources and texture level selection."""

import cv2
import numpy as np
import pytest

from georender.config.settings import TerrainSettings
from georender.domain.tile_coordinate import TileCoordinate
from georender.errors import TileFormatError, TileNotFoundError
from georender.terrain.orthoimage import (InMemoryOrthoimageSource, JpegOrthoimageSource, OrthoimageSource,
                                          load_tile_texture, select_texture_lod)

COORDS = TileCoordinate(2600, 1200)


class FullResolutionSource(OrthoimageSource):
    """Ignores the requested level and always returns the full resolution image."""

    def read(self, coords, lod):
        return np.full((64, 64, 3), 200, dtype=np.uint8)


@pytest.fixture
def small_settings():
    return TerrainSettings(orthoimage_resolution_px=64)


@pytest.fixture
def source():
    rng = np.random.default_rng(3)
    return InMemoryOrthoimageSource({COORDS: rng.integers(0, 255, size=(64, 64, 3), dtype=np.uint8)})


class TestSelectTextureLod:
    def test_fine_tile(self):
        assert select_texture_lod(4000) == (4000, 1)

    def test_coarse_tile_limited_by_max_lod(self):
        assert select_texture_lod(10) == (10, 5)

    def test_image_max_lod(self):
        assert select_texture_lod(4000, image_max_lod=2) == (2500, 2)


class TestLoadTileTexture:
    def test_matching_level(self, source, small_settings):
        texture = load_tile_texture(COORDS, 16, source, small_settings)
        assert texture.image.shape == (16, 16, 3)
        assert texture.lod == 2
        assert texture.mip_levels == 1

    def test_single_level_is_downscaled(self, source, small_settings):
        texture = load_tile_texture(COORDS, 40, source, small_settings)
        assert texture.lod == 0
        assert texture.image.shape == (40, 40, 3)
        assert texture.mip_levels == 1

    def test_coarsest_level_keeps_mip_levels(self, source):
        settings = TerrainSettings(orthoimage_resolution_px=64, orthoimage_max_lod=1)
        texture = load_tile_texture(COORDS, 8, source, settings)
        assert texture.lod == 1
        assert texture.image.shape == (32, 32, 3)
        assert texture.mip_levels == 3

    def test_mip_levels_capped(self, source):
        settings = TerrainSettings(orthoimage_resolution_px=64, orthoimage_max_lod=0)
        texture = load_tile_texture(COORDS, 2, source, settings)
        assert texture.image.shape == (64, 64, 3)
        assert texture.mip_levels == 5

    def test_finer_than_allowed_is_blurred(self, small_settings):
        texture = load_tile_texture(COORDS, 32, FullResolutionSource(), small_settings, image_max_lod=1)
        assert texture.lod == 1
        assert texture.image.shape == (64, 64, 3)
        assert texture.mip_levels == 2
        assert texture.image.flags["C_CONTIGUOUS"]

    def test_missing(self, small_settings):
        with pytest.raises(TileNotFoundError):
            load_tile_texture(TileCoordinate(0, 0), 16, InMemoryOrthoimageSource(), small_settings)


class TestInMemoryOrthoimageSource:
    def test_rejects_grayscale(self):
        source = InMemoryOrthoimageSource({COORDS: np.zeros((8, 8), dtype=np.uint8)})
        with pytest.raises(TileFormatError):
            source.read(COORDS, 0)

    def test_levels(self, source):
        assert source.read(COORDS, 0).shape == (64, 64, 3)
        assert source.read(COORDS, 3).shape == (8, 8, 3)


class TestJpegOrthoimageSource:
    def test_read_rgb(self, tmp_path):
        red_bgr = np.zeros((32, 32, 3), dtype=np.uint8)
        red_bgr[:, :, 2] = 255
        assert cv2.imwrite(str(tmp_path / "2600-1200_lod1.jpg"), red_bgr)

        image = JpegOrthoimageSource(tmp_path).read(COORDS, 1)
        assert image.shape == (32, 32, 3)
        assert image[16, 16, 0] > 240
        assert image[16, 16, 2] < 15

    def test_missing(self, tmp_path):
        with pytest.raises(TileNotFoundError):
            JpegOrthoimageSource(tmp_path).read(COORDS, 0)

    def test_corrupt(self, tmp_path):
        (tmp_path / "2600-1200_lod0.jpg").write_bytes(b"not a jpeg")
        with pytest.raises(TileFormatError):
            JpegOrthoimageSource(tmp_path).read(COORDS, 0)
