import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from georender.errors import ConfigurationError

SURFACE_DIR_ENV = "GEORENDER_SURFACE_DIR"
ALTI_DIR_ENV = "GEORENDER_ALTI_DIR"
IMAGE_DIR_ENV = "GEORENDER_IMAGE_DIR"


@dataclass
class StorageConfig:
    """
    Paths of the swisstopo source data
    """
    # Directory containing swissSURFACE3D raster tifs ({x}-{y}.tif)
    surface_dir: Path
    # Directory containing swissALTI3D tifs, used where no surface model exists
    alti_dir: Path
    # Directory containing SWISSIMAGE jpegs ({x}-{y}_lod{lod}.jpg)
    image_dir: Path
    # Finest orthoimage level that should be used
    image_max_lod: int = 0

    def __post_init__(self):
        self.surface_dir = Path(self.surface_dir)
        self.alti_dir = Path(self.alti_dir)
        self.image_dir = Path(self.image_dir)

    @classmethod
    def from_env(cls, image_max_lod: int = 0) -> "StorageConfig":
        """
        Creates a storage configuration from the GEORENDER_*_DIR environment variables
        :param image_max_lod: Finest orthoimage level that should be used
        :return: StorageConfig
        """
        paths = {}
        for key, env in [("surface_dir", SURFACE_DIR_ENV), ("alti_dir", ALTI_DIR_ENV), ("image_dir", IMAGE_DIR_ENV)]:
            value = os.environ.get(env)
            if value is None:
                raise ConfigurationError(f"Environment variable {env} not set!")
            paths[key] = value
        return cls(image_max_lod=image_max_lod, **paths)

    def validate(self) -> None:
        """
        Checks that all configured directories are accessible
        :return: None
        """
        if not self.surface_dir.is_dir():
            raise ConfigurationError(f"Unable to access swisstopo surface model dir {self.surface_dir}")
        if not self.alti_dir.is_dir():
            raise ConfigurationError(f"Unable to access swisstopo altitude model dir {self.alti_dir}")
        if not self.image_dir.is_dir():
            raise ConfigurationError(f"Unable to access swisstopo ortho image dir {self.image_dir}")
        if self.image_max_lod < 0:
            raise ConfigurationError(f"Invalid image max LOD {self.image_max_lod}")


def env_path(env: str) -> Optional[Union[str, Path]]:
    """Default value for command line path arguments."""
    return os.environ.get(env)
