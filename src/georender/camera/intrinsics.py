from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from yaml import SafeLoader

from georender.errors import ConfigurationError


@dataclass(frozen=True)
class Intrinsics:
    """
    Intrinsic parameters of the unified spherical (fisheye) camera model
    """
    # Xi parameter of the fisheye model (0 is a pinhole camera)
    xi: float
    # Focal length for x and y axis in pixels
    focal_length_x_px: float
    focal_length_y_px: float
    # Optical center in pixels, normally in the center of the image
    optical_center_x_px: float
    optical_center_y_px: float
    # Image resolution
    image_width_px: int
    image_height_px: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Intrinsics":
        """
        Creates intrinsics from a dictionary, e.g. a parsed configuration file
        :param data: dictionary containing all fields of Intrinsics
        :return: Intrinsics
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid intrinsics configuration: {data!r}")
        kwargs = {}
        for field in fields(cls):
            if field.name not in data:
                raise ConfigurationError(f"Intrinsics configuration misses {field.name}")
            try:
                kwargs[field.name] = int(data[field.name]) if field.type is int else float(data[field.name])
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid value for {field.name}: {data[field.name]!r}") from e
        intrinsics = cls(**kwargs)
        if intrinsics.image_width_px <= 0 or intrinsics.image_height_px <= 0:
            raise ConfigurationError("Image resolution must be positive")
        if intrinsics.focal_length_x_px == 0 or intrinsics.focal_length_y_px == 0:
            raise ConfigurationError("Focal lengths must not be 0")
        return intrinsics

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Intrinsics":
        """
        Loads intrinsics from a YAML (or JSON) file
        :param path: path of the configuration file
        :return: Intrinsics
        """
        try:
            with open(path) as f:
                data = yaml.load(f, Loader=SafeLoader)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Unable to read camera intrinsics from {path}: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
