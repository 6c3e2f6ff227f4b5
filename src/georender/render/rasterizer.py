import abc
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import numpy.typing as npt

from georender.camera.fisheye_camera import FisheyeCamera
from georender.render.tile_model import TileModel


@dataclass
class RenderedImage:
    # H x W x 4 colour image
    rgba: npt.NDArray[np.uint8]
    # H x W depth along the camera's z-axis in meters, 0 where no terrain was hit
    depth: npt.NDArray[np.float32]


class Rasterizer(abc.ABC):
    """
    Draws tile models as seen by a fisheye camera
    """

    @abc.abstractmethod
    def prepare(self, models: Sequence[TileModel]) -> None:
        """
        Replaces the drawn models
        :param models: models with vertices relative to the render origin
        :return: None
        """
        pass

    @abc.abstractmethod
    def render(self, camera: FisheyeCamera, origin: Sequence[float]) -> RenderedImage:
        """
        Renders the prepared models
        :param camera: camera with world position and pose
        :param origin: World position the model vertices are relative to
        :return: RenderedImage
        """
        pass

    def release(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
