import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import cv2
import numpy as np
from tqdm import tqdm

from georender.camera.intrinsics import Intrinsics
from georender.render.renderer import RenderedRequest

logger = logging.getLogger(__name__)

DATASET_JSON = "images.json"


class DatasetWriter:
    """
    Stores rendered images as png (colour) and raw float32 (depth) files together with a json index
    containing the camera poses and intrinsics.
    """

    def __init__(self, output_dir: Union[str, Path], intrinsics: Intrinsics, json_name: str = DATASET_JSON):
        """
        :param output_dir: directory the images are stored in, created if necessary
        :param intrinsics: intrinsics of the rendering camera
        :param json_name: filename of the dataset index
        """
        self.output_dir = Path(output_dir)
        self.intrinsics = intrinsics
        self.json_name = json_name
        self.images: List[Dict[str, Any]] = []

    @property
    def json_path(self) -> Path:
        return self.output_dir / self.json_name

    def exists(self) -> bool:
        """
        :return: True if the dataset index was already written, i.e. the output is complete
        """
        return self.json_path.exists()

    def write_image(self, rendered: RenderedRequest, name: Optional[str] = None) -> Dict[str, Any]:
        """
        Writes the colour and depth image of a rendered request
        :param rendered: the rendered request
        :param name: filename without extension, defaults to image_<request id>
        :return: index entry of the image
        """
        os.makedirs(self.output_dir, exist_ok=True)
        name = name if name is not None else f"image_{rendered.request_id}"
        rgb_image_path = self.output_dir / f"{name}.png"
        depth_image_path = self.output_dir / f"{name}.bin"

        if not cv2.imwrite(str(rgb_image_path), cv2.cvtColor(rendered.image.rgba, cv2.COLOR_RGBA2BGRA)):
            raise OSError(f"Unable to write {rgb_image_path}")
        np.ascontiguousarray(rendered.image.depth, dtype=np.float32).tofile(depth_image_path)

        request = rendered.request
        entry = {
            "rgb_image_path": rgb_image_path.name,
            "depth_image_path": depth_image_path.name,
            "camera_pos_lv95": {
                "easting_m": float(request.position_asl[0]),
                "northing_m": float(request.position_asl[1]),
                "altitude_m": float(request.position_asl[2]),
            },
            "camera_forward": [float(v) for v in request.forward],
            "camera_up": [float(v) for v in request.up],
        }
        self.images.append(entry)
        return entry

    def add(self, rendered_requests: Sequence[RenderedRequest]) -> None:
        logger.info(f"Storing {len(rendered_requests)} images")
        for rendered in tqdm(rendered_requests, desc="Storing images", unit="image"):
            self.write_image(rendered)

    def finish(self) -> Path:
        """
        Writes the dataset index
        :return: path of the index
        """
        os.makedirs(self.output_dir, exist_ok=True)
        dataset = {
            "images": self.images,
            "intrinsics": self.intrinsics.to_dict(),
        }
        with open(self.json_path, "w") as f:
            json.dump(dataset, f, indent=2)
        logger.info(f"Wrote {len(self.images)} images to {self.json_path}")
        return self.json_path
