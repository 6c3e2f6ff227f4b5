import csv
import logging
from pathlib import Path
from typing import List, Optional, Union

from pyproj import CRS, Transformer

from georender.errors import ConfigurationError
from georender.render.render_request import FacingAsl, RenderRequest

logger = logging.getLogger(__name__)

LV95_EPSG = 2056

POSE_COLUMNS = [
    "cam_pos_lv95_e", "cam_pos_lv95_n", "cam_pos_lv95_u",
    "cam_fwd_lv95_e", "cam_fwd_lv95_n", "cam_fwd_lv95_u",
    "cam_up_lv95_e", "cam_up_lv95_n", "cam_up_lv95_u",
]


def read_pose_csv(path: Union[str, Path], input_crs: Optional[str] = None) -> List[RenderRequest]:
    """
    Reads camera poses from a csv file. The request id of a pose is its row index.
    :param path: csv with the columns cam_pos_lv95_{e,n,u}, cam_fwd_lv95_{e,n,u} and cam_up_lv95_{e,n,u}
    :param input_crs: CRS of the positions (e.g. "EPSG:4326"), positions are transformed to LV95 if given.
                      Directions are expected in LV95 axes.
    :return: List of RenderRequest
    """
    transformer = None
    if input_crs is not None:
        transformer = Transformer.from_crs(CRS.from_user_input(input_crs), CRS.from_epsg(LV95_EPSG), always_xy=True)

    requests = []
    with open(path, newline="") as file:
        reader = csv.DictReader(file)
        missing = [c for c in POSE_COLUMNS if c not in (reader.fieldnames or [])]
        if len(missing) > 0:
            raise ConfigurationError(f"Pose csv {path} misses columns {missing}")
        for request_id, row in enumerate(reader):
            try:
                values = [float(row[c]) for c in POSE_COLUMNS]
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid pose in row {request_id} of {path}: {e}") from e
            position = values[0:3]
            if transformer is not None:
                position = list(transformer.transform(*position))
            requests.append(RenderRequest(FacingAsl(tuple(position), tuple(values[3:6]), tuple(values[6:9])),
                                          request_id))
    logger.info(f"Read {len(requests)} camera poses from {path}")
    return requests
