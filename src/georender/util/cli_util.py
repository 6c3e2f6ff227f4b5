import argparse
from pathlib import Path

from georender.camera.intrinsics import Intrinsics
from georender.config.storage_config import ALTI_DIR_ENV, IMAGE_DIR_ENV, SURFACE_DIR_ENV, StorageConfig, env_path
from georender.errors import ConfigurationError

MAX_VIEW_RANGE_M = 100_000.0


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """
    Adds the arguments shared by all rendering commands: swisstopo data paths, camera parameters,
    view range and verbosity
    :param parser: parser to be extended
    :return: None
    """
    parser.add_argument('--view-range-m', type=float, required=True,
                        help=f'Minimum view distance to render in m, at most {MAX_VIEW_RANGE_M:.0f}m')
    parser.add_argument('--camera-params', type=Path, default=Path("camera_params.yaml"),
                        help='YAML file with the camera intrinsics (default: camera_params.yaml)')
    parser.add_argument('--surface-dir', type=Path, default=env_path(SURFACE_DIR_ENV),
                        help=f'Directory containing swissSURFACE3D rasters (default: ${SURFACE_DIR_ENV})')
    parser.add_argument('--alti-dir', type=Path, default=env_path(ALTI_DIR_ENV),
                        help=f'Directory containing swissALTI3D rasters (default: ${ALTI_DIR_ENV})')
    parser.add_argument('--image-dir', type=Path, default=env_path(IMAGE_DIR_ENV),
                        help=f'Directory containing SWISSIMAGE jpegs (default: ${IMAGE_DIR_ENV})')
    parser.add_argument('--image-max-lod', type=int, default=0,
                        help='Finest orthoimage level that should be used (default: 0)')
    parser.add_argument('--debug', action='store_true',
                        help='Verbose printing')


def storage_config_from_args(args: argparse.Namespace) -> StorageConfig:
    """
    :param args: parsed arguments
    :return: validated StorageConfig
    """
    for name, env in [("surface_dir", SURFACE_DIR_ENV), ("alti_dir", ALTI_DIR_ENV), ("image_dir", IMAGE_DIR_ENV)]:
        if getattr(args, name) is None:
            raise ConfigurationError(f"--{name.replace('_', '-')} not given and {env} not set!")
    config = StorageConfig(args.surface_dir, args.alti_dir, args.image_dir, args.image_max_lod)
    config.validate()
    return config


def validate_view_range(view_range_m: float) -> float:
    if not 0 < view_range_m <= MAX_VIEW_RANGE_M:
        raise ConfigurationError(f"View range must be within (0, {MAX_VIEW_RANGE_M:.0f}]m, got {view_range_m}")
    return view_range_m


def load_intrinsics(args: argparse.Namespace) -> Intrinsics:
    return Intrinsics.load(args.camera_params)
