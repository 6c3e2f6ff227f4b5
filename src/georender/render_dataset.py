"""
Renders images for camera poses read from a csv file

Example:
    georender-dataset --camera-pose-csv-path poses.csv --view-range-m 20000 --output-dir dataset
"""
import argparse
import logging
import sys
from pathlib import Path

from georender.dataset.dataset_writer import DatasetWriter
from georender.dataset.pose_csv_reader import read_pose_csv
from georender.errors import ConfigurationError, GeoRenderError
from georender.render.gl_rasterizer import GLRasterizer
from georender.render.renderer import Renderer
from georender.util.cli_util import (add_common_arguments, load_intrinsics, storage_config_from_args,
                                     validate_view_range)
from georender.util.logging_util import setup_logging

logger = logging.getLogger(__name__)

# Requests rendered at once, limits the number of images held in memory
BATCH_SIZE = 2000


def main():
    parser = argparse.ArgumentParser(
        description="Render synthetic fisheye images for camera poses from a csv file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--camera-pose-csv-path', type=Path, required=True,
                        help='Path to csv with camera poses to render')
    parser.add_argument('--input-crs', type=str, default=None,
                        help='CRS of the camera positions if they are not given in LV95 (e.g. EPSG:4326)')
    parser.add_argument('--output-dir', '-o', type=Path, required=True,
                        help='Folder where the data will be saved')
    add_common_arguments(parser)
    args = parser.parse_args()
    setup_logging(args.debug)

    try:
        if not args.camera_pose_csv_path.exists():
            raise ConfigurationError(f"Camera pose csv {args.camera_pose_csv_path} does not exist")
        validate_view_range(args.view_range_m)
        storage_config = storage_config_from_args(args)
        intrinsics = load_intrinsics(args)

        writer = DatasetWriter(args.output_dir, intrinsics)
        if writer.exists():
            logger.info(f"Found existing {writer.json_path}, skipping")
            return
        requests = read_pose_csv(args.camera_pose_csv_path, args.input_crs)

        with GLRasterizer(intrinsics) as rasterizer:
            renderer = Renderer.from_storage(intrinsics, storage_config, rasterizer)
            for start in range(0, len(requests), BATCH_SIZE):
                batch = requests[start:start + BATCH_SIZE]
                logger.info(f"Rendering requests {start} to {start + len(batch) - 1} of {len(requests)}")
                writer.add(renderer.render_images(batch, args.view_range_m))
        writer.finish()
    except GeoRenderError as e:
        logger.error(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
