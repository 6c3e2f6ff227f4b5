"""
Renders a single nadir image above a LV95 position

Example:
    georender-frame --easting-m 2600500 --northing-m 1200500 --altitude-m 800 \\
        --view-range-m 20000 --output frame
"""
import argparse
import logging
import sys
from pathlib import Path

from georender.dataset.dataset_writer import DatasetWriter
from georender.errors import GeoRenderError
from georender.render.gl_rasterizer import GLRasterizer
from georender.render.render_request import PositionAgl, RenderRequest
from georender.render.renderer import Renderer
from georender.util.cli_util import (add_common_arguments, load_intrinsics, storage_config_from_args,
                                     validate_view_range)
from georender.util.logging_util import setup_logging

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Render a single synthetic fisheye image looking straight down",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--easting-m', type=float, required=True,
                        help='East coordinate to render in LV95')
    parser.add_argument('--northing-m', type=float, required=True,
                        help='North coordinate to render in LV95')
    parser.add_argument('--altitude-m', type=float, required=True,
                        help='Altitude above ground level to render, in meters')
    parser.add_argument('--output', '-o', type=Path, required=True,
                        help='Path to store the image, .png, .bin and .json are appended')
    add_common_arguments(parser)
    args = parser.parse_args()
    setup_logging(args.debug)

    try:
        validate_view_range(args.view_range_m)
        storage_config = storage_config_from_args(args)
        intrinsics = load_intrinsics(args)
        request = RenderRequest(PositionAgl((args.easting_m, args.northing_m, args.altitude_m)), 0)

        with GLRasterizer(intrinsics) as rasterizer:
            renderer = Renderer.from_storage(intrinsics, storage_config, rasterizer)
            rendered_requests = renderer.render_images([request], args.view_range_m)

        output = args.output.with_suffix("")
        writer = DatasetWriter(output.parent, intrinsics, json_name=f"{output.name}.json")
        for rendered in rendered_requests:
            writer.write_image(rendered, output.name)
        writer.finish()
    except GeoRenderError as e:
        logger.error(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
