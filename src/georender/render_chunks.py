"""
Renders nadir images on regular grids over a range of 1km chunks

Every chunk is stored in its own directory render_<x>_<y> below the output directory. Chunks that
already contain an images.json are skipped, so interrupted runs can be restarted.

Example:
    georender-chunks --min-easting 2600 --max-easting 2602 --min-northing 1200 --max-northing 1201 \\
        --view-range-m 20000 --output-dir renders
"""
import argparse
import logging
import sys
from pathlib import Path

from georender.camera.intrinsics import Intrinsics
from georender.dataset.chunk_sampler import chunk_render_requests
from georender.dataset.dataset_writer import DatasetWriter
from georender.domain.tile_coordinate import TileCoordinate
from georender.errors import GeoRenderError
from georender.render.gl_rasterizer import GLRasterizer
from georender.render.renderer import Renderer
from georender.util.cli_util import (add_common_arguments, load_intrinsics, storage_config_from_args,
                                     validate_view_range)
from georender.util.logging_util import setup_logging

logger = logging.getLogger(__name__)


def render_chunk(renderer: Renderer, intrinsics: Intrinsics, chunk: TileCoordinate, view_range_m: float,
                 output_dir: Path) -> None:
    """
    Renders all camera positions of a chunk
    :param renderer: Renderer used for all chunks
    :param intrinsics: intrinsics stored with the images
    :param chunk: chunk to be rendered
    :param view_range_m: radius within which terrain is loaded
    :param output_dir: base directory of all chunks
    :return: None
    """
    writer = DatasetWriter(output_dir / f"render_{chunk.x}_{chunk.y}", intrinsics)
    if writer.exists():
        logger.info(f"Found existing {writer.json_path}, skipping chunk")
        return
    rendered_requests = renderer.render_images(chunk_render_requests(chunk), view_range_m)
    writer.add(rendered_requests)
    writer.finish()


def main():
    parser = argparse.ArgumentParser(
        description="Render synthetic fisheye images over a range of chunks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--min-easting', type=int, required=True,
                        help='Leftmost chunk to render in LV95 in km')
    parser.add_argument('--max-easting', type=int, required=True,
                        help='Rightmost chunk to render in LV95 in km')
    parser.add_argument('--min-northing', type=int, required=True,
                        help='Bottom chunk to render in LV95 in km')
    parser.add_argument('--max-northing', type=int, required=True,
                        help='Top chunk to render in LV95 in km')
    parser.add_argument('--output-dir', '-o', type=Path, required=True,
                        help='Folder where the data will be saved')
    add_common_arguments(parser)
    args = parser.parse_args()
    setup_logging(args.debug)

    min_easting, max_easting = sorted((args.min_easting, args.max_easting))
    min_northing, max_northing = sorted((args.min_northing, args.max_northing))

    try:
        validate_view_range(args.view_range_m)
        storage_config = storage_config_from_args(args)
        intrinsics = load_intrinsics(args)
        with GLRasterizer(intrinsics) as rasterizer:
            renderer = Renderer.from_storage(intrinsics, storage_config, rasterizer)
            for x in range(min_easting, max_easting + 1):
                for y in range(min_northing, max_northing + 1):
                    render_chunk(renderer, intrinsics, TileCoordinate(x, y), args.view_range_m, args.output_dir)
    except GeoRenderError as e:
        logger.error(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
