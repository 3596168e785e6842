import os
import sys
import warnings
from argparse import ArgumentParser
from dataclasses import dataclass
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

from mandeltiles import (
    DEFAULT_CONTROL_POINTS,
    ComplexPoint,
    PlaneRect,
    RenderConfig,
    TileGrid,
    build_palette,
    control_points_from_colormap,
    render_mosaic,
    render_tile,
    save_image,
    tile_to_image,
    zoom_for_rect,
)
from mandeltiles.palette import INTERPOLATIONS
from mandeltiles.renderer import WORLD

log("TensorFlow version: %s" % tf.__version__)


def select_device():
    """Use the first GPU when TensorFlow sees one, otherwise the CPU."""

    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


@dataclass
class OutputConfig:
    path: Path
    image_format: str


def build_parser():
    parser = ArgumentParser(description='Render Mandelbrot tiles with smooth colouring.')

    parser.add_argument('--mode', choices=['tile', 'mosaic'], default='mosaic',
                        help='"tile" renders one plane rectangle into a single tile; '
                             '"mosaic" stitches tiles of a zoomed canvas around a centre point.')

    parser.add_argument('--x-res', type=int,
                        dest='x_res', help='width of the output image in pixels',
                        metavar='X_RES', default=512)

    parser.add_argument('--y-res', type=int,
                        dest='y_res', help='height of the output image in pixels',
                        metavar='Y_RES', default=384)

    parser.add_argument('--re-min', type=float, dest='re_min', metavar='RE_MIN', default=WORLD.min.re,
                        help='tile mode: real part of the lower corner of the plane rectangle')
    parser.add_argument('--im-min', type=float, dest='im_min', metavar='IM_MIN', default=WORLD.min.im,
                        help='tile mode: imaginary part of the lower corner of the plane rectangle')
    parser.add_argument('--re-max', type=float, dest='re_max', metavar='RE_MAX', default=WORLD.max.re,
                        help='tile mode: real part of the upper corner of the plane rectangle')
    parser.add_argument('--im-max', type=float, dest='im_max', metavar='IM_MAX', default=WORLD.max.im,
                        help='tile mode: imaginary part of the upper corner of the plane rectangle')
    parser.add_argument('--zoom-hint', type=float, dest='zoom_hint', metavar='ZOOM_HINT', default=None,
                        help='tile mode: zoom level used for the iteration budget. '
                             'Defaults to the ratio of the world diagonal to the rectangle diagonal.')

    parser.add_argument('--x-center', type=float,
                        dest='x_center', help='mosaic mode: real coordinate at the centre of the output',
                        metavar='X_CENTER', default=-0.75)
    parser.add_argument('--y-center', type=float,
                        dest='y_center', help='mosaic mode: imaginary coordinate at the centre of the output',
                        metavar='Y_CENTER', default=0.0)
    parser.add_argument('--zoom', type=float,
                        dest='zoom', help='mosaic mode: magnification of the canvas (1 shows the whole set)',
                        metavar='ZOOM', default=1.0)
    parser.add_argument('--tile-size', type=int,
                        dest='tile_size', help='side length of a tile in pixels',
                        metavar='TILE_SIZE', default=256)
    parser.add_argument('--workers', type=int, dest='workers', metavar='WORKERS', default=None,
                        help='number of tiles rendered concurrently (default: executor default)')

    parser.add_argument('--base-iterations', type=int,
                        dest='base_iterations', help='iterations per zoom octave used by the budget heuristic',
                        metavar='BASE_ITERATIONS', default=48)
    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='fixed iteration budget, overrides the zoom-based heuristic',
                        metavar='MAX_ITERATIONS', default=None)

    parser.add_argument('--palette', type=str,
                        dest='palette', help='"classic" or the name of a matplotlib colormap to sample',
                        metavar='PALETTE', default='classic')
    parser.add_argument('--palette-points', type=int,
                        dest='palette_points', help='control points sampled from a matplotlib colormap',
                        metavar='PALETTE_POINTS', default=8)
    parser.add_argument('--palette-size', type=int,
                        dest='palette_size', help='number of colours in the palette lookup table',
                        metavar='PALETTE_SIZE', default=512)
    parser.add_argument('--interpolation', choices=list(INTERPOLATIONS), default='cubic',
                        help='palette interpolation between control points')
    parser.add_argument('--no-flip', dest='flip_vertical', action='store_false',
                        help='map pixel row 0 to the lower imaginary bound instead of the upper one')

    parser.add_argument('--format', type=str,
                        dest='format', help='image file format. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')
    parser.add_argument('--output', dest='output', type=str,
                        help='destination image file (default: mandelbrot.<format>)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    image_format = (getattr(opt, "format", "png") or "png").lower().lstrip(".")
    if not image_format:
        image_format = "png"

    output_arg = getattr(opt, "output", None)
    if not output_arg:
        return OutputConfig(Path(f"mandelbrot.{image_format}").expanduser().resolve(), image_format)

    output_path = Path(output_arg).expanduser()
    if str(output_arg).endswith(tuple(filter(None, {os.sep, os.altsep}))):
        parser.error("--output must be a file path.")
    if output_path.exists() and output_path.is_dir():
        parser.error("--output must point to a file, not a directory.")
    expected_suffix = f".{image_format}"
    if output_path.suffix:
        if output_path.suffix.lower() != expected_suffix:
            parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
    else:
        output_path = output_path.with_suffix(expected_suffix)
    return OutputConfig(output_path.resolve(), image_format)


def resolve_render_config(opt, parser: ArgumentParser) -> RenderConfig:
    if opt.x_res <= 0 or opt.y_res <= 0:
        parser.error("--x-res and --y-res must be positive.")
    if opt.max_iterations is not None and opt.max_iterations < 1:
        parser.error("--max-iterations must be positive.")
    if opt.workers is not None and opt.workers < 1:
        parser.error("--workers must be positive.")
    if not opt.zoom > 0:
        parser.error("--zoom must be positive.")
    try:
        return RenderConfig(
            base_iterations=opt.base_iterations,
            flip_vertical=opt.flip_vertical,
            tile_size=opt.tile_size,
        )
    except ValueError as exc:
        parser.error(str(exc))


def resolve_palette(opt, parser: ArgumentParser):
    try:
        if opt.palette == 'classic':
            control_points = DEFAULT_CONTROL_POINTS
        else:
            control_points = control_points_from_colormap(opt.palette, opt.palette_points)
        return build_palette(control_points, opt.palette_size, interpolation=opt.interpolation)
    except ValueError as exc:
        parser.error(str(exc))


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    output_config = resolve_output_config(opt, parser)
    config = resolve_render_config(opt, parser)
    palette = resolve_palette(opt, parser)
    device = select_device()

    if opt.mode == 'tile':
        rect = PlaneRect.from_bounds(opt.re_min, opt.im_min, opt.re_max, opt.im_max)
        zoom_hint = opt.zoom_hint if opt.zoom_hint is not None else zoom_for_rect(rect, config.world)
        log("Rendering tile %s at zoom %g" % (rect, zoom_hint))
        tile = render_tile(
            rect,
            opt.x_res,
            opt.y_res,
            zoom_hint,
            palette,
            max_iterations=opt.max_iterations,
            config=config,
            device=device,
        )
    else:
        grid = TileGrid.for_canvas(opt.x_res, opt.y_res, zoom=opt.zoom, config=config)
        window = grid.window_around(ComplexPoint(opt.x_center, opt.y_center), opt.x_res, opt.y_res)
        log("Rendering window %s of a %dx%d tile grid" % (window, grid.columns, grid.rows))

        def progress(done, total):
            print("tile {0} out of {1}".format(done, total), end='\r')

        tile = render_mosaic(
            grid,
            palette,
            window=window,
            config=config,
            max_iterations=opt.max_iterations,
            workers=opt.workers,
            device=device,
            progress=progress,
        )
        print()

    log("Iteration budget: %d" % tile.max_iterations)
    if tile.is_empty:
        parser.error("nothing to render; check the palette size and iteration budget.")

    save_image(tile_to_image(tile), output_config.path, output_config.image_format)
    log("Wrote %s" % output_config.path)
    return output_config.path


if __name__ == '__main__':
    main()
