import argparse
import logging
import sys

from omnicolor.engine import RunStatus
from omnicolor.errors import ConfigError
from omnicolor.frames import PngStreamSink
from omnicolor.io_utils import save_fill_order, save_png_rgba
from omnicolor.params import RunParams
from omnicolor.pipeline import run_pipeline
from omnicolor.preset_management import load_params, load_preset


def main():
    parser = argparse.ArgumentParser(
        description="Generate an image that uses every palette color exactly once."
    )
    parser.add_argument("output", help="Path of the final PNG")
    parser.add_argument("--config", help="JSON run configuration")
    parser.add_argument("--preset", help="Preset name from the presets/ directory")
    parser.add_argument("--width", type=int, help="Canvas width override")
    parser.add_argument("--height", type=int, help="Canvas height override")
    parser.add_argument("--seed", type=int, help="Random seed override")
    parser.add_argument(
        "--interval", type=int, help="Steps between frames (0 = no frames)"
    )
    parser.add_argument("--frames-dir", help="Directory for frame PNGs")
    parser.add_argument(
        "--stream",
        action="store_true",
        help="Write frames to stdout as concatenated PNGs (for ffmpeg -f image2pipe)",
    )
    parser.add_argument("--fill-order", help="Save the per-pixel fill order (.npy)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    log = logging.getLogger("omnicolor")

    try:
        if args.config:
            p = load_params(args.config)
        elif args.preset:
            p = load_preset(args.preset)
            if p is None:
                log.error("Preset '%s' not found", args.preset)
                sys.exit(2)
        else:
            p = RunParams()
    except (ConfigError, OSError) as e:
        log.error("Cannot load configuration: %s", e)
        sys.exit(2)

    if args.width is not None:
        p.canvas.width = args.width
    if args.height is not None:
        p.canvas.height = args.height
    if args.seed is not None:
        p.growth.seed = args.seed
    if args.interval is not None:
        p.frames.interval = args.interval
    if args.frames_dir:
        p.frames.directory = args.frames_dir

    sink = PngStreamSink(sys.stdout.buffer) if args.stream else None
    try:
        out = run_pipeline(p, sink=sink)
    except ConfigError as e:
        log.error("Invalid configuration: %s", e)
        sys.exit(2)

    save_png_rgba(args.output, out.rgba)
    log.info("Saved image to '%s'", args.output)
    if args.fill_order:
        save_fill_order(args.fill_order, out.fill_order)

    r = out.result
    log.info(
        "%s: %d filled, %d unfilled, %d colors left, %d frames",
        r.status.value,
        r.filled,
        r.unfilled,
        r.remaining_colors,
        r.frames_emitted,
    )
    if r.status is not RunStatus.COMPLETED:
        sys.exit(1)


if __name__ == "__main__":
    main()
