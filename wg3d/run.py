import argparse
import logging
import pathlib
import sys
from typing import List, Optional

from . import gltf, serialization
from .convert import convert
from .errors import ConvertError
from .settings import ROTATE_Y_180, WEIGHTS_FORMATS, Settings

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gltf2wg3d", description="Convert a glTF 2.0 asset to WG3D."
    )
    parser.add_argument("src", type=pathlib.Path, help=".gltf or .glb")
    parser.add_argument("dst", type=pathlib.Path, nargs="?", help="default: src with .wg3d")
    parser.add_argument("--scale", type=float, default=1.0)
    parser.add_argument(
        "--flip", action="store_true", help="rotate 180 degrees around the up axis"
    )
    parser.add_argument("--weights", choices=WEIGHTS_FORMATS, default="f32")
    parser.add_argument(
        "--no-node-transforms",
        dest="apply_node_transforms",
        action="store_false",
        help="keep vertices in mesh local space",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)
    if not args.scale > 0:
        parser.error(f"--scale must be positive: {args.scale}")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s - %(name)s - %(message)s",
    )

    settings = Settings(
        basis=ROTATE_Y_180 if args.flip else Settings().basis,
        global_scale=args.scale,
        weights_format=args.weights,
        apply_node_transforms=args.apply_node_transforms,
    )
    dst = args.dst or args.src.with_suffix(".wg3d")

    try:
        document, buffers = gltf.load(args.src)
        model = convert(document, buffers, settings)
        serialization.serialize(dst, model)
    except (ConvertError, OSError) as e:
        logger.error("%s: %s: %s", args.src, type(e).__name__, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
