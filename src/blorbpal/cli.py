"""bpal - add a BPal chunk to a Blorb file.

Reads a Blorb with an APal chunk, renders every adaptive image with the
palette of every other PNG image, and writes the result with a BPal chunk
that maps (palette, requested image) to the pre-rendered image.

Usage:
    bpal <blorb.blb> [<story.z6>]
    bpal -o converted.blb --no-compress <blorb.blb>

The story file, if given, is bundled as the Exec resource (ZCOD chunk).
The input file is never modified.
"""

import sys
import logging
import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import __version__
from .core import (
    ImageCodec, PillowCodec, Compressor, OxipngCompressor, NullCompressor,
    ConversionReport, convert_blorb,
)
from .formats.blorb import BlorbFile, BlorbWriter, BlorbError


logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "out.blb"


@dataclass
class ConversionOptions:
    """Settings for one run."""
    blorb_path: str
    exec_path: Optional[str] = None
    output_path: str = DEFAULT_OUTPUT
    oxipng: str = "oxipng"
    level: int = 6
    compress: bool = True
    verbose: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> 'ConversionOptions':
        return cls(
            blorb_path=args.blorb,
            exec_path=args.exec,
            output_path=args.output,
            oxipng=args.oxipng,
            level=args.level,
            compress=not args.no_compress,
            verbose=args.verbose,
        )

    def compressor(self) -> Compressor:
        if not self.compress:
            return NullCompressor()
        return OxipngCompressor(self.oxipng, self.level)


def process_blorb(blorb_path: str, output_path: str, exec_data: Optional[bytes],
                  codec: ImageCodec, compressor: Compressor) -> ConversionReport:
    """Read, convert and write one Blorb file."""
    blorb = BlorbFile.read(blorb_path)
    logger.debug(blorb.summary())

    report = convert_blorb(blorb, codec, compressor)

    blorb.exec_data = exec_data
    BlorbWriter(blorb).write(output_path)
    return report


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit 1 like every other failure."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = _ArgumentParser(
        prog="bpal",
        description="Add a BPal (pre-rendered adaptive palette) chunk to a Blorb file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Output is written to {DEFAULT_OUTPUT} unless -o is given.",
    )
    parser.add_argument("blorb", help="Blorb file with an APal chunk")
    parser.add_argument("exec", nargs="?", help="Story file to bundle as ZCOD")
    parser.add_argument("--output", "-o", default=DEFAULT_OUTPUT,
                        help=f"Output file path (default: {DEFAULT_OUTPUT})")
    parser.add_argument("--oxipng", default="oxipng", help="oxipng binary (default: oxipng)")
    parser.add_argument("--level", type=int, default=6, choices=range(7),
                        metavar="0-6", help="oxipng optimization level (default: 6)")
    parser.add_argument("--no-compress", action="store_true",
                        help="Store converted images without running oxipng")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def read_exec(path: str) -> bytes:
    return Path(path).read_bytes()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    options = ConversionOptions.from_args(args)

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.INFO,
        format="%(message)s",
    )

    exec_data = None
    if options.exec_path is not None:
        try:
            exec_data = read_exec(options.exec_path)
        except OSError as e:
            print(f"error processing {options.exec_path}: {e.strerror or e}", file=sys.stderr)
            return 1

    try:
        process_blorb(options.blorb_path, options.output_path, exec_data,
                      PillowCodec(), options.compressor())
    except BlorbError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error processing {e.filename or options.blorb_path}: {e.strerror or e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
