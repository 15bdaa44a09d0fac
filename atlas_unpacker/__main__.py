"""Command-line interface for the texture atlas unpacker."""

import argparse
import logging
import sys

from atlas_unpacker.errors import FormatError
from atlas_unpacker.resolver import USAGE, resolve_inputs
from atlas_unpacker.unpacker import AtlasUnpacker


def _wait_for_enter():
    print("Press Enter to exit...")
    try:
        input()
    except EOFError:
        pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='atlas-unpack',
        description='Split a packed texture atlas back into individual sprites',
        epilog=USAGE,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('inputs', nargs='*', help='Atlas image, descriptor and/or output directory')
    parser.add_argument('--workers', '-w', type=int, default=None,
                        help='Worker threads (default: CPU count)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    parser.add_argument('--pause', action='store_true',
                        help='Wait for Enter before exiting (for double-click launchers)')
    return parser


def run(argv=None) -> int:
    """Run the unpacker and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.workers is not None and args.workers < 1:
        parser.error('--workers must be at least 1')

    exit_code = _unpack(args)
    if args.pause:
        _wait_for_enter()
    return exit_code


def _unpack(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s'
    )

    try:
        inputs = resolve_inputs(args.inputs)
    except ValueError as e:
        print(e, file=sys.stderr)
        return 1
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("Processing:")
    print(f"  Image: {inputs.image_path}")
    print(f"  Data:  {inputs.data_path}")
    print(f"  Output: {inputs.output_dir}")

    unpacker = AtlasUnpacker(
        max_workers=args.workers,
        on_saved=lambda path: print(f"Saved: {path}")
    )

    try:
        report = unpacker.unpack(inputs.image_path, inputs.data_path, inputs.output_dir)
    except (FormatError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(
        f"Done. Total: {report.attempted}, written: {report.produced}, "
        f"skipped: {len(report.skipped) + len(report.failed)}"
    )
    return 0


def main():
    sys.exit(run())


if __name__ == '__main__':
    main()
