"""Locate the atlas image, descriptor and output directory from user arguments."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from atlas_unpacker.config import DATA_EXTENSIONS, IMAGE_EXTENSIONS

USAGE = """Usage:
  atlas-unpack <file.json|file.atlas> [outDir]
  atlas-unpack <atlas.png> [outDir]
  atlas-unpack <atlas.png> <atlas.json|atlas.atlas> [outDir]"""


class InputNotFoundError(FileNotFoundError):
    """The atlas image or the descriptor could not be located."""

    def __init__(self, image_path: Optional[Path], data_path: Optional[Path]):
        super().__init__(
            "Could not locate both image and data files.\n"
            f"  Image: {image_path or 'Not found'}\n"
            f"  Data:  {data_path or 'Not found'}"
        )
        self.image_path = image_path
        self.data_path = data_path


@dataclass(frozen=True)
class AtlasInputs:
    """Resolved input files and output directory for one unpack run."""
    image_path: Path
    data_path: Path
    output_dir: Path


def _has_extension(path: Path, extensions: Sequence[str]) -> bool:
    return path.suffix.lower() in extensions


def _find_sibling(path: Path, extensions: Sequence[str]) -> Optional[Path]:
    """Return the first existing file next to ``path`` with the same stem."""
    for extension in extensions:
        candidate = path.with_suffix(extension)
        if candidate.exists():
            return candidate
    return None


def resolve_inputs(args: Sequence[str]) -> AtlasInputs:
    """Work out which files to unpack from command-line style arguments.

    Accepted forms:
        ``<image> <descriptor> [outDir]`` names both files explicitly.
        ``<descriptor> [outDir]`` looks for a same-named ``.png``, then ``.jpg``.
        ``<image> [outDir]`` looks for a same-named ``.json``, then ``.atlas``.

    Without an explicit output directory, frames go to a directory named
    after the input's stem, next to the input.

    Args:
        args: Positional arguments (1 to 3 paths)

    Returns:
        Resolved inputs

    Raises:
        ValueError: If no arguments were given
        InputNotFoundError: If the image or descriptor does not exist
    """
    if not args:
        raise ValueError(USAGE)

    image_path: Optional[Path] = None
    data_path: Optional[Path] = None
    output_dir: Optional[Path] = None

    first = Path(args[0])
    second = Path(args[1]) if len(args) > 1 else None

    if (second is not None and _has_extension(first, ('.png',))
            and _has_extension(second, DATA_EXTENSIONS)):
        image_path, data_path = first, second
        if len(args) > 2:
            output_dir = Path(args[2])
        else:
            output_dir = first.with_suffix('')
    else:
        if _has_extension(first, DATA_EXTENSIONS):
            data_path = first
            # .png is the default guess even when it does not exist
            image_path = _find_sibling(first, IMAGE_EXTENSIONS) or first.with_suffix('.png')
        elif _has_extension(first, IMAGE_EXTENSIONS):
            image_path = first
            data_path = _find_sibling(first, DATA_EXTENSIONS)

        output_dir = second if second is not None else first.with_suffix('')

    if (image_path is None or data_path is None
            or not image_path.exists() or not data_path.exists()):
        raise InputNotFoundError(image_path, data_path)

    return AtlasInputs(image_path=image_path, data_path=data_path, output_dir=output_dir)
