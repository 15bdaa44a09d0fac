"""Output path sanitizing for extracted frames."""

import re
from pathlib import Path

from atlas_unpacker.config import DEFAULT_FRAME_NAME, OUTPUT_EXTENSION

# Characters Windows forbids in file names, plus ASCII control characters
_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_name(name: str) -> str:
    """Map a frame name to a flat, filesystem-safe ``.png`` file name.

    Path separators become underscores, so ``folder/sub/name.png`` turns
    into ``folder_sub_name.png`` rather than a nested directory. A trailing
    ``.png`` (any case) is dropped before the extension is appended, so the
    result never ends in ``.png.png``.

    Args:
        name: Frame name from the descriptor

    Returns:
        File name relative to the output directory
    """
    safe = _ILLEGAL_CHARS.sub('_', str(name)).strip()

    if safe.lower().endswith(OUTPUT_EXTENSION):
        safe = safe[:-len(OUTPUT_EXTENSION)]

    if not safe:
        safe = DEFAULT_FRAME_NAME
    elif safe in ('.', '..'):
        safe = '_' * len(safe)

    return safe + OUTPUT_EXTENSION


def output_path(name: str, output_dir: Path) -> Path:
    """Destination path for a frame; colliding names overwrite each other."""
    return Path(output_dir) / sanitize_name(name)
