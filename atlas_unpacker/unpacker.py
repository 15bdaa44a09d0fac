"""Main orchestrator for unpacking a texture atlas into standalone sprites."""

import io
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import numpy as np
from PIL import Image

from atlas_unpacker.config import DEFAULT_MAX_WORKERS, OUTPUT_FORMAT
from atlas_unpacker.descriptor import FrameDescriptor, load_descriptor
from atlas_unpacker.errors import GeometryError, SkippedFrame
from atlas_unpacker.extractor import extract_frame, load_atlas
from atlas_unpacker.paths import output_path

logger = logging.getLogger(__name__)


class DirectorySink:
    """Writes encoded frames into an output directory."""

    def __init__(self, output_dir: Path):
        """Create the output directory before any frame is written.

        Args:
            output_dir: Directory that receives the PNG files

        Raises:
            OSError: If the directory cannot be created
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write(self, name: str, image: Image.Image) -> Path:
        """Encode ``image`` as PNG and store it under the sanitized ``name``.

        The image is encoded in memory first, and a file left half-written
        by a failing disk write is removed, so no partial output survives.

        Returns:
            Path of the written file
        """
        path = output_path(name, self.output_dir)

        buffer = io.BytesIO()
        image.save(buffer, format=OUTPUT_FORMAT)

        try:
            path.write_bytes(buffer.getvalue())
        except OSError:
            path.unlink(missing_ok=True)
            raise
        return path


@dataclass
class UnpackReport:
    """Outcome of one unpack run."""
    attempted: int = 0
    written: List[Path] = field(default_factory=list)
    skipped: List[SkippedFrame] = field(default_factory=list)
    failed: List[Tuple[str, GeometryError]] = field(default_factory=list)

    @property
    def produced(self) -> int:
        return len(self.written)


class AtlasUnpacker:
    """Orchestrates descriptor parsing, frame extraction and output writing."""

    def __init__(
        self,
        max_workers: Optional[int] = None,
        sink_factory: Callable[[Path], DirectorySink] = DirectorySink,
        on_saved: Optional[Callable[[Path], None]] = None
    ):
        """Initialize the unpacker.

        Args:
            max_workers: Worker threads for frame extraction (defaults to CPU count)
            sink_factory: Builds the output sink for an output directory
            on_saved: Called with each written path, in completion order
        """
        self.max_workers = max_workers or DEFAULT_MAX_WORKERS
        self.sink_factory = sink_factory
        self.on_saved = on_saved

    def unpack(self, image_path: Path, data_path: Path, output_dir: Path) -> UnpackReport:
        """Extract every frame of an atlas into ``output_dir``.

        Args:
            image_path: Atlas image
            data_path: JSON descriptor (``.json`` or ``.atlas``)
            output_dir: Directory for the extracted PNG files

        Returns:
            UnpackReport with written paths in descriptor order

        Raises:
            FormatError: If the descriptor has no usable frames
            OSError: If an input cannot be read or an output cannot be written
        """
        parsed = load_descriptor(data_path)
        atlas = load_atlas(image_path)
        sink = self.sink_factory(output_dir)

        report = UnpackReport(attempted=parsed.attempted, skipped=list(parsed.skipped))
        results: List[Optional[Path]] = [None] * len(parsed.frames)

        logger.debug(
            "Unpacking %d frames from %s with %d workers",
            len(parsed.frames), image_path, self.max_workers
        )

        abort = threading.Event()
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = [
                executor.submit(self._process_frame, atlas, descriptor, sink, abort)
                for descriptor in parsed.frames
            ]
            for index, (descriptor, future) in enumerate(zip(parsed.frames, futures)):
                try:
                    results[index] = future.result()
                except SkippedFrame as e:
                    logger.warning(str(e))
                    report.skipped.append(e)
                except GeometryError as e:
                    logger.warning("Skip %s", e)
                    report.failed.append((descriptor.name, e))
        except BaseException:
            # Stop dispatching; in-flight frames are allowed to finish
            abort.set()
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        report.written = [path for path in results if path is not None]
        return report

    def _process_frame(
        self,
        atlas: np.ndarray,
        descriptor: FrameDescriptor,
        sink: DirectorySink,
        abort: threading.Event
    ) -> Optional[Path]:
        # Frames not yet started are dropped once a write has failed
        if abort.is_set():
            return None

        image = extract_frame(atlas, descriptor)
        try:
            path = sink.write(descriptor.name, image)
        except OSError:
            abort.set()
            raise
        if self.on_saved is not None:
            self.on_saved(path)
        return path


def unpack_atlas(
    image_path: Path,
    data_path: Path,
    output_dir: Path,
    max_workers: Optional[int] = None
) -> UnpackReport:
    """Unpack an atlas with default settings.

    See ``AtlasUnpacker.unpack``.
    """
    return AtlasUnpacker(max_workers=max_workers).unpack(image_path, data_path, output_dir)
