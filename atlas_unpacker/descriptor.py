"""Descriptor parsing: normalize atlas JSON into canonical frame records."""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from atlas_unpacker.config import (
    DEFAULT_FRAME_NAME,
    FRAME_RECT_KEYS,
    NAME_KEYS,
    ROTATED_KEYS,
    SOURCE_SIZE_KEYS,
    SPRITE_SOURCE_RECT_KEYS,
    TRIMMED_KEYS,
)
from atlas_unpacker.errors import FormatError, SkippedFrame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameRect:
    """Rectangle in pixel space."""
    x: int
    y: int
    w: int
    h: int

    @property
    def area(self) -> int:
        return self.w * self.h


@dataclass(frozen=True)
class SourceSize:
    """Size of the original, untrimmed sprite canvas."""
    w: int
    h: int


@dataclass(frozen=True)
class FrameDescriptor:
    """Placement of one sprite inside the atlas."""
    name: str
    frame_rect: FrameRect
    rotated: bool = False
    trimmed: bool = False
    sprite_source_rect: Optional[FrameRect] = None
    source_size: Optional[SourceSize] = None

    def __post_init__(self):
        # Fill the untrimmed defaults from the frame rectangle
        if self.sprite_source_rect is None:
            object.__setattr__(
                self, 'sprite_source_rect',
                FrameRect(0, 0, self.frame_rect.w, self.frame_rect.h)
            )
        if self.source_size is None:
            object.__setattr__(
                self, 'source_size',
                SourceSize(self.frame_rect.w, self.frame_rect.h)
            )


@dataclass
class ParseResult:
    """Frames in descriptor order plus the frame sources that were skipped."""
    frames: List[FrameDescriptor] = field(default_factory=list)
    skipped: List[SkippedFrame] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.frames) + len(self.skipped)


class FramesShape(Enum):
    """Container shape of the top-level ``frames`` field."""
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def _first_present(source: Mapping[str, Any], keys: Sequence[str]) -> Any:
    """Return the value of the first alias that holds a truthy value."""
    for key in keys:
        value = source.get(key)
        if value:
            return value
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_int(value: Any, what: str) -> int:
    if not _is_number(value) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"{what} is not an integer: {value!r}")
    return int(value)


def _read_rect(data: Any, defaults: FrameRect, what: str) -> FrameRect:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} is not an object")
    return FrameRect(
        x=_to_int(data.get('x', defaults.x), f"{what}.x"),
        y=_to_int(data.get('y', defaults.y), f"{what}.y"),
        w=_to_int(data.get('w', defaults.w), f"{what}.w"),
        h=_to_int(data.get('h', defaults.h), f"{what}.h"),
    )


def _read_size(data: Any, defaults: SourceSize, what: str) -> SourceSize:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} is not an object")
    return SourceSize(
        w=_to_int(data.get('w', defaults.w), f"{what}.w"),
        h=_to_int(data.get('h', defaults.h), f"{what}.h"),
    )


def resolve_frame(source: Mapping[str, Any]) -> FrameDescriptor:
    """Build a FrameDescriptor from one frame source.

    Each canonical field is looked up through its alias list in priority
    order; absent fields fall back to their defaults.

    Args:
        source: Frame object from the descriptor

    Returns:
        Canonical frame descriptor

    Raises:
        SkippedFrame: If the frame rectangle is missing or malformed
    """
    name = str(_first_present(source, NAME_KEYS) or DEFAULT_FRAME_NAME)

    frame = _first_present(source, FRAME_RECT_KEYS)
    if not isinstance(frame, Mapping) or not _is_number(frame.get('x')):
        raise SkippedFrame(name, "invalid frame")

    try:
        frame_rect = FrameRect(
            x=_to_int(frame['x'], "frame.x"),
            y=_to_int(frame.get('y'), "frame.y"),
            w=_to_int(frame.get('w'), "frame.w"),
            h=_to_int(frame.get('h'), "frame.h"),
        )

        sprite_source_rect = None
        sprite_source = _first_present(source, SPRITE_SOURCE_RECT_KEYS)
        if sprite_source is not None:
            sprite_source_rect = _read_rect(
                sprite_source,
                FrameRect(0, 0, frame_rect.w, frame_rect.h),
                "spriteSourceSize"
            )

        source_size = None
        size = _first_present(source, SOURCE_SIZE_KEYS)
        if size is not None:
            source_size = _read_size(
                size, SourceSize(frame_rect.w, frame_rect.h), "sourceSize"
            )
    except ValueError as e:
        raise SkippedFrame(name, str(e)) from e

    return FrameDescriptor(
        name=name,
        frame_rect=frame_rect,
        rotated=bool(_first_present(source, ROTATED_KEYS)),
        trimmed=bool(_first_present(source, TRIMMED_KEYS)),
        sprite_source_rect=sprite_source_rect,
        source_size=source_size,
    )


def classify_frames(document: Any) -> Tuple[FramesShape, Any]:
    """Work out which container shape the ``frames`` field uses.

    Raises:
        FormatError: If there is no ``frames`` array or object
    """
    if not isinstance(document, Mapping):
        raise FormatError(
            f"Unsupported descriptor: expected a JSON object, got {type(document).__name__}"
        )

    frames = document.get('frames')
    if isinstance(frames, list):
        return FramesShape.SEQUENCE, frames
    if isinstance(frames, Mapping):
        return FramesShape.MAPPING, frames

    raise FormatError(
        "Unsupported JSON format: no frames property found "
        f"(keys: {', '.join(map(str, document.keys())) or 'none'})"
    )


def frame_sources(document: Any) -> List[Tuple[str, Any]]:
    """Flatten ``frames`` into ordered ``(fallback name, frame source)`` pairs."""
    shape, frames = classify_frames(document)

    if shape is FramesShape.SEQUENCE:
        return [(DEFAULT_FRAME_NAME, source) for source in frames]

    sources = []
    for key, data in frames.items():
        if isinstance(data, Mapping):
            # An explicit filename in the value wins over the key
            data = {'filename': key, **data}
        sources.append((str(key), data))
    return sources


def parse_frames(document: Any) -> ParseResult:
    """Normalize a parsed descriptor into canonical frame descriptors.

    Args:
        document: Parsed JSON document

    Returns:
        ParseResult with frames in descriptor order and skipped frame records

    Raises:
        FormatError: If the document has no usable ``frames`` field
    """
    result = ParseResult()

    for fallback_name, source in frame_sources(document):
        if not isinstance(source, Mapping):
            skipped = SkippedFrame(fallback_name, "frame entry is not an object")
        else:
            try:
                result.frames.append(resolve_frame(source))
                continue
            except SkippedFrame as e:
                skipped = e

        logger.warning(str(skipped))
        result.skipped.append(skipped)

    return result


def load_descriptor(path: Path) -> ParseResult:
    """Read and parse a descriptor file (``.json`` or ``.atlas``).

    Raises:
        FormatError: If the file is not valid JSON or has no usable frames
        OSError: If the file cannot be read
    """
    path = Path(path)
    raw = path.read_bytes()

    try:
        document: Any = json.loads(raw.decode('utf-8-sig'))
    except UnicodeDecodeError as e:
        raise FormatError(f"Descriptor {path} is not valid UTF-8: {e}") from e
    except (json.JSONDecodeError, RecursionError) as e:
        raise FormatError(f"Failed to parse JSON in {path}: {e}") from e

    return parse_frames(document)
