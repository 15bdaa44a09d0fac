"""Frame extraction: crop, de-rotate and de-trim sprites out of an atlas."""

import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from atlas_unpacker.descriptor import FrameDescriptor
from atlas_unpacker.errors import GeometryError, SkippedFrame

logger = logging.getLogger(__name__)


def load_atlas(atlas_path: Path) -> np.ndarray:
    """Decode an atlas image into a shared, read-only RGBA array.

    Args:
        atlas_path: Path to the atlas image (PNG or JPEG)

    Returns:
        H x W x 4 uint8 array

    Raises:
        OSError: If the image cannot be read or decoded
    """
    try:
        with Image.open(atlas_path) as img:
            atlas = np.array(img.convert('RGBA'), dtype=np.uint8)
    except UnidentifiedImageError as e:
        raise OSError(f"Cannot decode atlas image {atlas_path}: {e}") from e

    # Frames are extracted concurrently from the same buffer
    atlas.setflags(write=False)
    return atlas


def _crop(atlas: np.ndarray, descriptor: FrameDescriptor) -> np.ndarray:
    rect = descriptor.frame_rect
    atlas_h, atlas_w = atlas.shape[:2]

    if rect.w < 0 or rect.h < 0:
        raise GeometryError(descriptor.name, f"negative frame size {rect.w}x{rect.h}")
    if rect.area == 0:
        raise SkippedFrame(descriptor.name, f"zero-area frame {rect.w}x{rect.h}")
    if (rect.x < 0 or rect.y < 0
            or rect.x + rect.w > atlas_w or rect.y + rect.h > atlas_h):
        raise GeometryError(
            descriptor.name,
            f"frame ({rect.x}, {rect.y}, {rect.w}, {rect.h}) is outside "
            f"the {atlas_w}x{atlas_h} atlas"
        )

    return atlas[rect.y:rect.y + rect.h, rect.x:rect.x + rect.w]


def _untrim(region: np.ndarray, descriptor: FrameDescriptor) -> np.ndarray:
    offset = descriptor.sprite_source_rect
    size = descriptor.source_size
    region_h, region_w = region.shape[:2]

    if (offset.x < 0 or offset.y < 0
            or offset.x + region_w > size.w or offset.y + region_h > size.h):
        raise GeometryError(
            descriptor.name,
            f"{region_w}x{region_h} region at ({offset.x}, {offset.y}) does not "
            f"fit the {size.w}x{size.h} source canvas"
        )

    canvas = np.zeros((size.h, size.w, 4), dtype=np.uint8)
    canvas[offset.y:offset.y + region_h, offset.x:offset.x + region_w] = region
    return canvas


def extract_frame(atlas: np.ndarray, descriptor: FrameDescriptor) -> Image.Image:
    """Rebuild one standalone sprite from the atlas.

    The frame rectangle is always cropped first: packers store rotated
    sprites turned 90 degrees clockwise at the frame location, so the crop
    is turned back counter-clockwise. Trimmed sprites are then placed on a
    fully transparent canvas of their original size.

    Args:
        atlas: RGBA atlas array from ``load_atlas``
        descriptor: Frame to extract

    Returns:
        RGBA image of size ``source_size`` when trimmed, otherwise the
        (possibly swapped) crop size

    Raises:
        GeometryError: If the frame or its placement is out of bounds
        SkippedFrame: If the frame has zero area
    """
    region = _crop(atlas, descriptor)

    if descriptor.rotated:
        region = np.rot90(region, k=1)

    if descriptor.trimmed:
        region = _untrim(region, descriptor)

    return Image.fromarray(region.copy())


def rotate_clockwise(image: Image.Image) -> Image.Image:
    """Turn an image 90 degrees clockwise, the way packers store rotated frames."""
    return image.transpose(Image.Transpose.ROTATE_270)
