"""Shared fixtures for atlas unpacker tests."""

import json

import numpy as np
import pytest
from PIL import Image

ATLAS_SIZE = 64


def make_gradient_atlas(size: int = ATLAS_SIZE) -> np.ndarray:
    """Opaque RGBA atlas whose pixel at (x, y) is (4x, 4y, 200, 255)."""
    ys, xs = np.mgrid[0:size, 0:size]
    atlas = np.zeros((size, size, 4), dtype=np.uint8)
    atlas[..., 0] = xs * 4
    atlas[..., 1] = ys * 4
    atlas[..., 2] = 200
    atlas[..., 3] = 255
    return atlas


@pytest.fixture
def gradient_atlas():
    """64x64 atlas with a unique colour per pixel."""
    return make_gradient_atlas()


@pytest.fixture
def atlas_png(tmp_path, gradient_atlas):
    """The gradient atlas saved as a PNG file."""
    path = tmp_path / "sheet.png"
    Image.fromarray(gradient_atlas).save(path)
    return path


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document to a file in tmp_path and return its path."""
    def _write(document, name="sheet.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding='utf-8')
        return path
    return _write
