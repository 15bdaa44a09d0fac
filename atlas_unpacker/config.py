"""Configuration for the texture atlas unpacker."""

import os

# Descriptor field aliases, highest priority first
NAME_KEYS = ("filename", "name", "file")
FRAME_RECT_KEYS = ("frame", "rect", "sourceRect")
SPRITE_SOURCE_RECT_KEYS = ("spriteSourceSize", "spriteSourceRect")
SOURCE_SIZE_KEYS = ("sourceSize", "originalSize")
ROTATED_KEYS = ("rotated",)
TRIMMED_KEYS = ("trimmed",)

DEFAULT_FRAME_NAME = "unnamed"

# Input discovery (lookup order matters)
IMAGE_EXTENSIONS = (".png", ".jpg")
DATA_EXTENSIONS = (".json", ".atlas")

# Output settings
OUTPUT_EXTENSION = ".png"
OUTPUT_FORMAT = "PNG"

# Worker pool size (None lets the unpacker pick)
DEFAULT_MAX_WORKERS = os.cpu_count() or 1
