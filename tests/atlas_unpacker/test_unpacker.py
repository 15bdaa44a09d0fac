"""End-to-end tests for the atlas unpacker."""

from pathlib import Path

import pytest
from PIL import Image
from atlas_unpacker.errors import FormatError, GeometryError
from atlas_unpacker.unpacker import AtlasUnpacker, DirectorySink, unpack_atlas

TWO_FRAME_DESCRIPTOR = {
    "frames": [
        {
            "filename": "spin.png",
            "frame": {"x": 8, "y": 4, "w": 3, "h": 2},
            "rotated": True,
            "trimmed": False,
        },
        {
            "filename": "ui/button",
            "frame": {"x": 20, "y": 30, "w": 2, "h": 2},
            "rotated": False,
            "trimmed": True,
            "spriteSourceSize": {"x": 1, "y": 2, "w": 2, "h": 2},
            "sourceSize": {"w": 5, "h": 5},
        },
    ],
    "meta": {"image": "sheet.png"},
}


def test_unpack_two_frames(atlas_png, write_json, tmp_path):
    """A rotated frame and a trimmed frame produce hand-checked images."""
    out_dir = tmp_path / "out"

    report = unpack_atlas(atlas_png, write_json(TWO_FRAME_DESCRIPTOR), out_dir)

    assert report.attempted == 2
    assert report.produced == 2
    assert report.skipped == []
    assert sorted(p.name for p in out_dir.iterdir()) == ["spin.png", "ui_button.png"]

    spin = Image.open(out_dir / "spin.png")
    assert spin.mode == 'RGBA'
    assert spin.size == (2, 3)
    assert spin.getpixel((0, 0)) == (40, 16, 200, 255)
    assert spin.getpixel((1, 0)) == (40, 20, 200, 255)
    assert spin.getpixel((0, 2)) == (32, 16, 200, 255)
    assert spin.getpixel((1, 2)) == (32, 20, 200, 255)

    button = Image.open(out_dir / "ui_button.png")
    assert button.size == (5, 5)
    assert button.getpixel((1, 2)) == (80, 120, 200, 255)
    assert button.getpixel((2, 3)) == (84, 124, 200, 255)
    assert button.getpixel((0, 0)) == (0, 0, 0, 0)
    assert button.getpixel((4, 4)) == (0, 0, 0, 0)
    assert button.getpixel((3, 2)) == (0, 0, 0, 0)


def test_frame_missing_x_is_skipped(atlas_png, write_json, tmp_path):
    """A frame without frame.x yields one skip and no file."""
    document = {
        "frames": {
            "ok.png": {"frame": {"x": 0, "y": 0, "w": 4, "h": 4}},
            "broken.png": {"frame": {"y": 0, "w": 4, "h": 4}},
        }
    }
    out_dir = tmp_path / "out"

    report = unpack_atlas(atlas_png, write_json(document), out_dir)

    assert [p.name for p in out_dir.iterdir()] == ["ok.png"]
    assert report.attempted == 2
    assert report.produced == 1
    assert [s.name for s in report.skipped] == ["broken.png"]


def test_geometry_error_does_not_stop_other_frames(atlas_png, write_json, tmp_path):
    document = {
        "frames": [
            {"filename": "first", "frame": {"x": 0, "y": 0, "w": 2, "h": 2}},
            {"filename": "outside", "frame": {"x": 63, "y": 63, "w": 4, "h": 4}},
            {"filename": "empty", "frame": {"x": 0, "y": 0, "w": 0, "h": 0}},
            {"filename": "last", "frame": {"x": 2, "y": 2, "w": 2, "h": 2}},
        ]
    }
    out_dir = tmp_path / "out"

    report = AtlasUnpacker(max_workers=4).unpack(atlas_png, write_json(document), out_dir)

    assert [p.name for p in report.written] == ["first.png", "last.png"]
    assert [name for name, _ in report.failed] == ["outside"]
    assert isinstance(report.failed[0][1], GeometryError)
    assert [s.name for s in report.skipped] == ["empty"]
    assert not (out_dir / "outside.png").exists()
    assert not (out_dir / "empty.png").exists()


def test_written_paths_follow_descriptor_order(atlas_png, write_json, tmp_path):
    frames = [
        {"filename": f"tile_{i:02d}", "frame": {"x": (i % 8) * 8, "y": (i // 8) * 8, "w": 8, "h": 8}}
        for i in range(32)
    ]

    report = AtlasUnpacker(max_workers=8).unpack(
        atlas_png, write_json({"frames": frames}), tmp_path / "tiles"
    )

    assert [p.stem for p in report.written] == [f["filename"] for f in frames]


def test_colliding_names_overwrite(atlas_png, write_json, tmp_path):
    """Later frames with the same sanitized name replace earlier ones."""
    document = {
        "frames": [
            {"filename": "a/b.png", "frame": {"x": 0, "y": 0, "w": 2, "h": 2}},
            {"filename": "a_b", "frame": {"x": 10, "y": 0, "w": 3, "h": 3}},
        ]
    }
    out_dir = tmp_path / "out"

    report = AtlasUnpacker(max_workers=1).unpack(atlas_png, write_json(document), out_dir)

    assert report.produced == 2
    assert [p.name for p in out_dir.iterdir()] == ["a_b.png"]
    assert Image.open(out_dir / "a_b.png").size == (3, 3)


def test_format_error_is_fatal_before_output(atlas_png, write_json, tmp_path):
    out_dir = tmp_path / "out"

    with pytest.raises(FormatError):
        unpack_atlas(atlas_png, write_json({"textures": []}), out_dir)

    assert not out_dir.exists()


def test_unreadable_atlas_is_fatal(write_json, tmp_path):
    bogus = tmp_path / "bogus.png"
    bogus.write_text("not a png", encoding='utf-8')

    with pytest.raises(OSError):
        unpack_atlas(bogus, write_json(TWO_FRAME_DESCRIPTOR), tmp_path / "out")


def test_write_failure_is_fatal(atlas_png, write_json, tmp_path):
    class FailingSink(DirectorySink):
        def write(self, name, image):
            raise OSError("disk full")

    unpacker = AtlasUnpacker(max_workers=2, sink_factory=FailingSink)

    with pytest.raises(OSError, match="disk full"):
        unpacker.unpack(atlas_png, write_json(TWO_FRAME_DESCRIPTOR), tmp_path / "out")


def test_on_saved_callback(atlas_png, write_json, tmp_path):
    saved = []

    report = AtlasUnpacker(on_saved=saved.append).unpack(
        atlas_png, write_json(TWO_FRAME_DESCRIPTOR), tmp_path / "out"
    )

    assert sorted(saved) == sorted(report.written)


def test_sink_creates_nested_output_dir(tmp_path):
    out_dir = tmp_path / "a" / "b"

    sink = DirectorySink(out_dir)
    path = sink.write("sprite", Image.new('RGBA', (2, 2)))

    assert out_dir.is_dir()
    assert path == out_dir / "sprite.png"
    assert Image.open(path).size == (2, 2)


def test_sink_leaves_no_file_when_encoding_fails(tmp_path):
    class BrokenImage:
        def save(self, *args, **kwargs):
            raise ValueError("cannot encode")

    sink = DirectorySink(tmp_path)

    with pytest.raises(ValueError):
        sink.write("broken", BrokenImage())

    assert list(tmp_path.iterdir()) == []


def test_sink_removes_partial_file_on_write_error(tmp_path, monkeypatch):
    def partial_write(self, data):
        with open(self, 'wb') as f:
            f.write(data[:4])
        raise OSError("disk full")

    monkeypatch.setattr(Path, "write_bytes", partial_write)
    sink = DirectorySink(tmp_path)

    with pytest.raises(OSError):
        sink.write("partial", Image.new('RGBA', (2, 2)))

    assert not (tmp_path / "partial.png").exists()


def test_write_failure_stops_remaining_frames(atlas_png, write_json, tmp_path):
    """After a failed write, frames that have not started are never written."""
    calls = []

    class FailFirstSink(DirectorySink):
        def write(self, name, image):
            calls.append(name)
            if len(calls) == 1:
                raise OSError("disk full")
            return super().write(name, image)

    frames = [
        {"filename": f"tile_{i}", "frame": {"x": i * 4, "y": 0, "w": 4, "h": 4}}
        for i in range(6)
    ]
    out_dir = tmp_path / "out"
    unpacker = AtlasUnpacker(max_workers=1, sink_factory=FailFirstSink)

    with pytest.raises(OSError, match="disk full"):
        unpacker.unpack(atlas_png, write_json({"frames": frames}), out_dir)

    assert calls == ["tile_0"]
    assert list(out_dir.iterdir()) == []
