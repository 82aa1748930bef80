"""
Tests for the byte_source module.
"""

import os
from pathlib import Path

import pytest

from media_assets.byte_source import ByteSource, LocalHandle


def test_from_path(test_image_path: str):
    """Test creating a byte source over a file."""
    source = ByteSource.from_path(test_image_path)

    assert source.name == "test_image.png"
    assert source.content_type == "image/png"
    assert source.size == os.path.getsize(test_image_path)
    assert source.read_bytes() == Path(test_image_path).read_bytes()


def test_from_path_missing_file(temp_dir: str):
    """Test that a missing file is rejected."""
    with pytest.raises(FileNotFoundError):
        ByteSource.from_path(os.path.join(temp_dir, "missing.mp4"))


def test_from_bytes():
    """Test creating a byte source over a blob."""
    source = ByteSource.from_bytes(b"abc", name="clip.mp4")

    assert source.size == 3
    assert source.content_type == "video/mp4"
    assert source.read_bytes() == b"abc"


def test_from_bytes_explicit_content_type():
    """Test that an explicit content type wins over the name."""
    source = ByteSource.from_bytes(b"abc", name="blob", content_type="audio/mpeg")
    assert source.content_type == "audio/mpeg"


def test_requires_exactly_one_backing():
    """Test that path and data are mutually exclusive."""
    with pytest.raises(ValueError):
        ByteSource(name="x")

    with pytest.raises(ValueError):
        ByteSource(name="x", path=Path("/tmp/x"), data=b"x")


def test_resolve_file_source_is_not_owned(test_image_path: str, temp_dir: str):
    """Test that file sources resolve to their own path."""
    source = ByteSource.from_path(test_image_path)
    handle = source.resolve(temp_dir)

    assert handle.uri == test_image_path
    assert handle.owned is False

    handle.release()
    assert handle.released is True
    assert os.path.exists(test_image_path)


def test_resolve_blob_materializes_fresh_files(temp_dir: str):
    """Test that each resolve of a blob writes an independent file."""
    source = ByteSource.from_bytes(b"video-bytes", name="clip.mp4")
    work_dir = os.path.join(temp_dir, "work")

    first = source.resolve(work_dir)
    second = source.resolve(work_dir)

    assert first.uri != second.uri
    assert first.owned and second.owned
    assert Path(first.uri).read_bytes() == b"video-bytes"
    assert first.uri.endswith("clip.mp4")

    first.release()
    assert not os.path.exists(first.uri)
    assert os.path.exists(second.uri)


def test_handle_reference_counting(temp_dir: str):
    """Test that an owned file survives until the last holder releases it."""
    source = ByteSource.from_bytes(b"data", name="photo.png")
    handle = source.resolve(temp_dir)

    assert handle.retain() is handle
    handle.release()
    assert os.path.exists(handle.uri)
    assert handle.released is False

    handle.release()
    assert not os.path.exists(handle.uri)
    assert handle.released is True

    # Extra releases are ignored
    handle.release()


def test_retain_released_handle_fails():
    """Test that a released handle cannot be revived."""
    handle = LocalHandle("/tmp/none")
    handle.release()

    with pytest.raises(ValueError):
        handle.retain()
