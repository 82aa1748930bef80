"""
Tests for the config module.
"""

import os

from media_assets.config import AssetConfig, get_config


def test_asset_config_defaults():
    """Test AssetConfig with default values."""
    config = AssetConfig()

    assert config.work_path == os.getenv("MEDIA_WORK_PATH", "/tmp/media_assets")
    assert config.thumbnail_resolution == os.getenv("THUMBNAIL_RESOLUTION", "160:90")
    assert config.default_display_duration_ms == int(
        os.getenv("DEFAULT_DISPLAY_DURATION_MS", "6000")
    )
    assert config.capture_settle_ms == int(os.getenv("CAPTURE_SETTLE_MS", "500"))


def test_asset_config_custom_values():
    """Test AssetConfig with custom values."""
    config = AssetConfig(
        work_path="/custom/work",
        thumbnail_resolution="320:180",
        default_display_duration_ms=4000,
        audio_auto_pause=True,
    )

    assert config.work_path == "/custom/work"
    assert config.thumbnail_resolution == "320:180"
    assert config.default_display_duration_ms == 4000
    assert config.audio_auto_pause is True


def test_get_thumbnail_width():
    """Test extracting thumbnail width from resolution."""
    config = AssetConfig(thumbnail_resolution="320:180")
    assert config.get_thumbnail_width() == 320


def test_get_thumbnail_height():
    """Test extracting thumbnail height from resolution."""
    config = AssetConfig(thumbnail_resolution="320:180")
    assert config.get_thumbnail_height() == 180


def test_get_probe_timeout_unset():
    """Test that an empty probe timeout means waiting indefinitely."""
    config = AssetConfig(probe_timeout_seconds="")
    assert config.get_probe_timeout() is None

    config = AssetConfig(probe_timeout_seconds="   ")
    assert config.get_probe_timeout() is None


def test_get_probe_timeout_set():
    """Test parsing a configured probe timeout."""
    config = AssetConfig(probe_timeout_seconds="2.5")
    assert config.get_probe_timeout() == 2.5


def test_get_config():
    """Test get_config function."""
    config = get_config()
    assert isinstance(config, AssetConfig)
