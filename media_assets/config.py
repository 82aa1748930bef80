"""
Configuration management for the media assets module.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class AssetConfig:
    """Configuration for media asset acquisition and probing."""

    # Storage paths
    work_path: str = os.getenv("MEDIA_WORK_PATH", "/tmp/media_assets")
    thumbnails_path: str = os.getenv("THUMBNAILS_PATH", "/tmp/media_assets/thumbnails")

    # Asset defaults
    default_display_duration_ms: int = int(os.getenv("DEFAULT_DISPLAY_DURATION_MS", "6000"))
    default_volume: float = float(os.getenv("DEFAULT_VOLUME", "1.0"))

    # Thumbnail capture settings
    thumbnail_resolution: str = os.getenv("THUMBNAIL_RESOLUTION", "160:90")
    capture_settle_ms: int = int(os.getenv("CAPTURE_SETTLE_MS", "500"))

    # Probe and decode settings
    probe_timeout_seconds: str = os.getenv("PROBE_TIMEOUT_SECONDS", "")
    decode_timeout_seconds: int = int(os.getenv("DECODE_TIMEOUT_SECONDS", "10"))
    ffprobe_path: str = os.getenv("FFPROBE_PATH", "ffprobe")
    ffmpeg_path: str = os.getenv("FFMPEG_PATH", "ffmpeg")

    # Network settings
    fetch_timeout_seconds: float = float(os.getenv("FETCH_TIMEOUT_SECONDS", "30"))

    # Playback settings
    ffplay_path: str = os.getenv("FFPLAY_PATH", "ffplay")
    audio_auto_pause: bool = os.getenv("AUDIO_AUTO_PAUSE", "false").lower() == "true"

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_path: str = os.getenv("LOG_PATH", "")
    log_file_max_bytes: int = int(os.getenv("LOG_FILE_MAX_BYTES", str(10 * 1024 * 1024)))
    log_file_backup_count: int = int(os.getenv("LOG_FILE_BACKUP_COUNT", "5"))

    def get_thumbnail_width(self) -> int:
        """Extract thumbnail width from resolution string."""
        return int(self.thumbnail_resolution.split(":")[0])

    def get_thumbnail_height(self) -> int:
        """Extract thumbnail height from resolution string."""
        return int(self.thumbnail_resolution.split(":")[1])

    def get_probe_timeout(self) -> Optional[float]:
        """Get the overall probe timeout in seconds, or None to wait indefinitely."""
        value = str(self.probe_timeout_seconds).strip()
        if not value:
            return None
        return float(value)


def get_config() -> AssetConfig:
    """Get asset configuration instance."""
    return AssetConfig()
