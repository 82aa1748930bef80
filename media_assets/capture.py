"""
Thumbnail capture from decoded video frames.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from PIL import Image

from media_assets.config import AssetConfig, get_config
from media_assets.decoder import DecodeSession
from media_assets.errors import CaptureFailure, DecodeFailure

logger = logging.getLogger(__name__)


def contain_fit(frame: Image.Image, width: int, height: int) -> Image.Image:
    """
    Fit a frame into a fixed-size canvas.

    The frame is scaled to the canvas width and centred vertically; rows
    that overflow the canvas are cropped, and letterbox bands stay black.

    Args:
        frame: Decoded frame
        width: Canvas width
        height: Canvas height

    Returns:
        New RGB image of exactly width x height
    """
    if frame.width <= 0 or frame.height <= 0:
        raise ValueError(f"Invalid frame size: {frame.width}x{frame.height}")

    scale = frame.width / width
    frame_height = max(1, round(frame.height / scale))
    top = round((height - frame_height) / 2)

    scaled = frame.convert("RGB").resize((width, frame_height), Image.LANCZOS)
    canvas = Image.new("RGB", (width, height), (0, 0, 0))
    canvas.paste(scaled, (0, top))
    return canvas


class FrameCapturer:
    """
    Captures the current frame of a decode session as a PNG thumbnail.

    Thumbnails outlive the assets they were captured for, since duplicates
    and restored records refer to the same path. Clearing thumbnails_path
    is left to the host application.
    """

    def __init__(self, config: Optional[AssetConfig] = None):
        """
        Initialize the capturer.

        Args:
            config: Asset configuration. If None, uses default config.
        """
        self.config = config or get_config()
        self.logger = logging.getLogger(__name__)

    async def capture(self, session: DecodeSession, name: str) -> str:
        """
        Capture the session's current frame.

        Waits capture_settle_ms first, since a freshly seeked frame may not
        be paintable immediately.

        Args:
            session: Decode session positioned on the frame to capture
            name: Base file name for the thumbnail

        Returns:
            Path to the written PNG thumbnail

        Raises:
            CaptureFailure: If the frame cannot be captured or saved
        """
        if self.config.capture_settle_ms > 0:
            await asyncio.sleep(self.config.capture_settle_ms / 1000)

        width = self.config.get_thumbnail_width()
        height = self.config.get_thumbnail_height()
        thumbnails_dir = Path(self.config.thumbnails_path)
        output_path = thumbnails_dir / f"{name}.png"

        try:
            frame = session.current_frame()
            thumbnail = contain_fit(frame, width, height)
            thumbnails_dir.mkdir(parents=True, exist_ok=True)
            thumbnail.save(output_path, "PNG")
        except (DecodeFailure, OSError, ValueError) as e:
            self.logger.error(f"Failed to capture thumbnail for {session.handle}: {e}")
            raise CaptureFailure(f"Thumbnail capture failed: {e}") from e

        self.logger.debug(f"Captured {width}x{height} thumbnail: {output_path}")
        return str(output_path)
