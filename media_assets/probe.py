"""
Metadata probes.

A probe drives a decode session until the asset's missing metadata is
known, then marks the asset ready. Probes never mark an asset ready on a
partial result: they either finish or raise.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

from media_assets.capture import FrameCapturer
from media_assets.decoder import DecodeEvent, DecodeEventType, DecodeSession

if TYPE_CHECKING:
    from media_assets.models import Asset

logger = logging.getLogger(__name__)


class ProbeState(str, Enum):
    """Probe progress."""

    UNPROBED = "unprobed"
    AWAITING_METADATA = "awaiting_metadata"
    AWAITING_FRAME = "awaiting_frame"
    AWAITING_READY = "awaiting_ready"
    CAPTURED = "captured"
    READY = "ready"
    FAILED = "failed"


class VideoProbe:
    """
    Derives duration and thumbnail for a video.

    UNPROBED -> AWAITING_METADATA -> AWAITING_FRAME -> CAPTURED, or FAILED
    on any error. The frame is sampled at one third of the duration, away
    from the usually black start and end.
    """

    def __init__(self, session: DecodeSession, capturer: FrameCapturer):
        """
        Initialize the probe.

        Args:
            session: Decode session opened on the asset's local handle
            capturer: Thumbnail capturer
        """
        self.session = session
        self.capturer = capturer
        self.state = ProbeState.UNPROBED
        self.seek_target: Optional[float] = None

    async def run(self, asset: "Asset") -> None:
        """
        Probe the asset until it is ready.

        Raises:
            DecodeFailure: If the decode engine fails
            CaptureFailure: If the thumbnail cannot be captured
        """
        self.state = ProbeState.AWAITING_METADATA
        try:
            self.session.load()
            while self.state is not ProbeState.CAPTURED:
                event = await self.session.next_event()
                await self._handle(asset, event)
        except Exception:
            self.state = ProbeState.FAILED
            raise

        asset.ready = True
        logger.debug(f"Video probe finished for {asset.id}: {asset.duration_ms}ms")

    async def _handle(self, asset: "Asset", event: DecodeEvent) -> None:
        if (
            self.state is ProbeState.AWAITING_METADATA
            and event.type is DecodeEventType.LOADED_METADATA
        ):
            asset.duration_ms = int(event.duration * 1000)
            if asset.thumbnail is not None:
                self.state = ProbeState.CAPTURED
                return

            self.seek_target = event.duration / 3
            self.state = ProbeState.AWAITING_FRAME
            logger.debug(f"Seeking {asset.id} to {self.seek_target:.3f}s for thumbnail")
            self.session.seek(self.seek_target)

        elif (
            self.state is ProbeState.AWAITING_FRAME
            and event.type is DecodeEventType.POSITION_CHANGED
        ):
            # Zero-position updates fire before the seek lands
            if event.position <= 0:
                logger.debug(f"Ignoring zero position update for {asset.id}")
                return
            asset.thumbnail = await self.capturer.capture(self.session, asset.id)
            self.state = ProbeState.CAPTURED


class AudioProbe:
    """
    Derives the duration of an audio asset.

    UNPROBED -> AWAITING_READY -> READY, or FAILED on any error.
    """

    def __init__(self, session: DecodeSession):
        self.session = session
        self.state = ProbeState.UNPROBED

    async def run(self, asset: "Asset") -> None:
        """
        Probe the asset until it can play through.

        Raises:
            DecodeFailure: If the decode engine fails
        """
        self.state = ProbeState.AWAITING_READY
        try:
            self.session.load()
            while True:
                event = await self.session.next_event()
                if event.type is DecodeEventType.CAN_PLAY_THROUGH:
                    break
        except Exception:
            self.state = ProbeState.FAILED
            raise

        asset.duration_ms = int(event.duration * 1000)
        asset.ready = True
        self.state = ProbeState.READY
        logger.debug(f"Audio probe finished for {asset.id}: {asset.duration_ms}ms")
