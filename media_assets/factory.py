"""
Asset Factory - Main entry point for creating media assets.

This module builds assets from known fields, from local byte sources, from
remote locators and from persisted records, and runs the metadata probes
that make them ready.
"""

import asyncio
import logging
from pathlib import Path
from typing import Mapping, Optional, Union

import httpx

from media_assets.byte_source import ByteSource, LocalHandle
from media_assets.capture import FrameCapturer
from media_assets.config import AssetConfig, get_config
from media_assets.decoder import DecodeSession, DecoderFactory, FFmpegDecodeSession
from media_assets.errors import AssetError, ProbeTimeout, UnsupportedKindError
from media_assets.fetcher import RemoteFetcher
from media_assets.models import (
    Asset,
    AssetKind,
    AssetRecord,
    AudioPayload,
    StaticPayload,
    VideoPayload,
)
from media_assets.playback import SoundEngine
from media_assets.probe import AudioProbe, VideoProbe

logger = logging.getLogger(__name__)


class AssetFactory:
    """
    High-level asset construction interface.

    Assets handed out by this class are either ready or were built from
    caller-supplied fields; a probe that fails destroys its asset and
    raises instead of returning it.
    """

    def __init__(
        self,
        config: Optional[AssetConfig] = None,
        fetcher: Optional[RemoteFetcher] = None,
        decoder_factory: Optional[DecoderFactory] = None,
        sound_engine: Optional[SoundEngine] = None,
        capturer: Optional[FrameCapturer] = None,
    ):
        """
        Initialize the asset factory.

        Args:
            config: Asset configuration. If None, uses default config.
            fetcher: Remote fetcher. If None, an httpx-backed one is created.
            decoder_factory: Callable opening a DecodeSession on a handle.
                If None, FFmpegDecodeSession is used.
            sound_engine: Playback engine for audio assets
            capturer: Thumbnail capturer for video assets
        """
        self.config = config or get_config()
        self.fetcher = fetcher or RemoteFetcher(self.config)
        self.decoder_factory = decoder_factory or self._ffmpeg_session
        self.sound_engine = sound_engine or SoundEngine(self.config)
        self.capturer = capturer or FrameCapturer(self.config)
        self.work_dir = Path(self.config.work_path)
        self.logger = logging.getLogger(__name__)

    def _ffmpeg_session(self, handle: str) -> DecodeSession:
        return FFmpegDecodeSession(handle, self.config)

    # Known-field constructors

    def create_image(self, name: Optional[str], url: str) -> Asset:
        """Create a ready image asset shown from its own url."""
        return Asset(
            kind=AssetKind.IMAGE,
            name=name,
            duration_ms=self.config.default_display_duration_ms,
            ready=True,
            remote_locator=url,
            local_handle=url,
            thumbnail=url,
        )

    def create_figure(
        self,
        name: Optional[str],
        tag: Optional[str],
        url: Optional[str],
        cover: Optional[str],
    ) -> Asset:
        """Create a ready figure asset."""
        return Asset(
            kind=AssetKind.FIGURE,
            name=name,
            tag=tag,
            duration_ms=self.config.default_display_duration_ms,
            ready=True,
            remote_locator=url,
            local_handle=url,
            thumbnail=cover,
        )

    def create_text(self, name: Optional[str], duration_ms: Optional[int] = None) -> Asset:
        """Create a ready text asset."""
        return Asset(
            kind=AssetKind.TEXT,
            name=name,
            duration_ms=duration_ms or self.config.default_display_duration_ms,
            ready=True,
        )

    def create_video(
        self,
        name: Optional[str],
        url: Optional[str],
        cover: Optional[str] = None,
        duration_ms: int = 0,
        size_bytes: int = 0,
    ) -> Asset:
        """
        Create a video asset from known fields.

        The asset is ready only when the duration is known; otherwise pass
        it to probe().
        """
        return Asset(
            kind=AssetKind.VIDEO,
            name=name,
            duration_ms=duration_ms,
            size_bytes=size_bytes,
            ready=duration_ms > 0,
            remote_locator=url,
            local_handle=url,
            thumbnail=cover,
            payload=VideoPayload(work_dir=self.work_dir),
        )

    def create_audio(self, name: Optional[str], url: str, duration_ms: int = 0) -> Asset:
        """
        Create an audio asset from known fields.

        The asset is ready only when the duration is known; otherwise pass
        it to probe().
        """
        return Asset(
            kind=AssetKind.AUDIO,
            name=name,
            duration_ms=duration_ms,
            ready=duration_ms > 0,
            remote_locator=url,
            local_handle=url,
            payload=AudioPayload(
                engine=self.sound_engine,
                sound=self.sound_engine.load(url),
                volume=self.config.default_volume,
            ),
        )

    def image_from_local(self, source: ByteSource) -> Asset:
        """Create a ready image asset from a local byte source."""
        handle = source.resolve(self.work_dir)
        return Asset(
            kind=AssetKind.IMAGE,
            name=source.name,
            duration_ms=self.config.default_display_duration_ms,
            size_bytes=source.size,
            ready=True,
            local_handle=handle.uri,
            thumbnail=handle.uri,
            payload=StaticPayload(handle=handle),
        )

    # Asynchronous acquisition

    async def from_local(self, kind: AssetKind, source: ByteSource) -> Asset:
        """
        Create a ready asset from a local byte source.

        Args:
            kind: Video, audio or image
            source: File or in-memory blob backing the asset

        Returns:
            Ready asset

        Raises:
            UnsupportedKindError: For figure and text assets
            DecodeFailure: If probing fails
            CaptureFailure: If the video thumbnail cannot be captured
        """
        if kind is AssetKind.IMAGE:
            return self.image_from_local(source)
        if kind not in (AssetKind.VIDEO, AssetKind.AUDIO):
            raise UnsupportedKindError(f"Cannot build a {kind.value} asset from a byte source")

        handle: LocalHandle = await asyncio.to_thread(source.resolve, self.work_dir)
        if kind is AssetKind.VIDEO:
            payload = VideoPayload(work_dir=self.work_dir, source=source, handle=handle)
        else:
            payload = AudioPayload(
                engine=self.sound_engine,
                sound=self.sound_engine.load(handle.uri),
                volume=self.config.default_volume,
                handle=handle,
            )

        asset = Asset(
            kind=kind,
            name=source.name,
            size_bytes=source.size,
            local_handle=handle.uri,
            payload=payload,
        )
        self.logger.info(f"Created {kind.value} asset {asset.id} from {source.name}")
        await self.probe(asset)
        return asset

    async def from_remote(self, kind: AssetKind, locator: str, name: Optional[str]) -> Asset:
        """
        Fetch a remote file and create a ready asset from it.

        The asset is probed against a local copy but remembers its
        canonical remote locator.

        Args:
            kind: Video, audio or image
            locator: Network address
            name: Display label. If None, the last path segment is used.

        Returns:
            Ready asset

        Raises:
            UnsupportedKindError: For figure and text assets
            FetchFailure: If the remote file cannot be fetched
            DecodeFailure: If probing fails
            CaptureFailure: If the video thumbnail cannot be captured
        """
        if kind not in (AssetKind.VIDEO, AssetKind.AUDIO, AssetKind.IMAGE):
            raise UnsupportedKindError(f"Cannot fetch a {kind.value} asset")

        fetched = await self.fetcher.fetch(locator)
        source = ByteSource.from_bytes(
            fetched.data,
            name=name or Path(httpx.URL(locator).path).name or "remote",
            content_type=fetched.content_type,
        )
        asset = await self.from_local(kind, source)
        asset.remote_locator = locator
        return asset

    async def from_record(self, record: Union[AssetRecord, Mapping]) -> Asset:
        """
        Rebuild an asset from a persisted record.

        Videos are fetched again from their remote locator, or reopened
        from their local file when they have none, and re-probed; images
        and figures are rebuilt from the record directly. Duration and size
        always end up as recorded.

        Args:
            record: AssetRecord or a mapping that validates as one

        Returns:
            Ready asset

        Raises:
            UnsupportedKindError: For audio and text records
            AssetError: If a video or image record has nothing to load from
            pydantic.ValidationError: If a mapping is not a valid record
        """
        if not isinstance(record, AssetRecord):
            record = AssetRecord.model_validate(record)

        if record.kind is AssetKind.VIDEO:
            if record.remote_locator:
                asset = await self.from_remote(
                    AssetKind.VIDEO, record.remote_locator, record.name
                )
            elif record.local_handle and Path(record.local_handle).is_file():
                asset = await self.from_local(
                    AssetKind.VIDEO, ByteSource.from_path(record.local_handle)
                )
            else:
                raise AssetError(
                    f"Video record {record.id} has no remote locator or local file"
                )
        elif record.kind is AssetKind.IMAGE:
            url = record.remote_locator or record.local_handle
            if not url:
                raise AssetError(f"Image record {record.id} has no remote locator or local handle")
            asset = self.create_image(record.name, url)
            asset.remote_locator = record.remote_locator
            asset.thumbnail = record.thumbnail or url
        elif record.kind is AssetKind.FIGURE:
            asset = self.create_figure(
                record.name, record.tag, record.remote_locator, record.thumbnail
            )
        else:
            raise UnsupportedKindError(f"Cannot rebuild a {record.kind.value} asset from a record")

        asset.name = record.name
        asset.tag = record.tag
        if record.duration_ms is not None:
            asset.duration_ms = record.duration_ms
        if record.size_bytes is not None:
            asset.size_bytes = record.size_bytes
        asset.ready = True

        self.logger.info(f"Restored {record.kind.value} asset {asset.id} from record {record.id}")
        return asset

    async def probe(self, asset: Asset) -> Asset:
        """
        Derive an asset's missing metadata and mark it ready.

        Assets whose duration is already known are marked ready without
        opening a decode session. On failure the asset is destroyed.

        Args:
            asset: Video or audio asset

        Returns:
            The same asset, now ready

        Raises:
            DecodeFailure: If the decode engine fails
            ProbeTimeout: If probe_timeout_seconds elapses first
            CaptureFailure: If the video thumbnail cannot be captured
        """
        if asset.kind not in (AssetKind.VIDEO, AssetKind.AUDIO):
            return asset
        if asset.duration_ms > 0:
            asset.ready = True
            return asset
        if not asset.local_handle:
            raise AssetError(f"Asset {asset.id} has no local handle to probe")

        session = self.decoder_factory(asset.local_handle)
        asset.payload.session = session
        if asset.kind is AssetKind.VIDEO:
            probe = VideoProbe(session, self.capturer)
        else:
            probe = AudioProbe(session)

        timeout = self.config.get_probe_timeout()
        try:
            if timeout is None:
                await probe.run(asset)
            else:
                await asyncio.wait_for(probe.run(asset), timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.error(f"Probe of {asset.id} timed out after {timeout}s in {probe.state.value}")
            asset.destroy()
            raise ProbeTimeout(f"Probe timeout after {timeout}s ({probe.state.value})")
        except Exception as e:
            self.logger.error(f"Failed to probe {asset.kind.value} asset {asset.id}: {e}")
            asset.destroy()
            raise

        self.logger.info(
            f"{asset.kind.value.capitalize()} asset {asset.id} ready: "
            f"{asset.duration_ms}ms, {asset.size_bytes} bytes"
        )
        return asset
