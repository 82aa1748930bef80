"""
Media asset model.

An Asset is a closed tagged union over AssetKind: every asset shares the
same identity, readiness and record fields, and keeps its kind-specific
runtime attachments in a payload. Kind-specific behaviour is looked up in
the KIND_OPERATIONS table instead of being spread over subclasses.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx
from pydantic import BaseModel, Field

from media_assets.byte_source import ByteSource, LocalHandle
from media_assets.decoder import DecodeSession
from media_assets.errors import AssetError, UnsupportedKindError
from media_assets.playback import PlaybackInstance, Sound, SoundEngine

logger = logging.getLogger(__name__)


def new_asset_id() -> str:
    """Generate a process-unique asset identifier."""
    return str(uuid.uuid4())


class AssetKind(str, Enum):
    """Kinds of media assets."""

    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    FIGURE = "figure"
    TEXT = "text"

    @classmethod
    def from_content_type(cls, content_type: Optional[str]) -> Optional["AssetKind"]:
        """Map a MIME type such as "video/mp4" to an asset kind."""
        if not content_type:
            return None
        major = content_type.split("/")[0].strip().lower()
        return {"video": cls.VIDEO, "audio": cls.AUDIO, "image": cls.IMAGE}.get(major)


STATIC_KINDS = (AssetKind.IMAGE, AssetKind.FIGURE, AssetKind.TEXT)

DESCRIPTIVE_FIELDS = (
    "name",
    "tag",
    "duration_ms",
    "size_bytes",
    "ready",
    "remote_locator",
    "local_handle",
    "thumbnail",
)


class AssetRecord(BaseModel):
    """Persistence-neutral snapshot of an asset."""

    id: Optional[str] = None
    name: Optional[str] = None
    tag: Optional[str] = None
    kind: AssetKind
    duration_ms: Optional[int] = Field(default=None, ge=0)
    size_bytes: Optional[int] = Field(default=None, ge=0)
    remote_locator: Optional[str] = None
    local_handle: Optional[str] = None
    thumbnail: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert the record to a JSON-ready dictionary."""
        return self.model_dump(mode="json")


@dataclass
class StaticPayload:
    """Runtime attachments of image, figure and text assets."""

    handle: Optional[LocalHandle] = None


@dataclass
class VideoPayload:
    """Runtime attachments of a video asset."""

    work_dir: Path
    source: Optional[ByteSource] = None
    handle: Optional[LocalHandle] = None
    session: Optional[DecodeSession] = None


@dataclass
class AudioPayload:
    """Runtime attachments of an audio asset."""

    engine: SoundEngine
    sound: Optional[Sound] = None
    instance: Optional[PlaybackInstance] = None
    volume: float = 1.0
    handle: Optional[LocalHandle] = None
    session: Optional[DecodeSession] = None


Payload = Union[StaticPayload, VideoPayload, AudioPayload]


class Asset:
    """A media item tracked by the composition tool."""

    def __init__(
        self,
        kind: AssetKind,
        name: Optional[str] = None,
        tag: Optional[str] = None,
        duration_ms: int = 0,
        size_bytes: int = 0,
        ready: bool = False,
        remote_locator: Optional[str] = None,
        local_handle: Optional[str] = None,
        thumbnail: Optional[str] = None,
        payload: Optional[Payload] = None,
    ):
        """
        Initialize the asset.

        Args:
            kind: Asset kind, fixed for the asset's lifetime
            name: Display label
            tag: Optional classification
            duration_ms: Duration in milliseconds, 0 when unknown
            size_bytes: Size in bytes, 0 when unknown
            ready: Whether all required metadata is known
            remote_locator: Network address
            local_handle: Locally resolvable handle
            thumbnail: Locally resolvable thumbnail image
            payload: Kind-specific runtime attachments

        Raises:
            ValueError: If a video or audio asset has no payload
        """
        if payload is None:
            if kind not in STATIC_KINDS:
                raise ValueError(f"{kind.value} assets require a payload")
            payload = StaticPayload()

        object.__setattr__(self, "id", new_asset_id())
        self.kind = kind
        self.name = name
        self.tag = tag
        self.duration_ms = duration_ms
        self.size_bytes = size_bytes
        self.ready = ready
        self.remote_locator = remote_locator
        self.local_handle = local_handle
        self.thumbnail = thumbnail
        self.payload = payload

    def __setattr__(self, key: str, value: Any) -> None:
        if key in ("id", "kind") and key in self.__dict__:
            raise AttributeError(f"Asset {key} is immutable")
        super().__setattr__(key, value)

    def __repr__(self) -> str:
        return (
            f"Asset(id={self.id!r}, kind={self.kind.value}, name={self.name!r}, "
            f"duration_ms={self.duration_ms}, ready={self.ready})"
        )

    def descriptive_fields(self) -> Dict[str, Any]:
        """Fields copied by duplicate()."""
        return {field: getattr(self, field) for field in DESCRIPTIVE_FIELDS}

    async def duplicate(self) -> "Asset":
        """
        Create an independent copy with a new id.

        Returns:
            The duplicated asset
        """
        copy = await KIND_OPERATIONS[self.kind].duplicate(self)
        logger.info(f"Duplicated {self.kind.value} asset {self.id} as {copy.id}")
        return copy

    def destroy(self) -> None:
        """Release runtime resources. Safe to call more than once."""
        KIND_OPERATIONS[self.kind].destroy(self)

    def serialize(self) -> AssetRecord:
        """Snapshot the asset as a persistence-neutral record."""
        return AssetRecord(
            id=self.id,
            name=self.name,
            tag=self.tag,
            kind=self.kind,
            duration_ms=self.duration_ms,
            size_bytes=self.size_bytes,
            remote_locator=self.remote_locator,
            local_handle=self.local_handle,
            thumbnail=self.thumbnail,
        )

    def play(self, at_offset_ms: int = 0) -> None:
        """
        Start audio playback. No-op while already playing.

        Raises:
            UnsupportedKindError: If the asset is not audio
            AssetError: If the asset has been destroyed
        """
        payload = self._audio_payload("play")
        if payload.instance is not None:
            return
        if payload.sound is None:
            raise AssetError(f"Audio asset {self.id} has no loaded sound")
        payload.instance = payload.sound.play(at_offset_ms, payload.volume)

    def pause(self) -> None:
        """
        Stop audio playback and clear the playing slot.

        Raises:
            UnsupportedKindError: If the asset is not audio
        """
        payload = self._audio_payload("pause")
        if payload.sound is not None:
            payload.sound.pause()
        payload.instance = None

    @property
    def is_playing(self) -> bool:
        """True while an audio asset holds a playback handle."""
        return isinstance(self.payload, AudioPayload) and self.payload.instance is not None

    def _audio_payload(self, operation: str) -> AudioPayload:
        if not KIND_OPERATIONS[self.kind].playable:
            raise UnsupportedKindError(f"Cannot {operation} a {self.kind.value} asset")
        return self.payload


def _copy_descriptive(asset: Asset, payload: Payload) -> Asset:
    return Asset(kind=asset.kind, payload=payload, **asset.descriptive_fields())


def _retain(handle: Optional[LocalHandle]) -> Optional[LocalHandle]:
    if handle is None or handle.released:
        return None
    return handle.retain()


async def _duplicate_static(asset: Asset) -> Asset:
    return _copy_descriptive(asset, StaticPayload(handle=_retain(asset.payload.handle)))


async def _duplicate_audio(asset: Asset) -> Asset:
    payload: AudioPayload = asset.payload
    if payload.sound is None or (payload.handle is not None and payload.handle.released):
        raise AssetError(f"Cannot duplicate destroyed audio asset {asset.id}")
    uri = asset.local_handle or asset.remote_locator
    copy_payload = AudioPayload(
        engine=payload.engine,
        sound=payload.engine.load(uri) if uri else None,
        volume=payload.volume,
        handle=_retain(payload.handle),
    )
    return _copy_descriptive(asset, copy_payload)


async def _duplicate_video(asset: Asset) -> Asset:
    payload: VideoPayload = asset.payload
    copy = _copy_descriptive(asset, VideoPayload(work_dir=payload.work_dir, source=payload.source))

    if payload.source is not None:
        handle = await asyncio.to_thread(payload.source.resolve, payload.work_dir)
        copy.payload.handle = handle
        copy.local_handle = handle.uri
    elif asset.remote_locator:
        # Tag the shared remote file so each copy gets its own decode resource
        copy.local_handle = str(httpx.URL(asset.remote_locator).copy_add_param("id", copy.id))

    return copy


def _destroy_static(asset: Asset) -> None:
    payload: StaticPayload = asset.payload
    if payload.handle is not None:
        payload.handle.release()
        payload.handle = None


def _destroy_video(asset: Asset) -> None:
    # The thumbnail file is left in place: duplicates share its path
    payload: VideoPayload = asset.payload
    if payload.session is not None:
        payload.session.close()
        payload.session = None
    if payload.handle is not None:
        payload.handle.release()
        payload.handle = None


def _destroy_audio(asset: Asset) -> None:
    payload: AudioPayload = asset.payload
    if payload.sound is not None:
        payload.engine.unload(payload.sound)
        payload.sound = None
    payload.instance = None
    if payload.session is not None:
        payload.session.close()
        payload.session = None
    if payload.handle is not None:
        payload.handle.release()
        payload.handle = None


@dataclass(frozen=True)
class KindOperations:
    """Kind-specific behaviour of an asset."""

    duplicate: Callable[[Asset], Awaitable[Asset]]
    destroy: Callable[[Asset], None]
    playable: bool = False


KIND_OPERATIONS: Dict[AssetKind, KindOperations] = {
    AssetKind.VIDEO: KindOperations(_duplicate_video, _destroy_video),
    AssetKind.AUDIO: KindOperations(_duplicate_audio, _destroy_audio, playable=True),
    AssetKind.IMAGE: KindOperations(_duplicate_static, _destroy_static),
    AssetKind.FIGURE: KindOperations(_duplicate_static, _destroy_static),
    AssetKind.TEXT: KindOperations(_duplicate_static, _destroy_static),
}
