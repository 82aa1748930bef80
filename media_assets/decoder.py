"""
Decode engine sessions.

A DecodeSession opens a local handle for decoding and reports what happens
to it as a stream of events: the stream metadata is known, the stream can
play through, a seek has landed. Probes consume these events in order with
next_event(); decode errors are delivered through the same channel.

FFmpegDecodeSession is the default engine, backed by ffprobe and ffmpeg.
"""

import asyncio
import io
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Coroutine, Optional, Set, Tuple

from PIL import Image

from media_assets.config import AssetConfig, get_config
from media_assets.errors import DecodeFailure

logger = logging.getLogger(__name__)


class DecodeEventType(str, Enum):
    """Signals emitted by a decode session."""

    LOADED_METADATA = "loadedmetadata"
    CAN_PLAY_THROUGH = "canplaythrough"
    POSITION_CHANGED = "positionchanged"
    ERROR = "error"


@dataclass
class DecodeEvent:
    """A single decode signal. Times are in seconds."""

    type: DecodeEventType
    position: float = 0.0
    duration: float = 0.0
    error: Optional[Exception] = None


@dataclass
class StreamInfo:
    """Stream properties reported once metadata is loaded."""

    duration: float
    width: int = 0
    height: int = 0


class DecodeSession:
    """
    Base decode session.

    Subclasses provide _read_stream_info() and _decode_frame(); this class
    turns them into ordered events. Metadata is reported exactly once, and
    always before any position change because seek() refuses to run until
    metadata is known.
    """

    def __init__(self, handle: str):
        """
        Initialize the session.

        Args:
            handle: Local handle (path or URL) to decode
        """
        self.handle = handle
        self.info: Optional[StreamInfo] = None
        self.position = 0.0
        self.closed = False
        self._frame: Optional[Image.Image] = None
        self._loading = False
        self._events: "asyncio.Queue[DecodeEvent]" = asyncio.Queue()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def duration(self) -> float:
        """Total duration in seconds, 0.0 until metadata is loaded."""
        return self.info.duration if self.info else 0.0

    def load(self) -> None:
        """Start decoding; emits LOADED_METADATA then CAN_PLAY_THROUGH."""
        if self._loading:
            return
        self._loading = True
        self._spawn(self._run_load())

    def seek(self, position: float) -> None:
        """
        Seek to a position; emits POSITION_CHANGED once the frame is decoded.

        Raises:
            DecodeFailure: If metadata has not been loaded yet
        """
        if self.info is None:
            raise DecodeFailure("Cannot seek before stream metadata is loaded")
        self._spawn(self._run_seek(position))

    async def next_event(self) -> DecodeEvent:
        """
        Wait for the next decode event.

        Raises:
            DecodeFailure: If decoding failed or the session was closed
        """
        event = await self._events.get()
        if event.type is DecodeEventType.ERROR:
            raise event.error
        return event

    def current_frame(self) -> Image.Image:
        """
        Return the most recently decoded frame.

        Raises:
            DecodeFailure: If no frame has been decoded
        """
        if self._frame is None:
            raise DecodeFailure(f"No decoded frame available for {self.handle}")
        return self._frame

    def close(self) -> None:
        """Stop pending decode work and drop the decoded frame."""
        if self.closed:
            return

        self.closed = True
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._frame = None
        # Wake anyone still waiting on the channel
        self._events.put_nowait(
            DecodeEvent(
                DecodeEventType.ERROR,
                error=DecodeFailure(f"Decode session closed: {self.handle}"),
            )
        )
        logger.debug(f"Closed decode session for {self.handle}")

    def _spawn(self, coro: Coroutine) -> None:
        if self.closed:
            coro.close()
            raise DecodeFailure(f"Decode session closed: {self.handle}")
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _emit_error(self, error: Exception) -> None:
        if not isinstance(error, DecodeFailure):
            error = DecodeFailure(f"Decoding {self.handle} failed: {error}")
        logger.error(f"Decode error for {self.handle}: {error}")
        self._events.put_nowait(DecodeEvent(DecodeEventType.ERROR, error=error))

    async def _run_load(self) -> None:
        try:
            self.info = await self._read_stream_info()
        except Exception as e:
            self._emit_error(e)
            return

        duration = self.info.duration
        self._events.put_nowait(DecodeEvent(DecodeEventType.LOADED_METADATA, duration=duration))
        self._events.put_nowait(DecodeEvent(DecodeEventType.CAN_PLAY_THROUGH, duration=duration))

    async def _run_seek(self, position: float) -> None:
        try:
            frame, landed = await self._decode_frame(position)
        except Exception as e:
            self._emit_error(e)
            return

        self._frame = frame
        self.position = landed
        self._events.put_nowait(
            DecodeEvent(
                DecodeEventType.POSITION_CHANGED, position=landed, duration=self.duration
            )
        )

    async def _read_stream_info(self) -> StreamInfo:
        raise NotImplementedError

    async def _decode_frame(self, position: float) -> Tuple[Image.Image, float]:
        raise NotImplementedError


DecoderFactory = Callable[[str], DecodeSession]


class FFmpegDecodeSession(DecodeSession):
    """Decode session that reads metadata with ffprobe and frames with ffmpeg."""

    def __init__(self, handle: str, config: Optional[AssetConfig] = None):
        """
        Initialize the session.

        Args:
            handle: Local handle (path or URL) to decode
            config: Asset configuration. If None, uses default config.
        """
        super().__init__(handle)
        self.config = config or get_config()

    async def _run_command(self, cmd: list) -> bytes:
        """
        Run an ffmpeg tool and return its stdout.

        Raises:
            DecodeFailure: If the tool is missing, times out or fails
        """
        timeout = self.config.decode_timeout_seconds
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise DecodeFailure(
                f"{cmd[0]} not found. "
                "Please install ffmpeg or set FFPROBE_PATH/FFMPEG_PATH environment variables."
            )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise DecodeFailure(f"{cmd[0]} timeout after {timeout}s")

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            raise DecodeFailure(f"{cmd[0]} failed: {message}")

        return stdout

    async def _read_stream_info(self) -> StreamInfo:
        cmd = [
            self.config.ffprobe_path,
            "-v",
            "error",
            "-show_format",
            "-show_streams",
            "-of",
            "json",
            self.handle,
        ]
        stdout = await self._run_command(cmd)

        try:
            probe_data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise DecodeFailure(f"Failed to parse ffprobe output: {e}")

        format_info = probe_data.get("format", {})
        video_stream = next(
            (s for s in probe_data.get("streams", []) if s.get("codec_type") == "video"),
            None,
        )

        try:
            duration = float(format_info.get("duration", 0))
            width = int(video_stream.get("width", 0)) if video_stream else 0
            height = int(video_stream.get("height", 0)) if video_stream else 0
        except (TypeError, ValueError) as e:
            raise DecodeFailure(f"Failed to extract metadata: {e}")

        if duration <= 0:
            raise DecodeFailure(f"No duration reported for {self.handle}")

        return StreamInfo(duration=duration, width=width, height=height)

    async def _decode_frame(self, position: float) -> Tuple[Image.Image, float]:
        cmd = [
            self.config.ffmpeg_path,
            "-v",
            "error",
            "-ss",
            f"{position:.3f}",
            "-i",
            self.handle,
            "-frames:v",
            "1",
            "-f",
            "image2pipe",
            "-vcodec",
            "png",
            "-",
        ]
        stdout = await self._run_command(cmd)
        if not stdout:
            raise DecodeFailure(f"No frame decoded at {position:.3f}s")

        try:
            frame = Image.open(io.BytesIO(stdout))
            frame.load()
        except OSError as e:
            raise DecodeFailure(f"Failed to read decoded frame: {e}")

        return frame.convert("RGB"), position
