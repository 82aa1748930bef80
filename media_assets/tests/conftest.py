"""
Pytest configuration and fixtures for media_assets tests.
"""

import os
import shutil
import subprocess
import tempfile
from typing import Dict, Generator, List, Optional, Tuple
from unittest.mock import Mock, patch

import httpx
import pytest
from PIL import Image

from media_assets.config import AssetConfig
from media_assets.decoder import DecodeSession, StreamInfo
from media_assets.errors import DecodeFailure
from media_assets.factory import AssetFactory
from media_assets.fetcher import RemoteFetcher
from media_assets.playback import SoundEngine

REAL_POPEN = subprocess.Popen


class FakeDecodeSession(DecodeSession):
    """Scripted decode session that never touches ffmpeg."""

    def __init__(
        self,
        handle: str,
        stream_duration: float = 10.0,
        frame_size: Tuple[int, int] = (1280, 720),
        landed_position: Optional[float] = None,
        fail_metadata: Optional[str] = None,
    ):
        super().__init__(handle)
        self.stream_duration = stream_duration
        self.frame_size = frame_size
        self.landed_position = landed_position
        self.fail_metadata = fail_metadata
        self.seeks: List[float] = []

    async def _read_stream_info(self) -> StreamInfo:
        if self.fail_metadata:
            raise DecodeFailure(self.fail_metadata)
        return StreamInfo(self.stream_duration, *self.frame_size)

    async def _decode_frame(self, position: float) -> Tuple[Image.Image, float]:
        self.seeks.append(position)
        landed = position if self.landed_position is None else self.landed_position
        return Image.new("RGB", self.frame_size, "red"), landed


class FakeDecoderFactory:
    """Decoder factory that records the sessions it opens."""

    def __init__(self):
        self.sessions: List[FakeDecodeSession] = []
        self.stream_duration = 10.0
        self.landed_position: Optional[float] = None
        self.fail_metadata: Optional[str] = None

    def __call__(self, handle: str) -> FakeDecodeSession:
        session = FakeDecodeSession(
            handle,
            stream_duration=self.stream_duration,
            landed_position=self.landed_position,
            fail_metadata=self.fail_metadata,
        )
        self.sessions.append(session)
        return session


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: str) -> AssetConfig:
    """Create a test configuration with temporary paths."""
    work_path = os.path.join(temp_dir, "work")
    thumbnails_path = os.path.join(temp_dir, "thumbnails")

    os.makedirs(work_path, exist_ok=True)
    os.makedirs(thumbnails_path, exist_ok=True)

    return AssetConfig(
        work_path=work_path,
        thumbnails_path=thumbnails_path,
        default_display_duration_ms=6000,
        default_volume=1.0,
        thumbnail_resolution="160:90",
        capture_settle_ms=0,
        probe_timeout_seconds="",
        decode_timeout_seconds=10,
        audio_auto_pause=False,
        log_level="DEBUG",
        log_path="",
    )


@pytest.fixture
def mock_popen() -> Generator[Mock, None, None]:
    """Patch ffplay process creation."""
    with patch("media_assets.playback.subprocess.Popen") as popen:

        def spawn(*args, **kwargs):
            process = Mock(spec=REAL_POPEN)
            process.pid = 40000 + popen.call_count
            process.poll.return_value = None
            return process

        popen.side_effect = spawn
        yield popen


@pytest.fixture
def sound_engine(test_config: AssetConfig, mock_popen: Mock) -> SoundEngine:
    """Create a sound engine that spawns mocked ffplay processes."""
    return SoundEngine(test_config)


@pytest.fixture
def make_session():
    """Build scripted decode sessions."""

    def make(handle: str = "clip.mp4", **kwargs) -> FakeDecodeSession:
        return FakeDecodeSession(handle, **kwargs)

    return make


@pytest.fixture
def decoder_factory() -> FakeDecoderFactory:
    """Create a recording fake decoder factory."""
    return FakeDecoderFactory()


@pytest.fixture
def remote_files() -> Dict[str, Tuple[bytes, str]]:
    """Files served by the mock transport, keyed by URL."""
    return {
        "https://cdn.example.com/media/clip.mp4": (b"\x00" * 2048, "video/mp4"),
        "https://cdn.example.com/media/song.mp3": (b"\x01" * 1024, "audio/mpeg; charset=binary"),
        "https://cdn.example.com/media/photo.png": (b"\x89PNG" + b"\x00" * 60, "image/png"),
    }


@pytest.fixture
def mock_transport(remote_files: Dict[str, Tuple[bytes, str]]) -> httpx.MockTransport:
    """httpx transport serving remote_files and 404 for everything else."""

    def handler(request: httpx.Request) -> httpx.Response:
        entry = remote_files.get(str(request.url))
        if entry is None:
            return httpx.Response(404, text="not found")
        data, content_type = entry
        return httpx.Response(200, content=data, headers={"content-type": content_type})

    return httpx.MockTransport(handler)


@pytest.fixture
def factory(
    test_config: AssetConfig,
    mock_transport: httpx.MockTransport,
    decoder_factory: FakeDecoderFactory,
    sound_engine: SoundEngine,
) -> AssetFactory:
    """Create an asset factory wired to fake collaborators."""
    return AssetFactory(
        test_config,
        fetcher=RemoteFetcher(test_config, transport=mock_transport),
        decoder_factory=decoder_factory,
        sound_engine=sound_engine,
    )


@pytest.fixture
def test_video_path(temp_dir: str) -> str:
    """Create a 10 second test video."""
    video_path = os.path.join(temp_dir, "test_video.mp4")

    cmd = [
        "ffmpeg",
        "-f",
        "lavfi",
        "-i",
        "testsrc=duration=10:size=1280x720:rate=30",
        "-t",
        "10",
        "-vf",
        "format=yuv420p",
        "-c:v",
        "libx264",
        "-preset",
        "ultrafast",
        "-y",
        video_path,
    ]

    try:
        with patch.object(subprocess, "Popen", REAL_POPEN):
            subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=30)
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        pytest.skip("FFmpeg not available or failed to create test video")

    return video_path


@pytest.fixture
def test_audio_path(temp_dir: str) -> str:
    """Create a 3 second test audio file."""
    audio_path = os.path.join(temp_dir, "test_audio.m4a")

    cmd = [
        "ffmpeg",
        "-f",
        "lavfi",
        "-i",
        "sine=frequency=440:duration=3",
        "-c:a",
        "aac",
        "-y",
        audio_path,
    ]

    try:
        with patch.object(subprocess, "Popen", REAL_POPEN):
            subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=30)
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        pytest.skip("FFmpeg not available")

    return audio_path


@pytest.fixture
def test_image_path(temp_dir: str) -> str:
    """Create a test image file."""
    image_path = os.path.join(temp_dir, "test_image.png")
    img = Image.new("RGB", (1280, 720), color="blue")
    img.save(image_path)

    return image_path
