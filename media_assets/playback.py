"""
Audio playback engine.

Each playing instance is an ffplay process. Whether sounds pause when the
host application is suspended is an explicit engine setting rather than
process-wide state.
"""

import logging
import subprocess
from datetime import datetime
from typing import List, Optional

from media_assets.config import AssetConfig, get_config

logger = logging.getLogger(__name__)


class PlaybackInstance:
    """Represents a single playing ffplay process."""

    def __init__(self, process: subprocess.Popen, uri: str, start_ms: int):
        """
        Initialize the playback wrapper.

        Args:
            process: The subprocess.Popen instance
            uri: Handle being played
            start_ms: Offset playback started from
        """
        self.process = process
        self.uri = uri
        self.start_ms = start_ms
        self.started_at = datetime.now()
        self.pid = process.pid

    @property
    def is_running(self) -> bool:
        """Check if the process is still playing."""
        return self.process.poll() is None

    def stop(self, timeout: float = 2.0) -> None:
        """Terminate the process, killing it if it does not exit in time."""
        if not self.is_running:
            return

        logger.debug(f"Stopping playback process {self.pid}")
        self.process.terminate()
        try:
            self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Playback process {self.pid} did not exit, killing")
            self.process.kill()


class Sound:
    """A loaded sound that can spawn playback instances."""

    def __init__(self, uri: str, engine: "SoundEngine"):
        self.uri = uri
        self.engine = engine
        self.instances: List[PlaybackInstance] = []

    def play(self, start_ms: int = 0, volume: float = 1.0) -> PlaybackInstance:
        """
        Start playing from an offset.

        Args:
            start_ms: Offset in milliseconds
            volume: Volume from 0.0 to 1.0

        Returns:
            The new PlaybackInstance
        """
        instance = self.engine.spawn(self.uri, start_ms, volume)
        self.instances.append(instance)
        return instance

    def pause(self) -> None:
        """Stop every instance of this sound."""
        for instance in self.instances:
            instance.stop()
        self.instances.clear()


class SoundEngine:
    """Loads sounds and owns their playback processes."""

    def __init__(self, config: Optional[AssetConfig] = None, auto_pause: Optional[bool] = None):
        """
        Initialize the engine.

        Args:
            config: Asset configuration. If None, uses default config.
            auto_pause: Pause all sounds on suspend(). Defaults to config.audio_auto_pause.
        """
        self.config = config or get_config()
        self.auto_pause = self.config.audio_auto_pause if auto_pause is None else auto_pause
        self.sounds: List[Sound] = []
        self.logger = logging.getLogger(__name__)

    def load(self, uri: str) -> Sound:
        """Load a sound from a local handle or URL."""
        sound = Sound(uri, self)
        self.sounds.append(sound)
        return sound

    def unload(self, sound: Sound) -> None:
        """Stop and forget a sound."""
        sound.pause()
        if sound in self.sounds:
            self.sounds.remove(sound)

    def spawn(self, uri: str, start_ms: int, volume: float) -> PlaybackInstance:
        """
        Spawn an ffplay process for a handle.

        Raises:
            RuntimeError: If ffplay cannot be started
        """
        cmd = [
            self.config.ffplay_path,
            "-nodisp",
            "-autoexit",
            "-loglevel",
            "quiet",
            "-ss",
            f"{max(start_ms, 0) / 1000:.3f}",
            "-volume",
            str(int(max(0.0, min(volume, 1.0)) * 100)),
            uri,
        ]
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            raise RuntimeError(
                f"ffplay not found at: {self.config.ffplay_path}. "
                "Please install ffmpeg or set FFPLAY_PATH environment variable."
            )

        self.logger.info(f"Playing {uri} from {start_ms}ms (pid {process.pid})")
        return PlaybackInstance(process, uri, start_ms)

    def suspend(self) -> int:
        """
        Called when the host application is suspended.

        Returns:
            Number of sounds paused (always 0 unless auto_pause is enabled)
        """
        if not self.auto_pause:
            return 0

        paused = 0
        for sound in self.sounds:
            if sound.instances:
                sound.pause()
                paused += 1
        self.logger.info(f"Auto-paused {paused} sounds")
        return paused
