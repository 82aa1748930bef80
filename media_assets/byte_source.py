"""
Byte sources backing media assets.

A ByteSource is either a file on disk or an in-memory blob (for example a
fetched remote file). Resolving it yields a LocalHandle that the decode and
playback engines can open.
"""

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


class LocalHandle:
    """
    A locally resolvable resource for a byte source.

    Handles materialized from in-memory bytes own their file and delete it
    when the last holder releases them. Handles over a caller's file path
    never touch the file.
    """

    def __init__(self, uri: str, owned: bool = False):
        """
        Initialize the handle.

        Args:
            uri: Local path the handle resolves to
            owned: Whether the file was created for this handle
        """
        self.uri = uri
        self.owned = owned
        self._refs = 1

    @property
    def released(self) -> bool:
        """True once every holder has released the handle."""
        return self._refs == 0

    def retain(self) -> "LocalHandle":
        """Register another holder of this handle."""
        if self.released:
            raise ValueError(f"Cannot retain released handle: {self.uri}")
        self._refs += 1
        return self

    def release(self) -> None:
        """Drop one holder; the owned file is removed when none remain."""
        if self.released:
            return

        self._refs -= 1
        if self._refs == 0 and self.owned:
            try:
                Path(self.uri).unlink(missing_ok=True)
                logger.debug(f"Removed local handle: {self.uri}")
            except OSError as e:
                logger.warning(f"Failed to remove local handle {self.uri}: {e}")

    def __repr__(self) -> str:
        return f"LocalHandle({self.uri!r}, owned={self.owned}, refs={self._refs})"


@dataclass
class ByteSource:
    """Uniform handle over a local file or an in-memory blob."""

    name: str
    content_type: Optional[str] = None
    path: Optional[Path] = None
    data: Optional[bytes] = None

    def __post_init__(self) -> None:
        if (self.path is None) == (self.data is None):
            raise ValueError("ByteSource needs exactly one of path or data")
        if self.content_type is None:
            self.content_type = mimetypes.guess_type(self.name)[0]

    @classmethod
    def from_path(
        cls, path: Union[str, Path], content_type: Optional[str] = None
    ) -> "ByteSource":
        """
        Create a byte source over a file on disk.

        Raises:
            FileNotFoundError: If the path is not a regular file
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"File does not exist: {file_path}")
        return cls(name=file_path.name, content_type=content_type, path=file_path)

    @classmethod
    def from_bytes(
        cls, data: bytes, name: str, content_type: Optional[str] = None
    ) -> "ByteSource":
        """Create a byte source over an in-memory blob."""
        return cls(name=name, content_type=content_type, data=data)

    @property
    def size(self) -> int:
        """Size of the backing bytes."""
        if self.data is not None:
            return len(self.data)
        return self.path.stat().st_size

    def read_bytes(self) -> bytes:
        """Return the backing bytes."""
        if self.data is not None:
            return self.data
        return self.path.read_bytes()

    def resolve(self, work_dir: Union[str, Path]) -> LocalHandle:
        """
        Resolve a fresh local handle for this source.

        File-backed sources resolve to their own path. Blob-backed sources
        are written to a new file under work_dir on every call, so each
        handle has an independent lifetime.

        Args:
            work_dir: Directory for materialized blobs

        Returns:
            A new LocalHandle
        """
        if self.path is not None:
            return LocalHandle(str(self.path))

        target_dir = Path(work_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{uuid.uuid4().hex}-{Path(self.name).name or 'blob'}"
        target.write_bytes(self.data)
        logger.debug(f"Materialized {self.name} ({len(self.data)} bytes) to {target}")
        return LocalHandle(str(target), owned=True)
