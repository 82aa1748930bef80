"""
Exceptions raised while acquiring, probing and managing media assets.
"""

from typing import Optional


class AssetError(Exception):
    """Base class for media asset errors."""


class FetchFailure(AssetError):
    """The remote byte stream for an asset could not be fetched."""

    def __init__(self, message: str, locator: Optional[str] = None):
        super().__init__(message)
        self.locator = locator


class DecodeFailure(AssetError):
    """The decode engine could not report metadata or seek."""


class ProbeTimeout(DecodeFailure):
    """The decode engine did not deliver the awaited signal in time."""


class CaptureFailure(AssetError):
    """The current frame could not be captured into a thumbnail."""


class UnsupportedKindError(AssetError):
    """The requested operation is not defined for this asset kind."""
