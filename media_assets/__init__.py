"""
Media Assets - Asset lifecycle management for the media composition tool.

This module acquires video, audio, image, figure and text assets from remote
locators, local byte sources or persisted records, probes their missing
metadata (duration, size, thumbnail), and supports duplication,
serialization and teardown.
"""

from media_assets.byte_source import ByteSource, LocalHandle
from media_assets.config import AssetConfig, get_config
from media_assets.errors import (
    AssetError,
    CaptureFailure,
    DecodeFailure,
    FetchFailure,
    ProbeTimeout,
    UnsupportedKindError,
)
from media_assets.factory import AssetFactory
from media_assets.models import Asset, AssetKind, AssetRecord

__version__ = "1.0.0"
__all__ = [
    "Asset",
    "AssetConfig",
    "AssetError",
    "AssetFactory",
    "AssetKind",
    "AssetRecord",
    "ByteSource",
    "CaptureFailure",
    "DecodeFailure",
    "FetchFailure",
    "LocalHandle",
    "ProbeTimeout",
    "UnsupportedKindError",
    "get_config",
]
