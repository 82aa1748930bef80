#!/usr/bin/env python3
"""Inspect Asset - Build a media asset and print its record

Acquires a file or URL the same way the composition tool does, probes its
metadata and prints the serialized record as JSON.

Usage:
    python -m media_assets.cli /path/to/clip.mp4
    python -m media_assets.cli https://example.com/song.mp3 --kind audio
    python -m media_assets.cli /path/to/clip.mp4 --duplicate
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from media_assets.byte_source import ByteSource
from media_assets.config import get_config
from media_assets.errors import AssetError
from media_assets.factory import AssetFactory
from media_assets.logging_config import setup_logging
from media_assets.models import Asset, AssetKind

logger = logging.getLogger("media_assets.cli")


def is_remote(source: str) -> bool:
    """Check whether a source argument is a network locator."""
    return source.startswith(("http://", "https://"))


async def inspect_source(
    factory: AssetFactory,
    source: str,
    kind: Optional[AssetKind] = None,
    name: Optional[str] = None,
    duplicate: bool = False,
) -> List[dict]:
    """Build an asset from a path or URL and return its records.

    Args:
        factory: Asset factory to build with
        source: File path or http(s) URL
        kind: Asset kind. If None, detected from the MIME type.
        name: Display name for remote sources
        duplicate: Also duplicate the asset and include the copy's record

    Returns:
        List of serialized records (original first)

    Raises:
        AssetError: If the asset cannot be built
        ValueError: If the kind cannot be detected
    """
    assets: List[Asset] = []
    try:
        if is_remote(source):
            if kind is None:
                raise ValueError("--kind is required for remote sources")
            asset = await factory.from_remote(kind, source, name)
        else:
            byte_source = ByteSource.from_path(source)
            kind = kind or AssetKind.from_content_type(byte_source.content_type)
            if kind is None:
                raise ValueError(f"Cannot detect asset kind of {source}, use --kind")
            asset = await factory.from_local(kind, byte_source)
        assets.append(asset)

        if duplicate:
            assets.append(await asset.duplicate())

        return [a.serialize().to_dict() for a in assets]
    finally:
        for a in assets:
            a.destroy()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Build a media asset and print its record")

    parser.add_argument("source", help="File path or http(s) URL")
    parser.add_argument(
        "--kind", choices=[k.value for k in AssetKind], help="Asset kind (detected if omitted)"
    )
    parser.add_argument("--name", help="Display name for remote sources")
    parser.add_argument("--duplicate", action="store_true", help="Also print a duplicate's record")
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL)")

    args = parser.parse_args(argv)

    config = get_config()
    if args.log_level:
        config = replace(config, log_level=args.log_level)
    setup_logging(config)

    factory = AssetFactory(config)
    kind = AssetKind(args.kind) if args.kind else None

    try:
        records = asyncio.run(
            inspect_source(factory, args.source, kind, args.name, args.duplicate)
        )
    except (AssetError, ValueError, FileNotFoundError) as e:
        logger.error(f"Failed to inspect {args.source}: {e}")
        return 1

    print(json.dumps(records if args.duplicate else records[0], indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
