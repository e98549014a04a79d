"""
Bundled frontend assets for beamdrop
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import aiofiles.os

from .fs import InvalidPathError, resolve_path
from .utils import get_mime_type

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"
INDEX_DOCUMENT = "index.html"


class AssetNotFound(Exception):
    """Raised when no bundled asset matches a URL path"""
    pass


class StaticAssets:
    """Read-only view of the frontend bundle, independent of the shared root"""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory or STATIC_DIR).resolve()

    async def load(self, url_path: str) -> Tuple[bytes, str]:
        """
        Load an asset by URL path

        Args:
            url_path: Request path, "/" maps to the index document

        Returns:
            (content, media_type) tuple

        Raises:
            AssetNotFound: If the asset is missing or the path is unsafe
        """
        rel_path = url_path.strip("/") or INDEX_DOCUMENT

        try:
            asset_path = resolve_path(self.directory, rel_path)
        except InvalidPathError:
            raise AssetNotFound(url_path)

        if not await aiofiles.os.path.isfile(asset_path):
            raise AssetNotFound(url_path)

        try:
            async with aiofiles.open(asset_path, 'rb') as f:
                content = await f.read()
        except OSError as e:
            logger.warning(f"Failed to read asset {asset_path}: {e}")
            raise AssetNotFound(url_path)

        return content, get_mime_type(asset_path)
