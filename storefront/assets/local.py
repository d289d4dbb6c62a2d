"""Local disk asset provider.

Writes uploads under a directory that is served statically at
``base_url``. There is no transformation support; resized variants
resolve to the original file.
"""

import asyncio
import mimetypes
from pathlib import Path
from typing import Any
from uuid import uuid4

from storefront.assets.provider import DEFAULT_MAX_UPLOAD_BYTES, AssetProvider, AssetUpload
from storefront.domain.exceptions import AssetProviderError
from storefront.domain.value_objects import AssetReference


class LocalDiskAssetProvider(AssetProvider):
    """Stores binaries as files on local disk."""

    def __init__(
        self,
        root: str | Path,
        base_url: str,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ) -> None:
        """Initialize provider.

        Args:
            root: Directory files are written to.
            base_url: URL prefix the directory is served under.
            max_upload_bytes: Largest accepted upload.
        """
        super().__init__(max_upload_bytes)
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    async def _store(self, upload: AssetUpload, hints: dict[str, Any]) -> AssetReference:
        extension = _extension_for(upload)
        storage_id = f"{uuid4().hex}{extension}"
        try:
            await asyncio.to_thread(self._write, storage_id, upload.content)
        except OSError as e:
            raise AssetProviderError(
                f"Failed to write asset: {e}",
                details={"storage_id": storage_id},
            ) from e
        return AssetReference(
            storage_id=storage_id,
            url=f"{self.base_url}/{storage_id}",
            format=extension.lstrip(".") or None,
            size_bytes=upload.size,
        )

    def _write(self, storage_id: str, content: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / storage_id).write_bytes(content)

    async def release(self, storage_id: str) -> None:
        """Delete the file if it exists."""
        # Only bare file names are ours; anything else is unknown.
        name = Path(storage_id).name
        if not name or name != storage_id:
            return
        try:
            await asyncio.to_thread((self.root / name).unlink, True)
        except OSError as e:
            raise AssetProviderError(
                f"Failed to delete asset: {e}",
                details={"storage_id": storage_id},
            ) from e

    def transformed_url(
        self,
        storage_id: str,
        width: int | None = None,
        height: int | None = None,
        crop: str | None = None,
    ) -> str:
        """URL of the stored file; local storage does not resize."""
        return f"{self.base_url}/{storage_id}"


def _extension_for(upload: AssetUpload) -> str:
    suffix = Path(upload.filename).suffix.lower()
    if suffix:
        return suffix
    return mimetypes.guess_extension(upload.content_type) or ""
