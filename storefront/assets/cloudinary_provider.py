"""Cloudinary asset provider.

Two upload paths are supported:

- ``stream``: the in-memory upload buffer is relayed straight to
  Cloudinary without touching local disk.
- ``direct``: the upload is spooled to a temporary file and the file is
  uploaded by path.

The SDK is synchronous, so every call runs in the default executor.
"""

import asyncio
import io
import os
import tempfile
from pathlib import Path
from typing import Any

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils
import structlog

from storefront.assets.provider import DEFAULT_MAX_UPLOAD_BYTES, AssetProvider, AssetUpload
from storefront.domain.exceptions import AssetProviderError
from storefront.domain.value_objects import AssetReference

logger = structlog.get_logger()

UPLOAD_MODES = ("stream", "direct")

# Product cards are square; Cloudinary crops on ingest.
DEFAULT_TRANSFORMATION = [
    {"width": 400, "height": 400, "crop": "fill"},
    {"quality": "auto:good"},
]


class CloudinaryAssetProvider(AssetProvider):
    """Stores binaries in Cloudinary."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "storefront",
        mode: str = "stream",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ) -> None:
        """Initialize provider and configure the SDK.

        Args:
            cloud_name: Cloudinary cloud name.
            api_key: Cloudinary API key.
            api_secret: Cloudinary API secret.
            folder: Root folder for uploads.
            mode: ``stream`` or ``direct``.
            max_upload_bytes: Largest accepted upload.
        """
        if mode not in UPLOAD_MODES:
            raise ValueError(f"Unknown Cloudinary upload mode: {mode}")
        super().__init__(max_upload_bytes)
        self.folder = folder.strip("/")
        self.mode = mode
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    async def _store(self, upload: AssetUpload, hints: dict[str, Any]) -> AssetReference:
        options = self._upload_options(hints)
        loop = asyncio.get_running_loop()
        try:
            if self.mode == "stream":
                result = await loop.run_in_executor(
                    None, self._upload_buffer, upload.content, options
                )
            else:
                result = await loop.run_in_executor(
                    None, self._upload_file, upload, options
                )
        except (cloudinary.exceptions.Error, OSError) as e:
            logger.error("Cloudinary upload failed", error=str(e), folder=options["folder"])
            raise AssetProviderError(f"Image upload failed: {e}") from e

        return AssetReference(
            storage_id=result["public_id"],
            url=result["secure_url"],
            format=result.get("format"),
            width=result.get("width"),
            height=result.get("height"),
            size_bytes=result.get("bytes"),
        )

    def _upload_options(self, hints: dict[str, Any]) -> dict[str, Any]:
        sub_folder = str(hints.get("folder") or "").strip("/")
        options: dict[str, Any] = {
            "folder": f"{self.folder}/{sub_folder}" if sub_folder else self.folder,
            "resource_type": "image",
            "transformation": hints.get("transformation", DEFAULT_TRANSFORMATION),
        }
        if hints.get("tags"):
            options["tags"] = list(hints["tags"])
        return options

    @staticmethod
    def _upload_buffer(content: bytes, options: dict[str, Any]) -> dict[str, Any]:
        return cloudinary.uploader.upload(io.BytesIO(content), **options)

    @staticmethod
    def _upload_file(upload: AssetUpload, options: dict[str, Any]) -> dict[str, Any]:
        suffix = Path(upload.filename).suffix
        handle, path = tempfile.mkstemp(suffix=suffix)
        try:
            with os.fdopen(handle, "wb") as f:
                f.write(upload.content)
            return cloudinary.uploader.upload(path, **options)
        finally:
            os.unlink(path)

    async def release(self, storage_id: str) -> None:
        """Destroy a stored binary; ``not found`` counts as released."""
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self._destroy, storage_id)
        except cloudinary.exceptions.Error as e:
            raise AssetProviderError(
                f"Image release failed: {e}",
                details={"storage_id": storage_id},
            ) from e
        outcome = (result or {}).get("result")
        if outcome not in {"ok", "not found"}:
            raise AssetProviderError(
                f"Image release failed: {outcome}",
                details={"storage_id": storage_id},
            )

    @staticmethod
    def _destroy(storage_id: str) -> dict[str, Any]:
        return cloudinary.uploader.destroy(storage_id, resource_type="image")

    def transformed_url(
        self,
        storage_id: str,
        width: int | None = None,
        height: int | None = None,
        crop: str | None = None,
    ) -> str:
        """Delivery URL with an on-the-fly resize."""
        options: dict[str, Any] = {"secure": True}
        if width is not None:
            options["width"] = width
        if height is not None:
            options["height"] = height
        if crop is not None:
            options["crop"] = crop
        url, _ = cloudinary.utils.cloudinary_url(storage_id, **options)
        return url
