"""Asset provider capability.

An asset provider stores image binaries and hands back AssetReference
descriptors. Categories and products own exactly one reference each;
whoever replaces or deletes the owner releases the old binary.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import structlog

from storefront.domain.exceptions import ValidationError
from storefront.domain.value_objects import AssetReference

logger = structlog.get_logger()

DEFAULT_MAX_UPLOAD_BYTES = 20 * 1024 * 1024


@dataclass(frozen=True)
class AssetUpload:
    """An inbound binary waiting to be stored.

    Attributes:
        content: Raw bytes.
        filename: Client-supplied file name.
        content_type: MIME type.
    """

    content: bytes
    filename: str = "upload"
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        """Size in bytes."""
        return len(self.content)

    def validate(self, max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES) -> None:
        """Check the upload is a non-empty image within the size limit.

        Args:
            max_bytes: Largest accepted size.

        Raises:
            ValidationError: If the upload is unacceptable.
        """
        if not self.content:
            raise ValidationError("Uploaded image is empty", field="image")
        if not self.content_type.lower().startswith("image/"):
            raise ValidationError(
                f"Unsupported content type {self.content_type!r}; an image is required",
                field="image",
            )
        if self.size > max_bytes:
            raise ValidationError(
                f"Uploaded image exceeds {max_bytes} bytes",
                field="image",
                details={"size": self.size, "max_bytes": max_bytes},
            )


class AssetProvider(ABC):
    """Stores, releases and transforms image binaries."""

    def __init__(self, max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES) -> None:
        """Initialize provider.

        Args:
            max_upload_bytes: Largest accepted upload.
        """
        self.max_upload_bytes = max_upload_bytes

    async def store(
        self,
        upload: AssetUpload,
        hints: dict[str, Any] | None = None,
    ) -> AssetReference:
        """Validate and store an upload.

        Args:
            upload: Binary to store.
            hints: Provider hints (folder, tags).

        Returns:
            Reference to the stored binary.

        Raises:
            ValidationError: If the upload is unacceptable.
            AssetProviderError: If the provider fails.
        """
        upload.validate(self.max_upload_bytes)
        reference = await self._store(upload, hints or {})
        logger.info(
            "Asset stored",
            storage_id=reference.storage_id,
            size_bytes=reference.size_bytes,
            provider=type(self).__name__,
        )
        return reference

    @abstractmethod
    async def _store(self, upload: AssetUpload, hints: dict[str, Any]) -> AssetReference:
        """Store a validated upload."""

    @abstractmethod
    async def release(self, storage_id: str) -> None:
        """Delete a stored binary; unknown ids are not an error.

        Raises:
            AssetProviderError: If the provider fails.
        """

    @abstractmethod
    def transformed_url(
        self,
        storage_id: str,
        width: int | None = None,
        height: int | None = None,
        crop: str | None = None,
    ) -> str:
        """URL of a resized variant of a stored binary."""


async def release_quietly(provider: AssetProvider, reference: AssetReference | None) -> bool:
    """Release a binary, logging instead of raising on failure.

    Args:
        provider: Asset provider.
        reference: Reference to release, or None.

    Returns:
        True if released (or nothing to release), False on failure.
    """
    if reference is None:
        return True
    try:
        await provider.release(reference.storage_id)
    except Exception as e:
        logger.warning(
            "Asset release failed",
            storage_id=reference.storage_id,
            error=str(e),
        )
        return False
    return True
