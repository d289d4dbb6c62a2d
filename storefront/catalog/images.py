"""Image library.

Standalone images kept in the asset provider and recorded in an
ImageStore, for banners, profiles and images picked up later by admins.
Each record owns its stored binary.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from storefront.assets.provider import AssetProvider, AssetUpload, release_quietly
from storefront.catalog.query import PaginatedResult
from storefront.catalog.repository import ImageCriteria, ImageStore
from storefront.domain.entities import LibraryImage
from storefront.domain.exceptions import NotFoundError, ValidationError
from storefront.domain.value_objects import AssetReference, ImageUsage

logger = structlog.get_logger()

LIBRARY_FOLDER = "library"
MAX_BATCH_UPLOADS = 10
MAX_TRANSFORM_SIZE = 4000
CROP_MODES = ("fill", "fit", "limit", "pad", "scale", "thumb", "crop")

# Originals keep their dimensions; resizing happens on delivery.
LIBRARY_TRANSFORMATION = [{"quality": "auto:good"}]


@dataclass(frozen=True)
class OptimizedImage:
    """Resized delivery URL for a library image.

    Attributes:
        image_id: Library image id.
        url: Delivery URL of the resized variant.
        original_url: URL of the stored original.
        width: Requested width, if any.
        height: Requested height, if any.
        crop: Crop mode, if any.
    """

    image_id: str
    url: str
    original_url: str
    width: int | None = None
    height: int | None = None
    crop: str | None = None


class ImageLibrary:
    """Service for uploading, listing and retiring library images."""

    def __init__(
        self,
        store: ImageStore,
        assets: AssetProvider,
        max_batch: int = MAX_BATCH_UPLOADS,
    ) -> None:
        """Initialize library.

        Args:
            store: Image store.
            assets: Asset provider holding the binaries.
            max_batch: Largest number of files in one batch upload.
        """
        self.store = store
        self.assets = assets
        self.max_batch = max_batch

    # -------------------------------------------------------------------------
    # Uploads
    # -------------------------------------------------------------------------

    async def upload(
        self,
        upload: AssetUpload | None,
        usage: ImageUsage | str | None = None,
        description: str | None = None,
        actor: str | None = None,
    ) -> LibraryImage:
        """Store one image and record it.

        If recording fails after the upload, the binary is released and
        the original error is raised.

        Args:
            upload: Image upload.
            usage: Intended placement, ``other`` by default.
            description: Optional description.
            actor: Uploading actor.

        Returns:
            Recorded image.

        Raises:
            ValidationError: If no file was sent or the file is unacceptable.
            AssetProviderError: If the image cannot be stored.
        """
        if upload is None:
            raise ValidationError("No file uploaded", field="image")
        parsed = ImageUsage.parse(usage)
        asset = await self.assets.store(upload, _hints(parsed))
        try:
            image = await self.store.insert(_record(upload, asset, parsed, description, actor))
        except Exception:
            await release_quietly(self.assets, asset)
            raise

        logger.info(
            "Library image uploaded",
            image_id=image.id,
            storage_id=asset.storage_id,
            usage=parsed.value,
            actor=actor,
        )
        return image

    async def upload_many(
        self,
        uploads: Sequence[AssetUpload],
        usage: ImageUsage | str | None = None,
        description: str | None = None,
        actor: str | None = None,
    ) -> list[LibraryImage]:
        """Store a batch of images; either all are recorded or none are.

        Every file is checked before the first one is stored. When a
        later step fails, records already written are removed and every
        stored binary is released.

        Args:
            uploads: Image uploads, at most ``max_batch``.
            usage: Intended placement shared by the batch.
            description: Optional description shared by the batch.
            actor: Uploading actor.

        Returns:
            Recorded images in upload order.

        Raises:
            ValidationError: If the batch is empty, too large or holds an
                unacceptable file.
            AssetProviderError: If an image cannot be stored.
        """
        if not uploads:
            raise ValidationError("No files uploaded", field="images")
        if len(uploads) > self.max_batch:
            raise ValidationError(
                f"At most {self.max_batch} images can be uploaded at once",
                field="images",
                details={"count": len(uploads), "max": self.max_batch},
            )
        parsed = ImageUsage.parse(usage)
        for upload in uploads:
            upload.validate(self.assets.max_upload_bytes)

        stored: list[AssetReference] = []
        recorded: list[LibraryImage] = []
        try:
            for upload in uploads:
                asset = await self.assets.store(upload, _hints(parsed))
                stored.append(asset)
                image = _record(upload, asset, parsed, description, actor)
                recorded.append(await self.store.insert(image))
        except Exception:
            await self._undo_batch(recorded, stored)
            raise

        logger.info(
            "Library images uploaded",
            count=len(recorded),
            usage=parsed.value,
            actor=actor,
        )
        return recorded

    async def _undo_batch(
        self,
        recorded: list[LibraryImage],
        stored: list[AssetReference],
    ) -> None:
        for image in recorded:
            try:
                await self.store.delete(image.id)
            except Exception as e:
                logger.warning("Image record rollback failed", image_id=image.id, error=str(e))
        for asset in stored:
            await release_quietly(self.assets, asset)
        logger.warning("Library batch upload rolled back", stored=len(stored))

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find(
        self,
        usage: ImageUsage | str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> PaginatedResult[LibraryImage]:
        """Page through library images, newest first.

        Args:
            usage: Only images with this usage.
            is_active: Only active (True) or retired (False) images.
            page: 1-based page number.
            limit: Page size.

        Returns:
            One page of images plus the total match count.
        """
        if page < 1:
            raise ValidationError("page must be at least 1", field="page")
        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")
        criteria = ImageCriteria(
            usage=ImageUsage.parse(usage) if usage else None,
            is_active=is_active,
        )
        items = await self.store.find(criteria, skip=(page - 1) * limit, limit=limit)
        total = await self.store.count(criteria)
        return PaginatedResult(items=items, total=total, page=page, limit=limit)

    async def get(self, image_id: str) -> LibraryImage:
        """Get one image.

        Raises:
            NotFoundError: If the image does not exist.
        """
        image = await self.store.get(image_id)
        if image is None:
            raise NotFoundError("Image", image_id)
        return image

    async def optimized(
        self,
        image_id: str,
        width: int | None = None,
        height: int | None = None,
        crop: str | None = None,
    ) -> OptimizedImage:
        """Delivery URL of a resized variant.

        Resizing is done by the asset provider on delivery; a provider
        that cannot resize returns the original URL.

        Args:
            image_id: Library image id.
            width: Target width in pixels.
            height: Target height in pixels.
            crop: Crop mode, one of CROP_MODES.

        Returns:
            OptimizedImage.

        Raises:
            NotFoundError: If the image does not exist.
            ValidationError: On out-of-range sizes or an unknown crop mode.
        """
        for name, value in (("width", width), ("height", height)):
            if value is not None and not 1 <= value <= MAX_TRANSFORM_SIZE:
                raise ValidationError(
                    f"{name} must be between 1 and {MAX_TRANSFORM_SIZE}",
                    field=name,
                )
        if crop is not None:
            crop = crop.strip().lower()
            if crop not in CROP_MODES:
                raise ValidationError(
                    f"Unknown crop mode: {crop!r}",
                    field="crop",
                    details={"allowed": list(CROP_MODES)},
                )
        image = await self.get(image_id)
        url = self.assets.transformed_url(
            image.asset.storage_id,
            width=width,
            height=height,
            crop=crop,
        )
        return OptimizedImage(
            image_id=image.id,
            url=url,
            original_url=image.asset.url,
            width=width,
            height=height,
            crop=crop,
        )

    # -------------------------------------------------------------------------
    # Changes
    # -------------------------------------------------------------------------

    async def update(
        self,
        image_id: str,
        changes: dict[str, Any],
        actor: str | None = None,
    ) -> LibraryImage:
        """Change description, usage or active flag.

        Raises:
            NotFoundError: If the image does not exist.
            ValidationError: On unknown or invalid fields.
        """
        image = await self.get(image_id)
        image.apply_changes(changes)
        image = await self.store.update(image)
        logger.info(
            "Library image updated",
            image_id=image.id,
            fields=sorted(changes),
            actor=actor,
        )
        return image

    async def delete(self, image_id: str, actor: str | None = None) -> None:
        """Delete the record, then release its binary.

        Raises:
            NotFoundError: If the image does not exist.
        """
        image = await self.get(image_id)
        if not await self.store.delete(image_id):
            raise NotFoundError("Image", image_id)
        await release_quietly(self.assets, image.asset)
        logger.info(
            "Library image deleted",
            image_id=image_id,
            storage_id=image.asset.storage_id,
            actor=actor,
        )


def _hints(usage: ImageUsage) -> dict[str, Any]:
    return {
        "folder": LIBRARY_FOLDER,
        "tags": [usage.value],
        "transformation": LIBRARY_TRANSFORMATION,
    }


def _record(
    upload: AssetUpload,
    asset: AssetReference,
    usage: ImageUsage,
    description: str | None,
    actor: str | None,
) -> LibraryImage:
    return LibraryImage.create(
        asset=asset,
        original_name=upload.filename,
        mime_type=upload.content_type,
        size_bytes=upload.size,
        usage=usage,
        description=description,
        uploaded_by=actor,
    )
