"""Image asset storage.

Provides the AssetProvider capability and its backends: local disk,
Cloudinary via in-memory buffer relay, and Cloudinary via direct file
upload.
"""

from storefront.assets.provider import (
    DEFAULT_MAX_UPLOAD_BYTES,
    AssetProvider,
    AssetUpload,
    release_quietly,
)
from storefront.infrastructure.config import Settings


def build_asset_provider(settings: Settings) -> AssetProvider:
    """Build the asset provider selected by settings.

    Args:
        settings: Application settings.

    Returns:
        Configured AssetProvider.

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = settings.asset_backend
    if backend == "local":
        from storefront.assets.local import LocalDiskAssetProvider

        return LocalDiskAssetProvider(
            root=settings.asset_local_root,
            base_url=settings.asset_base_url,
            max_upload_bytes=settings.max_upload_bytes,
        )
    if backend in {"cloudinary_stream", "cloudinary_direct"}:
        from storefront.assets.cloudinary_provider import CloudinaryAssetProvider

        return CloudinaryAssetProvider(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
            mode=backend.removeprefix("cloudinary_"),
            max_upload_bytes=settings.max_upload_bytes,
        )
    raise ValueError(f"Unknown asset backend: {backend}")


__all__ = [
    "DEFAULT_MAX_UPLOAD_BYTES",
    "AssetProvider",
    "AssetUpload",
    "build_asset_provider",
    "release_quietly",
]
