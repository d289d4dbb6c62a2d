"""Tests for the local disk asset provider."""

from pathlib import Path

import pytest

from storefront.assets import build_asset_provider
from storefront.assets.local import LocalDiskAssetProvider
from storefront.assets.provider import AssetUpload
from storefront.domain.exceptions import ValidationError
from storefront.infrastructure.config import Settings



@pytest.fixture
def provider(tmp_path: Path) -> LocalDiskAssetProvider:
    """Provider writing under a temporary directory."""
    return LocalDiskAssetProvider(root=tmp_path / "images", base_url="http://test/uploads/")


class TestLocalDiskAssetProvider:
    """Tests for LocalDiskAssetProvider."""

    @pytest.mark.asyncio
    async def test_store_writes_file(
        self, provider: LocalDiskAssetProvider, image: AssetUpload
    ) -> None:
        """Stored binaries land on disk and are addressed by URL."""
        reference = await provider.store(image)

        assert reference.storage_id.endswith(".png")
        assert reference.url == f"http://test/uploads/{reference.storage_id}"
        assert reference.format == "png"
        assert reference.size_bytes == len(image.content)
        assert (provider.root / reference.storage_id).read_bytes() == image.content

    @pytest.mark.asyncio
    async def test_extension_from_content_type(
        self, provider: LocalDiskAssetProvider, image: AssetUpload
    ) -> None:
        """Uploads without a suffix take one from the content type."""
        upload = AssetUpload(content=image.content, filename="blob", content_type="image/png")
        reference = await provider.store(upload)
        assert reference.storage_id.endswith(".png")

    @pytest.mark.asyncio
    async def test_release_deletes_file(
        self, provider: LocalDiskAssetProvider, image: AssetUpload
    ) -> None:
        """Releasing removes the file; releasing again is harmless."""
        reference = await provider.store(image)
        await provider.release(reference.storage_id)
        assert not (provider.root / reference.storage_id).exists()
        await provider.release(reference.storage_id)

    @pytest.mark.asyncio
    async def test_release_ignores_foreign_paths(
        self, provider: LocalDiskAssetProvider, tmp_path: Path
    ) -> None:
        """Ids that are not bare file names are not touched."""
        outside = tmp_path / "keep.txt"
        outside.write_text("keep")
        await provider.release("../keep.txt")
        assert outside.exists()

    @pytest.mark.asyncio
    async def test_rejects_non_images(self, provider: LocalDiskAssetProvider) -> None:
        """Only image content types are stored."""
        upload = AssetUpload(content=b"%PDF", filename="a.pdf", content_type="application/pdf")
        with pytest.raises(ValidationError):
            await provider.store(upload)

    @pytest.mark.asyncio
    async def test_rejects_oversized(self, tmp_path: Path, image: AssetUpload) -> None:
        """Uploads above the limit are rejected."""
        provider = LocalDiskAssetProvider(tmp_path, "http://test", max_upload_bytes=8)
        with pytest.raises(ValidationError) as exc_info:
            await provider.store(image)
        assert exc_info.value.details["max_bytes"] == 8

    def test_transformed_url_is_original(self, provider: LocalDiskAssetProvider) -> None:
        """Local storage serves the original for any size."""
        assert provider.transformed_url("a.png", width=100) == "http://test/uploads/a.png"


class TestBuildAssetProvider:
    """Tests for build_asset_provider."""

    def test_local_backend(self, tmp_path: Path) -> None:
        """The local backend uses the configured root and URL."""
        settings = Settings(
            asset_backend="local",
            asset_local_root=str(tmp_path),
            asset_base_url="http://test/img",
            max_upload_bytes=1024,
        )
        provider = build_asset_provider(settings)
        assert isinstance(provider, LocalDiskAssetProvider)
        assert provider.root == tmp_path
        assert provider.max_upload_bytes == 1024

    def test_cloudinary_backends(self) -> None:
        """Both Cloudinary backends pick their upload mode."""
        from storefront.assets.cloudinary_provider import CloudinaryAssetProvider

        for backend, mode in (("cloudinary_stream", "stream"), ("cloudinary_direct", "direct")):
            settings = Settings(
                asset_backend=backend,
                cloudinary_cloud_name="demo",
                cloudinary_api_key="key",
                cloudinary_api_secret="secret",
            )
            provider = build_asset_provider(settings)
            assert isinstance(provider, CloudinaryAssetProvider)
            assert provider.mode == mode
