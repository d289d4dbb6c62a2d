"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Store
    store_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "postgresql+asyncpg://storefront:storefront_dev_password@db:5432/storefront"
    create_tables: bool = True

    # Assets
    asset_backend: Literal["local", "cloudinary_stream", "cloudinary_direct"] = "local"
    asset_local_root: str = "uploads/images"
    asset_base_url: str = "http://localhost:8000/uploads/images"
    max_upload_bytes: int = 20 * 1024 * 1024

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "storefront"

    # Catalog
    default_page_size: int = 20
    max_page_size: int = 100

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
