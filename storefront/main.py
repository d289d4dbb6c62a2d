"""Storefront catalog main application module.

This module builds the FastAPI application: stores, asset provider and
catalog services are created in the lifespan from the given settings and
handed to routes through ``app.state``.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator
from urllib.parse import urlparse

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from storefront.api.categories import router as categories_router
from storefront.api.health import router as health_router
from storefront.api.images import router as images_router
from storefront.api.middleware import setup_middleware
from storefront.api.products import router as products_router
from storefront.assets import build_asset_provider
from storefront.catalog.categories import CategoryTree
from storefront.catalog.images import ImageLibrary
from storefront.catalog.products import ProductCatalog
from storefront.catalog.query import CatalogFilterBuilder
from storefront.catalog.repository import (
    InMemoryCategoryStore,
    InMemoryImageStore,
    InMemoryProductStore,
)
from storefront.catalog.service import CatalogService
from storefront.infrastructure.config import Settings
from storefront.infrastructure.config import settings as default_settings
from storefront.infrastructure.database import Database
from storefront.infrastructure.logging import configure_logging

logger = structlog.get_logger()


# ============================================================================
# Application Factory
# ============================================================================


async def build_services(app: FastAPI, settings: Settings) -> Database | None:
    """Create stores, asset provider and services on ``app.state``.

    Args:
        app: The FastAPI application instance.
        settings: Application settings.

    Returns:
        The connected Database for the SQL backend, otherwise None.
    """
    database = None
    if settings.store_backend == "sql":
        from storefront.infrastructure.sql_repository import (
            SqlCategoryStore,
            SqlImageStore,
            SqlProductStore,
        )

        database = Database(settings.database_url, echo=settings.debug)
        await database.connect()
        if settings.create_tables:
            await database.create_all()
        category_store = SqlCategoryStore(database)
        product_store = SqlProductStore(database)
        image_store = SqlImageStore(database)
    else:
        category_store = InMemoryCategoryStore()
        product_store = InMemoryProductStore()
        image_store = InMemoryImageStore()

    assets = build_asset_provider(settings)
    category_tree = CategoryTree(category_store, assets)
    product_catalog = ProductCatalog(product_store, assets)

    app.state.database = database
    app.state.assets = assets
    app.state.category_tree = category_tree
    app.state.product_catalog = product_catalog
    app.state.image_library = ImageLibrary(image_store, assets)
    app.state.catalog_service = CatalogService(
        category_tree,
        product_catalog,
        CatalogFilterBuilder(
            default_limit=settings.default_page_size,
            max_limit=settings.max_page_size,
        ),
    )
    return database


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Application settings; the environment-loaded ones by default.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Handle application startup and shutdown events."""
        # Startup
        configure_logging(settings.log_level, json=not settings.debug)
        logger.info(
            "Starting storefront catalog API",
            version=settings.api_version,
            debug=settings.debug,
            store_backend=settings.store_backend,
            asset_backend=settings.asset_backend,
        )
        database = await build_services(app, settings)

        yield

        # Shutdown
        logger.info("Shutting down storefront catalog API")
        if database is not None:
            await database.disconnect()

    app = FastAPI(
        title="Storefront Catalog API",
        description="Category hierarchy and product catalog for the dairy storefront",
        version=settings.api_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    # CORS middleware (must be added before custom middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request context and error handlers
    setup_middleware(app)

    # Include routers
    app.include_router(health_router, tags=["Health"])
    app.include_router(categories_router)
    app.include_router(products_router)
    app.include_router(images_router)

    # Serve locally stored images
    if settings.asset_backend == "local":
        mount_path = urlparse(settings.asset_base_url).path.rstrip("/") or "/uploads"
        app.mount(
            mount_path,
            StaticFiles(directory=Path(settings.asset_local_root), check_dir=False),
            name="uploads",
        )

    return app


app = create_app()
