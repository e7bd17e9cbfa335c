"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from medialibrary import __version__
from medialibrary.api import api_router
from medialibrary.api.exception_handlers import register_exception_handlers
from medialibrary.config import Settings, get_settings
from medialibrary.infrastructure.lifecycle import lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings to use instead of the cached environment settings (tests)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Media Library",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    # Hey future me - mounted AFTER the API router so /api/library/* always wins. check_dir=False
    # because the lifespan creates the directory, which runs after this factory.
    app.mount(
        settings.indexing.thumbnail_uri_prefix,
        StaticFiles(directory=settings.storage.thumbnail_path, check_dir=False),
        name="thumbnails",
    )

    return app


app = create_app()
