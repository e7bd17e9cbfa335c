import uvicorn

from medialibrary.config import get_settings


def main() -> None:
    """Run the media library API server."""
    settings = get_settings()
    uvicorn.run(
        "medialibrary.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
