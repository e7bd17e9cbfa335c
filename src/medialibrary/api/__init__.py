"""API module for medialibrary.

The entry point is `api_router` from routers/, mounted under /api by main.py.

- routers/: library control endpoints
- dependencies.py: app.state lookups for the library services
- exception_handlers.py: domain exception → JSON response mapping
"""

from medialibrary.api.routers import api_router, library

__all__ = ["api_router", "library"]
