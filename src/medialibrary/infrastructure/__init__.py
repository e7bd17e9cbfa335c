"""Infrastructure adapters: persistence, media access, observability, lifecycle."""
