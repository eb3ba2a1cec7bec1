"""Exceptions raised while loading the journey pipeline's static data."""


class SignalTableError(Exception):
    """Raised when the stage signal table is missing or invalid."""

    pass


class CatalogueError(Exception):
    """Raised when the resource/knowledge catalogue cannot be loaded."""

    pass
