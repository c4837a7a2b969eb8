"""Error taxonomy shared by the indexer, the point source and the controller."""

from __future__ import annotations

from typing import Optional

from .models import GeoBounds


class ExplorerError(Exception):
    """Base class for explorer failures."""


class GeometryError(ExplorerError, ValueError):
    """Invalid coordinate, resolution or cell id handed to the hex indexer."""


class FetchError(ExplorerError):
    """A point request failed with a non-2xx status or a transport error."""

    def __init__(
        self,
        message: str,
        bounds: Optional[GeoBounds] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.bounds = bounds
        self.status_code = status_code


class ConfigurationError(ExplorerError):
    """Required configuration (the API base URL) is missing."""
