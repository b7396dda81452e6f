from __future__ import annotations


class PhotoTagError(Exception):
    """Base class for errors raised while rendering a tagged photo."""


class ResourceLoadError(PhotoTagError):
    def __init__(self, url: str, reason: str | None = None) -> None:
        self.url = url
        self.reason = reason
        message = f"failed to load resource: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ConfigurationError(PhotoTagError, ValueError):
    pass


class RenderStateError(PhotoTagError, RuntimeError):
    pass
