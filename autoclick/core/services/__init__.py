"""Service container and application wiring."""

from autoclick.core.services.container import ServiceContainer

__all__ = ["ServiceContainer"]
