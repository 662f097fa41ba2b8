"""Infrastructure helpers shared by services."""

from autoclick.core.infra.dispatcher import BackgroundDispatcher

__all__ = ["BackgroundDispatcher"]
