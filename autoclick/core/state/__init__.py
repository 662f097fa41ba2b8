"""Observable state streams."""

from autoclick.core.state.stream import MutableStateStream, StateStream, combine

__all__ = ["StateStream", "MutableStateStream", "combine"]
