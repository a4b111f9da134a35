"""Lazy stream pipeline primitives."""

from .pipeline import (
    Stream,
    StreamClosed,
    filter_stream,
    map_stream,
    tail,
    zip_fold,
)

__all__ = [
    "Stream",
    "StreamClosed",
    "filter_stream",
    "map_stream",
    "tail",
    "zip_fold",
]
