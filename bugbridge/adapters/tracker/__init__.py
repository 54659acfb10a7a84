"""Clients for the remote issue tracker."""

from .base import TrackerClient
from .bugherd import BugherdClient

__all__ = [
    "TrackerClient",
    "BugherdClient",
]
