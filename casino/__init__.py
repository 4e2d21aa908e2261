"""Video poker host package: wraps the round engine with networking."""

from .server import CasinoServer

__all__ = ["CasinoServer"]
